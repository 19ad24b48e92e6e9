"""
Element types for pyhalide buffers.

DType is the Python-side element type. Each DType maps to the Halide
`halide_type_t` triple (code, bits, lanes), a numpy dtype and a ctypes
scalar type.
"""

from __future__ import annotations

import ctypes
from enum import Enum, IntEnum
from typing import Any

import numpy as np


class TypeCode(IntEnum):
    """`halide_type_code_t` values."""
    INT = 0
    UINT = 1
    FLOAT = 2
    HANDLE = 3
    BFLOAT = 4


class HalideType(ctypes.Structure):
    """`halide_type_t`: element type descriptor used by the Halide runtime."""

    _fields_ = [
        ("code", ctypes.c_uint8),
        ("bits", ctypes.c_uint8),
        ("lanes", ctypes.c_uint16),
    ]

    def as_tuple(self) -> tuple[int, int, int]:
        return (int(self.code), int(self.bits), int(self.lanes))

    def __eq__(self, other):
        if not isinstance(other, HalideType):
            return NotImplemented
        return self.as_tuple() == other.as_tuple()

    def __hash__(self):
        return hash(self.as_tuple())

    def __repr__(self):
        code, bits, lanes = self.as_tuple()
        try:
            name = TypeCode(code).name.lower()
        except ValueError:
            name = f"code{code}"
        s = f"{name}{bits}"
        if lanes != 1:
            s += f"x{lanes}"
        return s


class DType(Enum):
    """Data types."""
    BOOL = "bool"
    I8 = "i8"
    I16 = "i16"
    I32 = "i32"
    I64 = "i64"
    U8 = "u8"
    U16 = "u16"
    U32 = "u32"
    U64 = "u64"
    F32 = "f32"
    F64 = "f64"

    @property
    def halide_type(self) -> HalideType:
        code, bits = _HALIDE_CODES[self]
        return HalideType(code, bits, 1)

    @property
    def numpy_dtype(self) -> np.dtype:
        return np.dtype(_NUMPY_NAMES[self])

    @property
    def ctype(self) -> type:
        return _CTYPES[self]

    @property
    def itemsize(self) -> int:
        """Bytes per element in host memory."""
        return self.numpy_dtype.itemsize

    @property
    def is_float(self) -> bool:
        return self in (DType.F32, DType.F64)

    @property
    def is_integer(self) -> bool:
        return not self.is_float and self is not DType.BOOL

    @staticmethod
    def parse(value: Any) -> "DType":
        """Accept a DType, a short name ("f32"), a numpy name ("float32"),
        a numpy dtype or a numpy scalar type."""
        if isinstance(value, DType):
            return value
        if isinstance(value, str):
            try:
                return DType(value)
            except ValueError:
                pass
        try:
            name = np.dtype(value).name
        except TypeError:
            raise ValueError(f"Unsupported element type: {value!r}") from None
        for dtype, numpy_name in _NUMPY_NAMES.items():
            if numpy_name == name:
                return dtype
        raise ValueError(f"Unsupported element type: {value!r}")

    @staticmethod
    def from_halide_type(t: HalideType) -> "DType":
        key = (int(t.code), int(t.bits))
        if int(t.lanes) == 1:
            for dtype, codes in _HALIDE_CODES.items():
                if codes == key:
                    return dtype
        raise ValueError(f"No DType for Halide type {t!r}")

    def __str__(self):
        return _NUMPY_NAMES[self]


def dtype_of_ctype(ctype: type) -> DType:
    """DType of a ctypes scalar type, by kind and size rather than identity.

    `c_long` and `c_longlong` are distinct classes that both hold an int64 on
    LP64 platforms; both map to DType.I64.
    """
    code = getattr(ctype, "_type_", None)
    if not isinstance(code, str):
        raise ValueError(f"Not a ctypes scalar type: {ctype!r}")
    bits = 8 * ctypes.sizeof(ctype)
    if code == "?":
        return DType.BOOL
    if code in "fd":
        key = (TypeCode.FLOAT, bits)
    elif code in "bhilq":
        key = (TypeCode.INT, bits)
    elif code in "BHILQ":
        key = (TypeCode.UINT, bits)
    else:
        raise ValueError(f"Unsupported ctypes element type: {ctype!r}")
    for dtype, codes in _HALIDE_CODES.items():
        if codes == key:
            return dtype
    raise ValueError(f"Unsupported ctypes element type: {ctype!r}")


_HALIDE_CODES = {
    DType.BOOL: (TypeCode.UINT, 1),
    DType.I8: (TypeCode.INT, 8),
    DType.I16: (TypeCode.INT, 16),
    DType.I32: (TypeCode.INT, 32),
    DType.I64: (TypeCode.INT, 64),
    DType.U8: (TypeCode.UINT, 8),
    DType.U16: (TypeCode.UINT, 16),
    DType.U32: (TypeCode.UINT, 32),
    DType.U64: (TypeCode.UINT, 64),
    DType.F32: (TypeCode.FLOAT, 32),
    DType.F64: (TypeCode.FLOAT, 64),
}

_NUMPY_NAMES = {
    DType.BOOL: "bool",
    DType.I8: "int8",
    DType.I16: "int16",
    DType.I32: "int32",
    DType.I64: "int64",
    DType.U8: "uint8",
    DType.U16: "uint16",
    DType.U32: "uint32",
    DType.U64: "uint64",
    DType.F32: "float32",
    DType.F64: "float64",
}

_CTYPES = {
    DType.BOOL: ctypes.c_bool,
    DType.I8: ctypes.c_int8,
    DType.I16: ctypes.c_int16,
    DType.I32: ctypes.c_int32,
    DType.I64: ctypes.c_int64,
    DType.U8: ctypes.c_uint8,
    DType.U16: ctypes.c_uint16,
    DType.U32: ctypes.c_uint32,
    DType.U64: ctypes.c_uint64,
    DType.F32: ctypes.c_float,
    DType.F64: ctypes.c_double,
}
