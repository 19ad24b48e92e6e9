"""
Tests for element types and their Halide / numpy / ctypes mappings.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'python'))

import ctypes

import numpy as np
import pytest

from pyhalide.types import DType, HalideType, TypeCode, dtype_of_ctype


class TestDType:
    def test_halide_types(self):
        assert DType.I8.halide_type.as_tuple() == (TypeCode.INT, 8, 1)
        assert DType.U64.halide_type.as_tuple() == (TypeCode.UINT, 64, 1)
        assert DType.F32.halide_type.as_tuple() == (TypeCode.FLOAT, 32, 1)
        assert DType.F64.halide_type.as_tuple() == (TypeCode.FLOAT, 64, 1)
        # Halide's bool is UInt(1)
        assert DType.BOOL.halide_type.as_tuple() == (TypeCode.UINT, 1, 1)

    @pytest.mark.parametrize("dtype", list(DType))
    def test_mappings_are_consistent(self, dtype):
        assert DType.from_halide_type(dtype.halide_type) is dtype
        assert DType.parse(dtype.numpy_dtype) is dtype
        assert DType.parse(str(dtype)) is dtype
        assert DType.parse(dtype.value) is dtype
        assert dtype_of_ctype(dtype.ctype) is dtype
        assert ctypes.sizeof(dtype.ctype) == dtype.itemsize

    def test_parse(self):
        assert DType.parse("f32") is DType.F32
        assert DType.parse("float32") is DType.F32
        assert DType.parse(np.int16) is DType.I16
        assert DType.parse(np.dtype("uint8")) is DType.U8
        assert DType.parse(float) is DType.F64
        with pytest.raises(ValueError):
            DType.parse("float16")
        with pytest.raises(ValueError):
            DType.parse("not-a-type")

    def test_kinds(self):
        assert DType.F32.is_float and not DType.F32.is_integer
        assert DType.U16.is_integer and not DType.U16.is_float
        assert not DType.BOOL.is_integer and not DType.BOOL.is_float

    def test_from_halide_type_rejects_vectors(self):
        with pytest.raises(ValueError):
            DType.from_halide_type(HalideType(TypeCode.FLOAT, 32, 4))
        with pytest.raises(ValueError):
            DType.from_halide_type(HalideType(TypeCode.BFLOAT, 16, 1))


class TestHalideType:
    def test_equality(self):
        assert HalideType(2, 32, 1) == DType.F32.halide_type
        assert HalideType(2, 32, 1) != HalideType(2, 64, 1)
        assert len({HalideType(0, 8, 1), DType.I8.halide_type}) == 1

    def test_repr(self):
        assert repr(DType.F32.halide_type) == "float32"
        assert repr(HalideType(TypeCode.UINT, 8, 4)) == "uint8x4"
        assert repr(HalideType(9, 8, 1)) == "code98"


class TestCtypes:
    def test_aliases_by_size(self):
        assert dtype_of_ctype(ctypes.c_longlong) is DType.I64
        assert dtype_of_ctype(ctypes.c_ulonglong) is DType.U64
        expected = {4: DType.I32, 8: DType.I64}[ctypes.sizeof(ctypes.c_long)]
        assert dtype_of_ctype(ctypes.c_long) is expected
        assert dtype_of_ctype(ctypes.c_byte) is DType.I8
        assert dtype_of_ctype(ctypes.c_bool) is DType.BOOL

    def test_unsupported(self):
        with pytest.raises(ValueError):
            dtype_of_ctype(ctypes.c_char_p)
        with pytest.raises(ValueError):
            dtype_of_ctype(ctypes.c_longdouble)
        with pytest.raises(ValueError):
            dtype_of_ctype(int)
