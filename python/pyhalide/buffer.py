"""
Halide buffers: typed, strided, non-owning views over host memory.

`HalideBufferT` mirrors the runtime's `halide_buffer_t` field for field so a
pointer to it can be handed to compiled pipelines. `Buffer[rank, dtype]` is
the Python-side handle; the rank and element type it is parameterized with
are checked against the data at construction.

Handles are scoped. They are created by `buffer_view`, `halide_buffer` or
`Buffer.borrow`, and released when the `with` block (or the action passed to
the callback forms) exits, normally or with an exception. A released handle
raises BufferReleasedError on any access.

Example:
    with halide_buffer([[1.0, 2.0], [3.0, 4.0]], dtype=DType.F32) as buf:
        assert buf.shape == (2, 2)
        assert buf.strides == (2, 1)
        assert peek_to_list(buf) == [[1.0, 2.0], [3.0, 4.0]]
"""

from __future__ import annotations

import contextlib
import ctypes
import logging
import numbers
from enum import IntFlag
from typing import Any, Callable, Iterator, Optional, Sequence, TypeVar

import numpy as np

from pyhalide import runtime
from pyhalide.errors import (
    BufferReleasedError,
    BufferUsageError,
    InvalidPointerError,
    RaggedSequenceError,
    RankMismatchError,
    ShapeStrideArityError,
    TypeMismatchError,
)
from pyhalide.layout import is_row_major, offset_span, row_major_strides, volume
from pyhalide.types import DType, HalideType, dtype_of_ctype

logger = logging.getLogger("pyhalide.buffer")

R = TypeVar("R")


# -----------------------------------------------------------------------------
# ctypes ABI structs (mirror HalideRuntime.h)
# -----------------------------------------------------------------------------


class HalideDimension(ctypes.Structure):
    """`halide_dimension_t`"""

    _fields_ = [
        ("min", ctypes.c_int32),
        ("extent", ctypes.c_int32),
        ("stride", ctypes.c_int32),
        ("flags", ctypes.c_uint32),
    ]


class HalideBufferT(ctypes.Structure):
    """`halide_buffer_t`"""

    _fields_ = [
        ("device", ctypes.c_uint64),
        ("device_interface", ctypes.c_void_p),
        ("host", ctypes.POINTER(ctypes.c_uint8)),
        ("flags", ctypes.c_uint64),
        ("type", HalideType),
        ("dimensions", ctypes.c_int32),
        ("dim", ctypes.POINTER(HalideDimension)),
        ("padding", ctypes.c_void_p),
    ]


class BufferFlag(IntFlag):
    """`halide_buffer_flags`"""
    HOST_DIRTY = 1
    DEVICE_DIRTY = 2


# ============================================================
# Typed buffer handle
# ============================================================

_BUFFER_TYPES: dict[tuple[int, DType], type] = {}


class Buffer:
    """Handle to a `halide_buffer_t` valid for the duration of one scope.

    `Buffer[rank, dtype]` returns the handle class for a fixed rank and
    element type (cached, so `Buffer[2, "f32"] is Buffer[2, DType.F32]`).
    The bare `Buffer` class declares neither.
    """
    _rank: Optional[int] = None
    _dtype: Optional[DType] = None

    def __class_getitem__(cls, params) -> type:
        """Create Buffer type with static rank and element type."""
        if not isinstance(params, tuple) or len(params) != 2:
            raise TypeError("Buffer[...] takes exactly two parameters: Buffer[rank, dtype]")
        rank, dtype = params
        if isinstance(rank, bool) or not isinstance(rank, int) or rank < 0:
            raise TypeError(f"Buffer rank must be a non-negative int, got {rank!r}")
        dtype = DType.parse(dtype)
        key = (rank, dtype)
        typed = _BUFFER_TYPES.get(key)
        if typed is None:
            class BufferN(Buffer):
                _rank = rank
                _dtype = dtype
            BufferN.__name__ = BufferN.__qualname__ = f"Buffer[{rank}, {dtype.name}]"
            typed = _BUFFER_TYPES[key] = BufferN
        return typed

    def __init__(self, raw: HalideBufferT, keepalive: tuple = (), writeable: bool = True):
        self._raw: Optional[HalideBufferT] = raw
        self._keepalive = keepalive
        self._writeable = writeable

    # ------------------------------------------------------------
    # Declared (static) parameters
    # ------------------------------------------------------------

    @classmethod
    def declared_rank(cls) -> Optional[int]:
        return cls._rank

    @classmethod
    def declared_dtype(cls) -> Optional[DType]:
        return cls._dtype

    # ------------------------------------------------------------
    # Lifetime
    # ------------------------------------------------------------

    @property
    def released(self) -> bool:
        return self._raw is None

    def _release(self) -> None:
        self._raw = None
        self._keepalive = ()

    @property
    def raw(self) -> HalideBufferT:
        """The underlying `halide_buffer_t` struct."""
        if self._raw is None:
            raise BufferReleasedError()
        return self._raw

    @property
    def pointer(self):
        """`halide_buffer_t*` for passing to compiled pipelines."""
        return ctypes.pointer(self.raw)

    @property
    def _as_parameter_(self) -> ctypes.c_void_p:
        return ctypes.c_void_p(ctypes.addressof(self.raw))

    @classmethod
    @contextlib.contextmanager
    def borrow(cls, ptr) -> Iterator["Buffer"]:
        """Wrap a `halide_buffer_t*` owned by someone else (e.g. the engine).

        The runtime rank and type of the struct are checked against the
        declared ones.
        """
        addr = _address_of(ptr)[0]
        if not addr:
            raise InvalidPointerError("Cannot borrow a null halide_buffer_t pointer")
        raw = HalideBufferT.from_address(addr)
        if raw.dimensions < 0:
            raise RankMismatchError(
                f"halide_buffer_t has a negative dimension count {raw.dimensions}",
                expected=cls._rank, actual=int(raw.dimensions),
            )
        if cls._rank is not None and raw.dimensions != cls._rank:
            raise RankMismatchError(
                f"Rank mismatch: halide_buffer_t has {raw.dimensions} dimensions, "
                f"but {cls.__name__} expects {cls._rank}",
                expected=cls._rank, actual=int(raw.dimensions),
            )
        if cls._dtype is not None and raw.type != cls._dtype.halide_type:
            raise TypeMismatchError(
                f"Type mismatch: halide_buffer_t has type {raw.type!r}, "
                f"but {cls.__name__} expects {cls._dtype.halide_type!r}",
                expected=repr(cls._dtype.halide_type), actual=repr(raw.type),
            )
        if raw.dimensions and not raw.dim:
            raise InvalidPointerError(
                f"halide_buffer_t has {raw.dimensions} dimensions but a null dim array"
            )
        shape = tuple(int(raw.dim[i].extent) for i in range(raw.dimensions))
        if not raw.host and volume(shape) != 0:
            raise InvalidPointerError(
                f"Null host pointer for a borrowed buffer of shape {shape} ({volume(shape)} elements)"
            )
        handle = cls(raw)
        try:
            yield handle
        finally:
            handle._release()

    # ------------------------------------------------------------
    # Descriptor fields
    # ------------------------------------------------------------

    @property
    def rank(self) -> int:
        return int(self.raw.dimensions)

    @property
    def type(self) -> HalideType:
        t = self.raw.type
        return HalideType(t.code, t.bits, t.lanes)

    @property
    def dtype(self) -> DType:
        return DType.from_halide_type(self.raw.type)

    def _dims(self) -> list[HalideDimension]:
        raw = self.raw
        return [raw.dim[i] for i in range(raw.dimensions)]

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(int(d.extent) for d in self._dims())

    @property
    def strides(self) -> tuple[int, ...]:
        return tuple(int(d.stride) for d in self._dims())

    @property
    def mins(self) -> tuple[int, ...]:
        return tuple(int(d.min) for d in self._dims())

    @property
    def host(self) -> int:
        """Base address of the host data (0 if null)."""
        return ctypes.cast(self.raw.host, ctypes.c_void_p).value or 0

    @property
    def writeable(self) -> bool:
        """False when the host memory came from a read-only numpy array."""
        return self._writeable

    @property
    def volume(self) -> int:
        return volume(self.shape)

    @property
    def is_contiguous(self) -> bool:
        return is_row_major(self.shape, self.strides)

    @property
    def host_dirty(self) -> bool:
        return bool(self.raw.flags & BufferFlag.HOST_DIRTY)

    @property
    def device_dirty(self) -> bool:
        return bool(self.raw.flags & BufferFlag.DEVICE_DIRTY)

    def set_host_dirty(self, value: bool = True) -> None:
        """Mark host memory as modified so the runtime copies it to the device."""
        raw = self.raw
        if value:
            raw.flags = int(raw.flags) | int(BufferFlag.HOST_DIRTY)
        else:
            raw.flags = int(raw.flags) & ~int(BufferFlag.HOST_DIRTY)

    # ------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------

    def to_numpy(self) -> np.ndarray:
        return to_numpy(self)

    def to_list(self) -> Any:
        return peek_to_list(self)

    def __repr__(self):
        name = type(self).__name__
        if self._raw is None:
            return f"<{name} (released)>"
        return f"<{name} type={self.type!r} shape={self.shape} strides={self.strides} host={self.host:#x}>"


# ============================================================
# Buffer from pointer, shape and strides
# ============================================================

def _address_of(ptr) -> tuple[int, Optional[type]]:
    """Return (address, element ctype or None) for a raw pointer argument."""
    if ptr is None:
        return 0, None
    if isinstance(ptr, bool):
        raise TypeError(f"Unsupported pointer type: {type(ptr)}")
    if isinstance(ptr, int):
        return ptr, None
    if isinstance(ptr, ctypes.c_void_p):
        return ptr.value or 0, None
    if isinstance(ptr, ctypes._Pointer):
        return ctypes.cast(ptr, ctypes.c_void_p).value or 0, ptr._type_
    if isinstance(ptr, ctypes.Array):
        return ctypes.addressof(ptr), ptr._type_
    raise TypeError(f"Unsupported pointer type: {type(ptr)}")


def _resolve_buffer_type(rank, dtype, buffer_type) -> type:
    if buffer_type is not None:
        if rank is not None or dtype is not None:
            raise TypeError("Pass either buffer_type or rank/dtype, not both")
        if not (isinstance(buffer_type, type) and issubclass(buffer_type, Buffer)):
            raise TypeError(f"buffer_type must be a Buffer[rank, dtype] class, got {buffer_type!r}")
        if buffer_type.declared_rank() is None or buffer_type.declared_dtype() is None:
            raise TypeError("buffer_type must declare rank and dtype: use Buffer[rank, dtype]")
        return buffer_type
    if rank is None or dtype is None:
        raise TypeError("rank and dtype are required when buffer_type is not given")
    return Buffer[rank, dtype]


def _check_layout(buffer_type: type, shape: tuple, strides: tuple) -> None:
    if len(shape) != len(strides):
        raise ShapeStrideArityError(
            f"Shape and strides have different lengths: {len(shape)} vs {len(strides)}",
            shape=shape, strides=strides,
        )
    rank = buffer_type.declared_rank()
    if len(shape) != rank:
        raise RankMismatchError(
            f"Rank mismatch: shape {shape} has {len(shape)} dimensions, "
            f"but {buffer_type.__name__} expects {rank}",
            expected=rank, actual=len(shape),
        )


@contextlib.contextmanager
def _view(addr: int, shape: tuple, strides: tuple, buffer_type: type,
          owner: Any = None, writeable: bool = True) -> Iterator[Buffer]:
    """Allocate the descriptor and its dimension array for one scope."""
    if addr == 0 and volume(shape) != 0:
        raise InvalidPointerError(
            f"Null host pointer for a buffer of shape {shape} ({volume(shape)} elements)"
        )
    rank = len(shape)
    dims = (HalideDimension * rank)()
    for i, (extent, stride) in enumerate(zip(shape, strides)):
        dims[i].min = 0
        dims[i].extent = extent
        dims[i].stride = stride
        dims[i].flags = 0

    raw = HalideBufferT()
    raw.device = 0
    raw.device_interface = None
    raw.host = ctypes.cast(ctypes.c_void_p(addr or None), ctypes.POINTER(ctypes.c_uint8))
    raw.flags = 0
    raw.type = buffer_type.declared_dtype().halide_type
    raw.dimensions = rank
    if rank:
        raw.dim = ctypes.cast(dims, ctypes.POINTER(HalideDimension))

    handle = buffer_type(raw, keepalive=(dims, owner), writeable=writeable)
    logger.debug("acquired %r", handle)
    try:
        yield handle
    finally:
        handle._release()
        logger.debug("released %s shape=%s", buffer_type.__name__, shape)


@contextlib.contextmanager
def buffer_view(ptr, shape: Sequence[int], strides: Sequence[int] = None, *,
                rank: int = None, dtype: Any = None, buffer_type: type = None) -> Iterator[Buffer]:
    """Describe existing memory as a Halide buffer for the duration of a `with` block.

    Args:
        ptr: Base address: an int, None, `c_void_p`, a typed ctypes pointer or
             a ctypes array. Typed pointers and arrays carry an element type
             that must match the declared one.
        shape: Extent of each dimension
        strides: Element stride of each dimension (row-major if omitted)
        rank, dtype: Declared rank and element type, or
        buffer_type: `Buffer[rank, dtype]` declaring both

    Raises:
        ShapeStrideArityError: len(shape) != len(strides)
        RankMismatchError: len(shape) differs from the declared rank
        TypeMismatchError: pointer element type differs from the declared type
        InvalidPointerError: null pointer with a non-zero volume

    The memory is borrowed: the caller keeps it alive for the whole block.
    """
    buffer_type = _resolve_buffer_type(rank, dtype, buffer_type)
    shape = tuple(int(d) for d in shape)
    strides = row_major_strides(shape) if strides is None else tuple(int(s) for s in strides)
    _check_layout(buffer_type, shape, strides)

    addr, ctype = _address_of(ptr)
    if ctype is not None:
        expected = buffer_type.declared_dtype()
        try:
            actual = dtype_of_ctype(ctype)
        except ValueError:
            actual = None
        if actual is not expected:
            raise TypeMismatchError(
                f"Type mismatch: pointer to {ctype.__name__}, "
                f"but {buffer_type.__name__} expects {expected}",
                expected=str(expected), actual=ctype.__name__,
            )

    with _view(addr, shape, strides, buffer_type, owner=ptr) as buf:
        yield buf


def buffer_from_ptr_shape_strides(ptr, shape: Sequence[int], strides: Sequence[int],
                                  action: Callable[[Buffer], R], *,
                                  rank: int = None, dtype: Any = None,
                                  buffer_type: type = None) -> R:
    """Run `action` with a buffer over `ptr`; see `buffer_view`."""
    with buffer_view(ptr, shape, strides, rank=rank, dtype=dtype, buffer_type=buffer_type) as buf:
        return action(buf)


# ============================================================
# Nested sequences <-> buffers
# ============================================================

def _is_sequence(x: Any) -> bool:
    return isinstance(x, (list, tuple))


def _nesting_depth(data: Any) -> int:
    """Depth of nesting following the first element at every level."""
    depth = 0
    level = data
    while _is_sequence(level):
        depth += 1
        if not level:
            break
        level = level[0]
    return depth


def infer_shape(data: Any, rank: int = None) -> tuple[int, ...]:
    """Shape of a nested sequence, read from the first element of each level.

    An empty sequence at some level gives that level and all deeper ones
    extent 0. Raggedness is not checked here; see `flatten`.
    """
    if rank is None:
        rank = _nesting_depth(data)
    shape = []
    level = data
    for depth in range(rank):
        if not _is_sequence(level):
            raise RankMismatchError(
                f"Rank mismatch: data is nested {depth} deep, expected {rank}",
                expected=rank, actual=depth,
            )
        shape.append(len(level))
        if not level:
            shape.extend([0] * (rank - depth - 1))
            return tuple(shape)
        level = level[0]
    if _is_sequence(level):
        actual = _nesting_depth(data)
        raise RankMismatchError(
            f"Rank mismatch: data is nested {actual} deep, expected {rank}",
            expected=rank, actual=actual,
        )
    return tuple(shape)


def _scalar_checker(dtype: DType) -> Callable[[Any], None]:
    """Validator for leaf values: no silent truncation, wrap-around or overflow."""
    if dtype is DType.BOOL:
        def accepts(x):
            return isinstance(x, (bool, np.bool_)) or (isinstance(x, numbers.Integral) and x in (0, 1))
        lo = hi = None
    elif dtype.is_integer:
        info = np.iinfo(dtype.numpy_dtype)
        lo, hi = int(info.min), int(info.max)

        def accepts(x):
            return isinstance(x, numbers.Integral)
    else:
        limit = float(np.finfo(dtype.numpy_dtype).max)
        lo, hi = -limit, limit

        def accepts(x):
            return isinstance(x, numbers.Real)

    def check(x: Any) -> None:
        if _is_sequence(x):
            raise RankMismatchError("Rank mismatch: data is nested deeper than the declared rank")
        if not accepts(x):
            raise TypeMismatchError(
                f"Type mismatch: {type(x).__name__} value {x!r} is not a valid {dtype} element",
                expected=str(dtype), actual=type(x).__name__,
            )
        # infinities and NaN are stored as-is
        if lo is not None and (x < lo or x > hi) and not (
                isinstance(x, (float, np.floating)) and np.isinf(x)):
            raise TypeMismatchError(
                f"Value {x!r} out of range for {dtype} [{lo}, {hi}]",
                expected=str(dtype), actual=repr(x),
            )
        # large integers would be rounded by the float conversion
        if dtype.is_float and isinstance(x, numbers.Integral) and int(dtype.numpy_dtype.type(x)) != x:
            raise TypeMismatchError(
                f"Integer {x!r} is not exactly representable as {dtype}",
                expected=str(dtype), actual=repr(x),
            )

    return check


def flatten(data: Any, shape: tuple[int, ...], dtype: DType) -> np.ndarray:
    """Copy a nested sequence into a new C-contiguous array of `shape`.

    Raises RaggedSequenceError if any level's length differs from `shape`.
    """
    flat: list = []
    check = _scalar_checker(dtype)

    def walk(level: Any, depth: int) -> None:
        if depth == len(shape):
            check(level)
            flat.append(level)
            return
        if not _is_sequence(level):
            raise RankMismatchError(
                f"Rank mismatch: found a scalar at depth {depth}, expected {len(shape)} levels",
                expected=len(shape), actual=depth,
            )
        if len(level) != shape[depth]:
            raise RaggedSequenceError(
                f"Ragged input at depth {depth}: expected length {shape[depth]}, got {len(level)}",
                depth=depth, expected=shape[depth], actual=len(level),
            )
        for item in level:
            walk(item, depth + 1)

    walk(data, 0)
    return np.array(flat, dtype=dtype.numpy_dtype).reshape(shape)


def _check_array(arr: np.ndarray, rank: Optional[int], dtype: Optional[DType]) -> tuple[int, DType]:
    if rank is not None and arr.ndim != rank:
        raise RankMismatchError(
            f"Rank mismatch: array has {arr.ndim} dimensions, expected {rank}",
            expected=rank, actual=arr.ndim,
        )
    if not arr.dtype.isnative:
        raise TypeMismatchError(
            f"Array has non-native byte order {arr.dtype.str}",
            expected=str(dtype), actual=arr.dtype.str,
        )
    try:
        actual = DType.parse(arr.dtype)
    except ValueError:
        raise TypeMismatchError(
            f"Unsupported array dtype {arr.dtype}", expected=str(dtype), actual=str(arr.dtype)
        ) from None
    if dtype is not None and actual is not dtype:
        raise TypeMismatchError(
            f"Type mismatch: array has dtype {actual}, expected {dtype}",
            expected=str(dtype), actual=str(actual),
        )
    if not arr.flags.aligned:
        raise TypeMismatchError(f"Array data is not aligned for {actual}",
                                expected=str(actual), actual="unaligned")
    return arr.ndim, actual


@contextlib.contextmanager
def halide_buffer(data: Any, *, rank: int = None, dtype: Any = None) -> Iterator[Buffer]:
    """Expose host data as a Halide buffer for the duration of a `with` block.

    - numpy.ndarray: borrowed without copying; the buffer uses the array's
      strides and writes through the buffer are visible in the array.
    - nested list/tuple: copied into a contiguous row-major array owned by
      the block; `dtype` is required.
    - scalar: a rank-0 buffer holding one element; `dtype` is required.

    Raises RankMismatchError, TypeMismatchError or RaggedSequenceError when
    the data does not fit the requested rank and element type.
    """
    if dtype is not None:
        dtype = DType.parse(dtype)

    if isinstance(data, np.ndarray):
        rank, dtype = _check_array(data, rank, dtype)
        itemsize = data.dtype.itemsize
        if any(s % itemsize for s in data.strides):
            raise BufferUsageError(f"Array strides {data.strides} are not multiples of {itemsize}")
        strides = tuple(s // itemsize for s in data.strides)
        arr = data
        writeable = bool(data.flags.writeable)
    else:
        if isinstance(data, (str, bytes)):
            raise TypeError(f"Cannot build a buffer from {type(data).__name__}")
        if dtype is None:
            raise TypeError("dtype is required when building a buffer from Python sequences")
        shape = infer_shape(data, rank)
        arr = flatten(data, shape, dtype)
        rank = arr.ndim
        strides = row_major_strides(shape)
        writeable = True

    buffer_type = Buffer[rank, dtype]
    with _view(int(arr.ctypes.data), arr.shape, strides, buffer_type,
               owner=arr, writeable=writeable) as buf:
        yield buf


def with_halide_buffer(data: Any, action: Callable[[Buffer], R], *,
                       rank: int = None, dtype: Any = None) -> R:
    """Run `action` with a buffer over `data`; see `halide_buffer`."""
    with halide_buffer(data, rank=rank, dtype=dtype) as buf:
        return action(buf)


def to_numpy(buf: Buffer) -> np.ndarray:
    """Strided numpy view of the buffer's host memory (no copy).

    The view borrows the same memory as the buffer and must not outlive it.
    It is read-only when the buffer wraps a read-only numpy array.
    Device-dirty buffers are copied to host first.
    """
    if buf.device_dirty:
        runtime.copy_to_host(buf)
    shape = buf.shape
    strides = buf.strides
    np_dtype = buf.dtype.numpy_dtype
    if volume(shape) == 0:
        return np.empty(shape, dtype=np_dtype)

    itemsize = np_dtype.itemsize
    lo, hi = offset_span(shape, strides)
    base = buf.host + lo * itemsize
    span = (ctypes.c_uint8 * ((hi - lo + 1) * itemsize)).from_address(base)
    flat = np.frombuffer(span, dtype=np_dtype)
    return np.lib.stride_tricks.as_strided(
        flat[-lo:],
        shape=shape,
        strides=tuple(s * itemsize for s in strides),
        writeable=buf.writeable,
    )


def peek_to_list(buf: Buffer) -> Any:
    """Read the buffer into nested lists of depth `rank` (a scalar for rank 0).

    Elements are read at offset sum(i_k * stride_k), so any layout works,
    including negative and zero (broadcast) strides.
    """
    return to_numpy(buf).tolist()
