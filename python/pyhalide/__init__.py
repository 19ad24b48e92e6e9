"""
pyhalide: Halide buffers for Python

Marshals host data into Halide's `halide_buffer_t` and back:
- Row-major stride inference: row_major_strides(shape)
- Typed, scoped buffer views over raw memory: buffer_view(ptr, shape, strides, ...)
- Nested lists / numpy arrays as buffers: halide_buffer(data, ...)
- Reading buffers back: peek_to_list(buf), to_numpy(buf)
"""

__version__ = "0.1.0"

# ============================================================
# Element types
# ============================================================

from pyhalide.types import DType, TypeCode, HalideType, dtype_of_ctype

# ============================================================
# Layouts
# ============================================================

from pyhalide.layout import (
    row_major_strides,
    col_major_strides,
    volume,
    offset_span,
    is_row_major,
)

# ============================================================
# Buffers
# ============================================================

from pyhalide.buffer import (
    HalideDimension,
    HalideBufferT,
    BufferFlag,
    Buffer,
    buffer_view,
    buffer_from_ptr_shape_strides,
    halide_buffer,
    with_halide_buffer,
    infer_shape,
    flatten,
    to_numpy,
    peek_to_list,
)

# ============================================================
# Runtime and configuration
# ============================================================

from pyhalide.config import Settings, configure_logging
from pyhalide.runtime import runtime_library_path, load_runtime, copy_to_host

# ============================================================
# Errors
# ============================================================

from pyhalide.errors import (
    HalideError,
    BufferUsageError,
    ShapeStrideArityError,
    RankMismatchError,
    TypeMismatchError,
    InvalidPointerError,
    RaggedSequenceError,
    BufferReleasedError,
    EngineError,
    RuntimeNotFoundError,
)

configure_logging(strict=False)

__all__ = [
    # Element types
    "DType",
    "TypeCode",
    "HalideType",
    "dtype_of_ctype",
    # Layouts
    "row_major_strides",
    "col_major_strides",
    "volume",
    "offset_span",
    "is_row_major",
    # Buffers
    "HalideDimension",
    "HalideBufferT",
    "BufferFlag",
    "Buffer",
    "buffer_view",
    "buffer_from_ptr_shape_strides",
    "halide_buffer",
    "with_halide_buffer",
    "infer_shape",
    "flatten",
    "to_numpy",
    "peek_to_list",
    # Runtime and configuration
    "Settings",
    "configure_logging",
    "runtime_library_path",
    "load_runtime",
    "copy_to_host",
    # Errors
    "HalideError",
    "BufferUsageError",
    "ShapeStrideArityError",
    "RankMismatchError",
    "TypeMismatchError",
    "InvalidPointerError",
    "RaggedSequenceError",
    "BufferReleasedError",
    "EngineError",
    "RuntimeNotFoundError",
]
