"""
Exception Hierarchy for the pyhalide buffer layer.

All exceptions inherit from HalideError for consistent error handling.

Exception Hierarchy:
    HalideError (base)
    ├── BufferUsageError (descriptor construction / usage failures)
    │   ├── ShapeStrideArityError (len(shape) != len(strides))
    │   ├── RankMismatchError (rank differs from the declared rank)
    │   ├── TypeMismatchError (element type differs from the declared type)
    │   ├── InvalidPointerError (null host pointer with non-zero volume)
    │   ├── RaggedSequenceError (nested input of inconsistent lengths)
    │   └── BufferReleasedError (handle used outside its scope)
    └── EngineError (failures reported by the Halide runtime)
        └── RuntimeNotFoundError (runtime library cannot be located)
"""

from __future__ import annotations


class HalideError(Exception):
    """Base exception for all pyhalide errors.

    Example:
        try:
            with_halide_buffer(xs, action, rank=2, dtype=DType.F32)
        except HalideError as e:
            print(f"halide error: {e}")
    """
    pass


# ============================================================
# Buffer Errors
# ============================================================

class BufferUsageError(HalideError):
    """Invalid construction or use of a buffer descriptor.

    These are usage errors: they are raised as soon as they are detected and
    before any foreign memory is allocated.
    """
    pass


class ShapeStrideArityError(BufferUsageError):
    """Shape and strides have different lengths.

    Attributes:
        shape: The offending shape
        strides: The offending strides
    """
    def __init__(self, message: str, shape: tuple = None, strides: tuple = None):
        self.shape = shape
        self.strides = strides
        super().__init__(message)


class RankMismatchError(BufferUsageError):
    """Supplied rank differs from the statically requested rank.

    Attributes:
        expected: Declared rank
        actual: Rank found in the data / shape
    """
    def __init__(self, message: str, expected: int = None, actual: int = None):
        self.expected = expected
        self.actual = actual
        super().__init__(message)


class TypeMismatchError(BufferUsageError):
    """Element type of the data differs from the statically requested type.

    Attributes:
        expected: Declared element type
        actual: Element type found
    """
    def __init__(self, message: str, expected: str = None, actual: str = None):
        self.expected = expected
        self.actual = actual
        super().__init__(message)


class InvalidPointerError(BufferUsageError):
    """Null host pointer paired with a non-zero-volume shape."""
    pass


class RaggedSequenceError(BufferUsageError):
    """Nested sequence whose inner lengths differ at the same depth.

    Attributes:
        depth: Nesting depth at which the mismatch was found (0 = outermost)
        expected: Length inferred from the first element at that depth
        actual: Length of the offending element
    """
    def __init__(self, message: str, depth: int = None, expected: int = None, actual: int = None):
        self.depth = depth
        self.expected = expected
        self.actual = actual
        super().__init__(message)


class BufferReleasedError(BufferUsageError):
    """Buffer handle accessed after the scope that created it has exited."""
    def __init__(self, message: str = "Buffer handle used after its scope has ended"):
        super().__init__(message)


# ============================================================
# Engine Errors
# ============================================================

class EngineError(HalideError):
    """Error reported by the Halide runtime.

    Attributes:
        message: Error description
        status: Non-zero status code returned by the runtime (if available)
    """
    def __init__(self, message: str, status: int = None):
        self.status = status
        super().__init__(message)


class RuntimeNotFoundError(EngineError):
    """The Halide runtime shared library could not be located."""
    pass


# ============================================================
# __all__ exports
# ============================================================

__all__ = [
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
