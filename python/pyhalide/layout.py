"""
Strided memory layouts.

An index (i0, i1, ..., i_{r-1}) into a buffer with strides (s0, ..., s_{r-1})
lives at flat element offset sum(i_k * s_k) from the base address.
"""

from __future__ import annotations

from collections.abc import Sequence


def row_major_strides(shape: Sequence[int]) -> tuple[int, ...]:
    """Strides of a row-major (C-contiguous) layout.

    The last dimension is contiguous; every other dimension steps over the
    product of the extents to its right.

    Example:
        row_major_strides((2, 1, 3)) == (3, 3, 1)
    """
    strides = []
    stride = 1
    for dim in reversed(shape):
        strides.append(stride)
        stride *= dim
    return tuple(reversed(strides))


def col_major_strides(shape: Sequence[int]) -> tuple[int, ...]:
    """Strides of a column-major (Fortran-contiguous) layout."""
    strides = []
    stride = 1
    for dim in shape:
        strides.append(stride)
        stride *= dim
    return tuple(strides)


def volume(shape: Sequence[int]) -> int:
    """Number of elements; 1 for the rank-0 shape."""
    n = 1
    for dim in shape:
        n *= dim
    return n


def offset_span(shape: Sequence[int], strides: Sequence[int]) -> tuple[int, int]:
    """Smallest and largest element offset touched by a strided view.

    Negative strides pull the lower bound below zero. Only meaningful for
    non-empty shapes.
    """
    lo = hi = 0
    for dim, stride in zip(shape, strides):
        reach = (dim - 1) * stride
        if reach < 0:
            lo += reach
        else:
            hi += reach
    return lo, hi


def is_row_major(shape: Sequence[int], strides: Sequence[int]) -> bool:
    """Whether strides describe a dense row-major layout.

    Dimensions of extent 1 may carry any stride.
    """
    expected = 1
    for dim, stride in zip(reversed(shape), reversed(strides)):
        if dim != 1 and stride != expected:
            return False
        expected *= dim
    return True
