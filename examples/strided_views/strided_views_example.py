#!/usr/bin/env python3
"""
Strided Halide buffer views over host memory.

Walks through the three ways of getting a `halide_buffer_t` for host data:
- nested Python lists (copied into a scope-owned row-major array)
- numpy arrays (borrowed, strides taken from the array)
- raw pointers with explicit shape and strides

Each view is read back with peek_to_list and checked against a numpy
reference that indexes the flat memory directly.

Usage:
    python examples/strided_views/strided_views_example.py
"""

import sys
sys.path.insert(0, 'python')

import ctypes

import numpy as np

from pyhalide import (
    Buffer, DType,
    buffer_view, halide_buffer, with_halide_buffer, peek_to_list,
    row_major_strides,
    RankMismatchError, InvalidPointerError,
)

sys.path.insert(0, 'examples/strided_views')
from golden import gather_ref


def from_lists() -> None:
    image = [[0, 1, 2, 3], [4, 5, 6, 7], [8, 9, 10, 11]]
    with halide_buffer(image, dtype=DType.U8) as buf:
        print(f"  lists -> {buf!r}")
        assert buf.strides == row_major_strides((3, 4))
        assert peek_to_list(buf) == image


def from_numpy() -> None:
    plane = np.arange(24, dtype=np.float32).reshape(4, 6)
    for name, view in (("transpose", plane.T), ("flip rows", plane[::-1]), ("every 2nd col", plane[:, ::2])):
        with halide_buffer(view) as buf:
            print(f"  numpy {name:>13}: shape={buf.shape} strides={buf.strides}")
            assert np.array_equal(np.array(peek_to_list(buf), dtype=np.float32), view)


def from_pointer() -> None:
    n = 12
    data = (ctypes.c_int32 * n)(*range(n))
    base = np.arange(n, dtype=np.int32)

    cases = [
        ((3, 4), (4, 1)),   # row-major
        ((4, 3), (1, 4)),   # column-major view of the same memory
        ((2, 4), (0, 1)),   # broadcast first dimension
    ]
    for shape, strides in cases:
        with buffer_view(data, shape, strides, buffer_type=Buffer[2, DType.I32]) as buf:
            got = np.array(peek_to_list(buf), dtype=np.int32)
            assert np.array_equal(got, gather_ref(base, shape, strides))
            print(f"  pointer shape={shape} strides={strides}: ok")


def failures() -> None:
    try:
        with_halide_buffer([1, 2, 3], lambda b: None, rank=2, dtype=DType.I32)
    except RankMismatchError as e:
        print(f"  rank mismatch: {e}")
    try:
        with buffer_view(None, (2, 2), rank=2, dtype=DType.F32):
            pass
    except InvalidPointerError as e:
        print(f"  null pointer: {e}")


def main():
    print("=" * 60)
    print("Strided Halide buffer views")
    print("=" * 60)
    print()
    print("Nested lists:")
    from_lists()
    print("numpy arrays:")
    from_numpy()
    print("Raw pointers:")
    from_pointer()
    print("Checked failures:")
    failures()
    print()
    print("Example completed successfully!")
    print("=" * 60)


if __name__ == "__main__":
    main()
