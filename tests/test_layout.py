"""
Tests for strided layouts: row-major stride inference and offset spans.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'python'))

import math

import numpy as np
import pytest
from hypothesis import given, settings, strategies as st

from pyhalide.layout import (
    row_major_strides,
    col_major_strides,
    volume,
    offset_span,
    is_row_major,
)


class TestRowMajorStrides:
    """Row-major (C order) stride inference."""

    def test_literal_cases(self):
        assert row_major_strides([1, 1, 1]) == (1, 1, 1)
        assert row_major_strides([2, 1, 3]) == (3, 3, 1)
        assert row_major_strides([3, 2]) == (2, 1)
        assert row_major_strides([]) == ()

    def test_zero_extent(self):
        """Zero extents are not special-cased."""
        assert row_major_strides([4, 0, 5]) == (0, 5, 1)
        assert row_major_strides([0]) == (1,)

    def test_matches_numpy(self):
        shape = (2, 3, 4)
        a = np.zeros(shape, dtype=np.int32)
        expected = tuple(s // a.itemsize for s in a.strides)
        assert row_major_strides(shape) == expected

    @given(st.lists(st.integers(min_value=0, max_value=20), min_size=0, max_size=3))
    @settings(max_examples=200)
    def test_stride_is_product_of_trailing_extents(self, shape):
        strides = row_major_strides(shape)
        assert len(strides) == len(shape)
        for k in range(len(shape)):
            assert strides[k] == math.prod(shape[k + 1:])

    @given(st.lists(st.integers(min_value=1, max_value=10), min_size=1, max_size=3))
    def test_last_dimension_is_contiguous(self, shape):
        assert row_major_strides(shape)[-1] == 1


class TestOtherLayouts:
    def test_col_major(self):
        assert col_major_strides([3, 2]) == (1, 3)
        assert col_major_strides([2, 1, 3]) == (1, 2, 2)
        assert col_major_strides([]) == ()

    def test_volume(self):
        assert volume([]) == 1
        assert volume([3, 2]) == 6
        assert volume([3, 0, 2]) == 0

    def test_offset_span(self):
        assert offset_span([3, 2], [2, 1]) == (0, 5)
        assert offset_span([3], [-1]) == (-2, 0)
        # Broadcast dimension touches a single offset
        assert offset_span([4, 3], [0, 1]) == (0, 2)

    def test_is_row_major(self):
        assert is_row_major([3, 2], [2, 1])
        assert not is_row_major([3, 2], [1, 3])
        # Unit dimensions may carry any stride
        assert is_row_major([1, 4], [99, 1])
