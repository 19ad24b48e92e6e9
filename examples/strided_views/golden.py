from __future__ import annotations

import numpy as np


def gather_ref(base: np.ndarray, shape: tuple[int, ...], strides: tuple[int, ...], offset: int = 0) -> np.ndarray:
    """Element-by-element reference for a strided read of `base` (flat)."""
    out = np.empty(shape, dtype=base.dtype)
    for idx in np.ndindex(*shape):
        out[idx] = base[offset + sum(i * s for i, s in zip(idx, strides))]
    return out
