"""Operations on packed binary descriptors (BRISK, ORB, ...).

A descriptor is a 1-D ``uint8`` array; every byte holds 8 bits of the binary
string. BRISK descriptors are 64 bytes (512 bits).
"""

from __future__ import annotations

from typing import Sequence

import numpy as np


def as_matrix(features: Sequence[np.ndarray] | np.ndarray) -> np.ndarray:
    """Stack a list of descriptors (1-D or 1xB rows) into an N x B uint8 matrix."""
    if isinstance(features, np.ndarray):
        if features.ndim == 1:
            features = features.reshape(1, -1)
        if features.ndim != 2:
            raise ValueError(f"Expected descriptor matrix shape (N,B), got {features.shape}")
        return np.ascontiguousarray(features, dtype=np.uint8)

    if len(features) == 0:
        return np.empty((0, 0), dtype=np.uint8)
    rows = [np.asarray(f, dtype=np.uint8).reshape(-1) for f in features]
    return np.vstack(rows)


def unpack(x: np.ndarray) -> np.ndarray:
    """Expand packed descriptors into one 0/1 value per bit (N x 8B)."""
    return np.unpackbits(np.atleast_2d(np.asarray(x, dtype=np.uint8)), axis=1)


def hamming(a: np.ndarray, b: np.ndarray) -> int:
    a = np.asarray(a, dtype=np.uint8).reshape(-1)
    b = np.asarray(b, dtype=np.uint8).reshape(-1)
    if a.shape != b.shape:
        raise ValueError(f"Descriptor sizes differ: {a.shape} vs {b.shape}")
    return int(np.unpackbits(np.bitwise_xor(a, b)).sum())


def hamming_matrix(x: np.ndarray, centers: np.ndarray) -> np.ndarray:
    """Hamming distance between every row of x and every row of centers (N x K)."""
    return hamming_matrix_bits(unpack(x).astype(np.float32), unpack(centers).astype(np.float32))


def hamming_matrix_bits(xb: np.ndarray, cb: np.ndarray) -> np.ndarray:
    """Same as hamming_matrix, on already unpacked float32 bit rows.

    For 0/1 vectors ``|x - c|_1 = |x| + |c| - 2 x.c``, so one matrix product
    does the bit counting.
    """
    d = xb.sum(axis=1)[:, None] + cb.sum(axis=1)[None, :] - 2.0 * (xb @ cb.T)
    return np.rint(d).astype(np.int32)


def majority_bits(bits: np.ndarray) -> np.ndarray:
    """Packed bitwise majority of unpacked bit rows (at least ceil(N/2) votes)."""
    n = len(bits)
    if n == 0:
        raise ValueError("Cannot compute the mean of an empty descriptor set")
    counts = bits.sum(axis=0, dtype=np.int64)
    half = n // 2 + n % 2
    return np.packbits((counts >= half).astype(np.uint8))


def mean_value(descriptors: np.ndarray) -> np.ndarray:
    """Bitwise majority of a group of descriptors.

    A bit is set when at least ceil(N/2) descriptors have it set.
    """
    descriptors = as_matrix(descriptors)
    if len(descriptors) == 1:
        return descriptors[0].copy()
    return majority_bits(unpack(descriptors))


def to_string(descriptor: np.ndarray) -> str:
    return " ".join(str(int(b)) for b in np.asarray(descriptor, dtype=np.uint8).reshape(-1))


def from_string(text: str) -> np.ndarray:
    values = [int(v) for v in text.split()]
    if any(v < 0 or v > 255 for v in values):
        raise ValueError("Descriptor bytes must be in [0, 255]")
    return np.array(values, dtype=np.uint8)
