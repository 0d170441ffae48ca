from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from dashtree.exceptions import DashTreeUsageError
from dashtree.sketch.sequence import AMBIGUOUS_CODE, EncodedSequence

NB_ALPHABET_BITS = 2


@dataclass(frozen=True, slots=True)
class KmerWidth:
    """Fixed-width integer representation of a compressed k-mer."""

    name: str
    storage_bits: int
    max_k: int
    dtype: type[np.unsignedinteger]

    def supports(self, k: int) -> bool:
        return 0 < k <= self.max_k

    def mask(self, k: int) -> np.unsignedinteger:
        return self.dtype((1 << (NB_ALPHABET_BITS * k)) - 1)


# The narrow width reserves 4 of its 32 bits for the base count.
NARROW = KmerWidth(name="narrow", storage_bits=32, max_k=14, dtype=np.uint32)
MEDIUM = KmerWidth(name="medium", storage_bits=32, max_k=16, dtype=np.uint32)
WIDE = KmerWidth(name="wide", storage_bits=64, max_k=32, dtype=np.uint64)


def select_kmer_width(k: int) -> KmerWidth:
    """Pick the k-mer representation for a k-mer size (k <= 14, k == 16 or 16 < k <= 32)."""

    if 0 < k <= NARROW.max_k:
        return NARROW
    if k == MEDIUM.max_k:
        return MEDIUM
    if MEDIUM.max_k < k <= WIDE.max_k:
        return WIDE
    raise DashTreeUsageError(
        f"Invalid k-mer size {k}: k-mers must be between 1 and 14, exactly 16, or between 17 and 32."
    )


def kmer_values(record: EncodedSequence, k: int, width: KmerWidth) -> np.ndarray:
    """Pack every k-mer window free of ambiguous bases into integers, 2 bits per base."""

    codes = record.codes
    n_windows = codes.size - k + 1
    if n_windows <= 0:
        return np.empty(0, dtype=width.dtype)

    two = width.dtype(NB_ALPHABET_BITS)
    base_bits = (codes & 3).astype(width.dtype)
    values = np.zeros(n_windows, dtype=width.dtype)
    for offset in range(k):
        values = (values << two) | base_bits[offset : offset + n_windows]

    ambiguous = np.concatenate(([0], np.cumsum(codes == AMBIGUOUS_CODE)))
    clean = (ambiguous[k:] - ambiguous[:-k]) == 0
    return values[clean]


def reverse_complement(values: np.ndarray, k: int, width: KmerWidth) -> np.ndarray:
    two = width.dtype(NB_ALPHABET_BITS)
    low_bits = width.dtype(3)
    complement = np.asarray(values, dtype=width.dtype) ^ width.mask(k)
    reverse = np.zeros_like(complement)
    for _ in range(k):
        reverse = (reverse << two) | (complement & low_bits)
        complement = complement >> two
    return reverse


def canonical(values: np.ndarray, k: int, width: KmerWidth) -> np.ndarray:
    """Return min(k-mer, reverse complement) masked to the k-mer's bit length."""

    values = np.asarray(values, dtype=width.dtype)
    return np.minimum(values, reverse_complement(values, k, width)) & width.mask(k)
