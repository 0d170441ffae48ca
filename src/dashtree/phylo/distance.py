from __future__ import annotations

import logging
import math
from typing import Callable, Mapping, Sequence

import numpy as np

from dashtree.parallel import WorkerPool

logger = logging.getLogger(__name__)

# Stand-in for an exact zero Hamming distance so the log transform never sees J == 1.
HAMMING_FLOOR = float(np.finfo(np.float32).eps)

HammingMetric = Callable[[np.ndarray, np.ndarray], float]


def hamming_distance(query: np.ndarray, reference: np.ndarray) -> np.float32:
    """Fraction of signature positions that differ, in single precision."""

    if query.shape != reference.shape:
        raise ValueError(f"Signature shapes differ: {query.shape} vs {reference.shape}")
    differing = np.count_nonzero(query != reference)
    return np.float32(differing) / np.float32(query.size)


def mash_distance(hamming: float, kmer_size: int) -> float:
    """Mash distance -ln(2J / (1 + J)) / k with J = 1 - Hamming."""

    hamming32 = np.float32(hamming)
    if hamming32 == 0.0:
        hamming32 = np.float32(HAMMING_FLOOR)
    jaccard = np.float32(1.0) - hamming32
    numerator = np.float32(2.0) * jaccard
    denominator = np.float32(1.0) + jaccard
    fraction = float(numerator) / float(denominator)
    if fraction <= 0.0:
        return math.inf
    return -math.log(fraction) / float(kmer_size)


def build_distance_matrix(
    signatures: Mapping[str, np.ndarray],
    genomes: Sequence[str],
    kmer_size: int,
    pool: WorkerPool,
    *,
    metric: HammingMetric = hamming_distance,
) -> np.ndarray:
    """Fill the symmetric Mash distance matrix for ``genomes`` in parallel, one task per row."""

    n = len(genomes)

    def _row(i: int) -> list[tuple[int, int, float]]:
        query = signatures[genomes[i]]
        return [
            (i, j, mash_distance(metric(query, signatures[genomes[j]]), kmer_size))
            for j in range(i + 1, n)
        ]

    matrix = np.zeros((n, n), dtype=np.float64)
    for row in pool.map_unordered(_row, range(n), description="Computing distances"):
        for i, j, distance in row:
            matrix[i, j] = distance
            matrix[j, i] = distance

    non_finite = int(np.count_nonzero(~np.isfinite(matrix)))
    if non_finite:
        logger.warning("%d distance matrix entries are infinite (no shared sketch bins)", non_finite // 2)
    return matrix
