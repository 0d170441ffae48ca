"""Densified one-permutation MinHash engines.

Every hashed k-mer falls into one of ``sketch_size`` bins and each bin keeps the
smallest uniform value it has seen. Bins that stay empty are filled from filled
bins with a probe sequence that depends only on bin indices and the seed, so
signatures computed for different genomes stay position-wise comparable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol, Sequence

import numpy as np

from dashtree.sketch.sequence import EncodedSequence

KmerHasher = Callable[[EncodedSequence], np.ndarray]

DEFAULT_SEED = 0x2545F4914F6CDD1D

_GOLDEN_GAMMA = np.uint64(0x9E3779B97F4A7C15)
_MIX_1 = np.uint64(0xBF58476D1CE4E5B9)
_MIX_2 = np.uint64(0x94D049BB133111EB)
_UNIT_SCALE = float(2.0**-53)


def mix64(values: np.ndarray) -> np.ndarray:
    """SplitMix64 finalizer applied element-wise (uint64, wrapping arithmetic)."""

    x = np.asarray(values, dtype=np.uint64)
    with np.errstate(over="ignore"):
        x = x + _GOLDEN_GAMMA
        x = (x ^ (x >> np.uint64(30))) * _MIX_1
        x = (x ^ (x >> np.uint64(27))) * _MIX_2
    return x ^ (x >> np.uint64(31))


def _probe(indices: np.ndarray, attempt: int, seed: int, sketch_size: int) -> np.ndarray:
    salt = mix64(np.asarray([seed ^ attempt], dtype=np.uint64))[0]
    return (mix64(indices.astype(np.uint64) ^ salt) % np.uint64(sketch_size)).astype(np.int64)


@dataclass(frozen=True, slots=True)
class SketchParams:
    kmer_size: int
    sketch_size: int
    seed: int = DEFAULT_SEED


class SketchEngine(Protocol):
    params: SketchParams

    def sketch_sequences(
        self,
        sequences: Sequence[EncodedSequence],
        hasher: KmerHasher,
    ) -> list[np.ndarray]: ...


class _OnePermutationSketch:
    """Shared binning step; subclasses only differ in how empty bins are densified."""

    def __init__(self, params: SketchParams) -> None:
        if params.sketch_size <= 0:
            raise ValueError("`sketch_size` must be positive.")
        self.params = params

    def _bin_minima(self, sequences: Sequence[EncodedSequence], hasher: KmerHasher) -> np.ndarray:
        sketch_size = self.params.sketch_size
        minima = np.full(sketch_size, np.inf, dtype=np.float64)
        seed = np.uint64(self.params.seed)

        for sequence in sequences:
            items = hasher(sequence)
            if items.size == 0:
                continue
            first = mix64(items.astype(np.uint64) ^ seed)
            second = mix64(first)
            bins = (first % np.uint64(sketch_size)).astype(np.int64)
            values = (second >> np.uint64(11)).astype(np.float64) * _UNIT_SCALE
            np.minimum.at(minima, bins, values)

        return minima

    def _densify(self, minima: np.ndarray, filled: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def sketch_sequences(
        self,
        sequences: Sequence[EncodedSequence],
        hasher: KmerHasher,
    ) -> list[np.ndarray]:
        """Sketch all sequences of one genome together into a single signature."""

        minima = self._bin_minima(sequences, hasher)
        filled = np.isfinite(minima)
        if not filled.any():
            return []
        if not filled.all():
            minima = self._densify(minima, filled)
        return [minima.astype(np.float32)]


class OptDensSketch(_OnePermutationSketch):
    """Optimal densification: each empty bin probes random bins until one was filled by hashing."""

    def _densify(self, minima: np.ndarray, filled: np.ndarray) -> np.ndarray:
        densified = minima.copy()
        pending = np.flatnonzero(~filled)
        attempt = 0
        while pending.size:
            donors = _probe(pending, attempt, self.params.seed, self.params.sketch_size)
            hit = filled[donors]
            densified[pending[hit]] = minima[donors[hit]]
            pending = pending[~hit]
            attempt += 1
        return densified


class RevOptDensSketch(_OnePermutationSketch):
    """Reverse optimal densification: filled bins push their value to random empty bins in rounds."""

    def _densify(self, minima: np.ndarray, filled: np.ndarray) -> np.ndarray:
        densified = minima.copy()
        empty = ~filled
        donors = np.flatnonzero(filled)
        attempt = 0
        while empty.any():
            targets = _probe(donors, attempt, self.params.seed, self.params.sketch_size)
            accepted = empty[targets]
            if accepted.any():
                proposed_targets = targets[accepted]
                proposed_donors = donors[accepted]
                # donors are in ascending order, so the first hit per target is the lowest index
                winners, first = np.unique(proposed_targets, return_index=True)
                densified[winners] = minima[proposed_donors[first]]
                empty[winners] = False
            attempt += 1
        return densified
