from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Sequence

import numpy as np

from dashtree.exceptions import DashTreeDataError, DashTreeUsageError
from dashtree.parallel import WorkerPool
from dashtree.sketch.engine import (
    DEFAULT_SEED,
    KmerHasher,
    OptDensSketch,
    RevOptDensSketch,
    SketchEngine,
    SketchParams,
)
from dashtree.sketch.kmer import KmerWidth, canonical, kmer_values, select_kmer_width
from dashtree.sketch.sequence import EncodedSequence, read_sequences
from dashtree.utils.validation import resolve_listed_path

logger = logging.getLogger(__name__)


class Densification(IntEnum):
    OPTIMAL = 0
    REVERSE_OPTIMAL = 1


_ENGINES: dict[Densification, type[OptDensSketch] | type[RevOptDensSketch]] = {
    Densification.OPTIMAL: OptDensSketch,
    Densification.REVERSE_OPTIMAL: RevOptDensSketch,
}


@dataclass(frozen=True, slots=True)
class SketchStrategy:
    """One resolved (k-mer width x densification) combination."""

    width: KmerWidth
    densification: Densification
    engine: SketchEngine

    @property
    def kmer_size(self) -> int:
        return self.engine.params.kmer_size

    @property
    def sketch_size(self) -> int:
        return self.engine.params.sketch_size

    def canonical_hasher(self) -> KmerHasher:
        k = self.kmer_size
        width = self.width

        def _hash(record: EncodedSequence) -> np.ndarray:
            return canonical(kmer_values(record, k, width), k, width)

        return _hash

    def sketch_genome(self, genome: str, base_dir: Path | None = None) -> np.ndarray:
        sequences = read_sequences(resolve_listed_path(base_dir, genome))
        signatures = self.engine.sketch_sequences(sequences, self.canonical_hasher())
        if not signatures:
            raise DashTreeDataError(
                f"Genome produced no sketch signature (no valid {self.kmer_size}-mers): {genome}"
            )
        logger.debug("Sketched %d sequences from %s", len(sequences), genome, extra={"genome": genome})
        return signatures[0]


def resolve_sketch_strategy(
    kmer_size: int,
    sketch_size: int,
    densification: int | Densification,
    *,
    seed: int | None = None,
) -> SketchStrategy:
    """Resolve the runtime k-mer width and densification variant into a sketch strategy."""

    width = select_kmer_width(kmer_size)
    try:
        variant = Densification(densification)
    except ValueError as exc:
        raise DashTreeUsageError(
            f"Invalid densification strategy {densification!r}: use 0 (optimal) or 1 (reverse optimal)."
        ) from exc
    if sketch_size <= 0:
        raise DashTreeUsageError(f"Sketch size must be positive, got {sketch_size}.")

    params = SketchParams(
        kmer_size=kmer_size,
        sketch_size=sketch_size,
        seed=DEFAULT_SEED if seed is None else seed,
    )

    logger.debug(
        "Using %s k-mers (%d-bit) with %s densification",
        width.name,
        width.storage_bits,
        variant.name.lower(),
    )
    return SketchStrategy(width=width, densification=variant, engine=_ENGINES[variant](params))


def sketch_genomes(
    genomes: Sequence[str],
    strategy: SketchStrategy,
    pool: WorkerPool,
    *,
    base_dir: Path | None = None,
) -> dict[str, np.ndarray]:
    """Sketch every genome in parallel into a signature table keyed by genome path."""

    def _sketch(genome: str) -> tuple[str, np.ndarray]:
        return genome, strategy.sketch_genome(genome, base_dir)

    signatures: dict[str, np.ndarray] = {}
    for genome, signature in pool.map_unordered(_sketch, dict.fromkeys(genomes), description="Sketching genomes"):
        if signature.size != strategy.sketch_size:
            raise DashTreeDataError(
                f"Signature for {genome} has length {signature.size}, expected {strategy.sketch_size}"
            )
        signatures[genome] = signature

    return signatures
