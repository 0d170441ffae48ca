"""Sequence loading, k-mer encoding and genome sketching."""

from dashtree.sketch.dispatch import Densification, SketchStrategy, resolve_sketch_strategy, sketch_genomes
from dashtree.sketch.sequence import EncodedSequence, read_genome_list, read_sequences

__all__ = [
    "Densification",
    "EncodedSequence",
    "SketchStrategy",
    "read_genome_list",
    "read_sequences",
    "resolve_sketch_strategy",
    "sketch_genomes",
]
