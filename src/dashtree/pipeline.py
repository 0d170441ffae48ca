from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from dashtree.config import BuildConfig, TreeConfig
from dashtree.exceptions import DashTreeInputError, DashTreeUsageError
from dashtree.parallel import WorkerPool
from dashtree.phylo.distance import build_distance_matrix
from dashtree.phylo.phylip import format_phylip, genome_name
from dashtree.phylo.tree import build_tree
from dashtree.sketch.dispatch import resolve_sketch_strategy, sketch_genomes
from dashtree.sketch.sequence import read_genome_list
from dashtree.utils.io import write_bytes, write_text
from dashtree.utils.validation import validate_existing_file

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PipelineResult:
    genomes: list[str]
    signatures: dict[str, np.ndarray]
    matrix: np.ndarray
    phylip: bytes
    newick: str
    output_paths: list[Path] = field(default_factory=list)


def emit_tree(newick: str, output_tree: Path | None) -> Path | None:
    """Write the Newick line to ``output_tree`` or to standard output."""

    if output_tree is None:
        sys.stdout.write(f"{newick}\n")
        sys.stdout.flush()
        return None
    return write_text(output_tree, f"{newick}\n")


def run_pipeline(cfg: BuildConfig, pool: WorkerPool) -> PipelineResult:
    """Genome list -> sketches -> distance matrix -> PHYLIP -> neighbor-joining tree."""

    if cfg.input_list is None:
        raise DashTreeUsageError("Missing genome list. Provide --input or set build.input_list in config.")

    strategy = resolve_sketch_strategy(cfg.kmer_size, cfg.sketch_size, cfg.densification)

    genomes = read_genome_list(cfg.input_list)
    logger.info("Loaded %d genomes from %s", len(genomes), cfg.input_list)

    logger.info("Sketching all genomes...")
    signatures = sketch_genomes(genomes, strategy, pool, base_dir=cfg.input_list.parent)

    logger.info("Building PHYLIP distance matrix...")
    matrix = build_distance_matrix(signatures, genomes, cfg.kmer_size, pool)
    phylip = format_phylip([genome_name(genome) for genome in genomes], matrix)

    output_paths: list[Path] = []
    if cfg.output_matrix is not None:
        output_paths.append(write_bytes(cfg.output_matrix, phylip))
        logger.info("Distance matrix written to %s", cfg.output_matrix)

    logger.info("Constructing the tree...")
    newick = build_tree(cfg.tree_method, cfg.chunk_size, cfg.naive_percentage, phylip)

    tree_path = emit_tree(newick, cfg.output_tree)
    if tree_path is not None:
        output_paths.append(tree_path)
        logger.info("Tree written to %s", tree_path)

    return PipelineResult(
        genomes=genomes,
        signatures=signatures,
        matrix=matrix,
        phylip=phylip,
        newick=newick,
        output_paths=output_paths,
    )


def run_tree_from_matrix(cfg: TreeConfig) -> str:
    """Rebuild a tree from a PHYLIP matrix file written by an earlier run."""

    if cfg.input_matrix is None:
        raise DashTreeUsageError("Missing distance matrix. Provide --matrix or set tree.input_matrix in config.")

    validate_existing_file(cfg.input_matrix, "Distance matrix file")
    try:
        phylip = cfg.input_matrix.read_bytes()
    except OSError as exc:
        raise DashTreeInputError(f"Cannot read distance matrix file {cfg.input_matrix}: {exc}") from exc

    logger.info("Constructing the tree...")
    newick = build_tree(cfg.tree_method, cfg.chunk_size, cfg.naive_percentage, phylip)
    emit_tree(newick, cfg.output_tree)
    return newick
