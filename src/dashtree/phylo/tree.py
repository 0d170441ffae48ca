from __future__ import annotations

import io
import logging
from enum import Enum

from Bio import Phylo

from dashtree.exceptions import DashTreeDataError, DashTreeUsageError
from dashtree.phylo.nj import NeighborJoiningError, NeighborJoiningSolver, naive_neighbor_joining
from dashtree.phylo.phylip import read_phylip

logger = logging.getLogger(__name__)


class TreeMethod(str, Enum):
    NAIVE = "naive"
    RAPIDNJ = "rapidnj"
    HYBRID = "hybrid"


def parse_tree_method(value: str) -> TreeMethod:
    try:
        return TreeMethod(value.strip().lower())
    except ValueError as exc:
        raise DashTreeUsageError(f"Unknown tree method: {value}") from exc


def naive_step_count(size: int, naive_percentage: int) -> int:
    return size * naive_percentage // 100


def build_tree(
    method: TreeMethod,
    chunk_size: int,
    naive_percentage: int,
    phylip_data: bytes,
) -> str:
    """Build a neighbor-joining tree from PHYLIP matrix bytes and return it as one Newick line."""

    matrix = read_phylip(phylip_data)

    try:
        if method is TreeMethod.NAIVE:
            tree = naive_neighbor_joining(matrix)
        elif method is TreeMethod.RAPIDNJ:
            tree = NeighborJoiningSolver.rapid(matrix, chunk_size).solve()
        else:
            naive_steps = naive_step_count(matrix.size, naive_percentage)
            logger.debug("Hybrid neighbor joining: %d naive steps out of %d taxa", naive_steps, matrix.size)
            tree = NeighborJoiningSolver.hybrid(matrix, chunk_size, naive_steps).solve()
    except NeighborJoiningError as exc:
        raise DashTreeDataError(f"Error constructing tree: {exc}") from exc

    handle = io.StringIO()
    Phylo.write(tree, handle, "newick")
    return handle.getvalue().strip()
