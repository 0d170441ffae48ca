"""Distance estimation, PHYLIP matrices and neighbor-joining trees."""

from dashtree.phylo.distance import HAMMING_FLOOR, build_distance_matrix, hamming_distance, mash_distance
from dashtree.phylo.phylip import PhylipMatrix, format_phylip, genome_name, read_phylip
from dashtree.phylo.tree import TreeMethod, build_tree, parse_tree_method

__all__ = [
    "HAMMING_FLOOR",
    "PhylipMatrix",
    "TreeMethod",
    "build_distance_matrix",
    "build_tree",
    "format_phylip",
    "genome_name",
    "hamming_distance",
    "mash_distance",
    "parse_tree_method",
    "read_phylip",
]
