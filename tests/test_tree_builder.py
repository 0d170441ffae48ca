from __future__ import annotations

import io

import numpy as np
import pytest
from Bio import Phylo

from dashtree.exceptions import DashTreeDataError, DashTreeUsageError
from dashtree.parallel import WorkerPool
from dashtree.phylo.distance import build_distance_matrix
from dashtree.phylo.phylip import format_phylip, genome_name
from dashtree.phylo.tree import TreeMethod, build_tree, naive_step_count, parse_tree_method

GENOMES = ["data/g0.fna", "data/g1.fna", "data/g2.fna", "data/g3.fna"]
PAIR_HAMMING = {
    (0, 1): 0.0,
    (0, 2): 0.1,
    (0, 3): 0.2,
    (1, 2): 0.3,
    (1, 3): 0.4,
    (2, 3): 0.5,
}


def _scenario_phylip() -> bytes:
    signatures = {genome: np.array([idx], dtype=np.float32) for idx, genome in enumerate(GENOMES)}

    def _metric(query: np.ndarray, reference: np.ndarray) -> float:
        return PAIR_HAMMING[(int(query[0]), int(reference[0]))]

    matrix = build_distance_matrix(signatures, GENOMES, 16, WorkerPool(2), metric=_metric)
    return format_phylip([genome_name(genome) for genome in GENOMES], matrix)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("naive", TreeMethod.NAIVE),
        ("RapidNJ", TreeMethod.RAPIDNJ),
        ("HYBRID", TreeMethod.HYBRID),
        (" hybrid ", TreeMethod.HYBRID),
    ],
)
def test_parse_tree_method_is_case_insensitive(value: str, expected: TreeMethod) -> None:
    assert parse_tree_method(value) is expected


def test_parse_tree_method_rejects_unknown_names() -> None:
    with pytest.raises(DashTreeUsageError, match="Unknown tree method: upgma"):
        parse_tree_method("upgma")


@pytest.mark.parametrize(
    ("size", "percentage", "expected"),
    [(4, 90, 3), (10, 90, 9), (10, 0, 0), (7, 100, 7), (3, 50, 1)],
)
def test_naive_step_count_rounds_down(size: int, percentage: int, expected: int) -> None:
    assert naive_step_count(size, percentage) == expected


@pytest.mark.parametrize("method", list(TreeMethod))
def test_build_tree_returns_single_newick_line(method: TreeMethod) -> None:
    newick = build_tree(method, 30, 90, _scenario_phylip())

    assert "\n" not in newick
    assert newick.endswith(";")

    tree = Phylo.read(io.StringIO(newick), "newick")
    names = [leaf.name for leaf in tree.get_terminals()]
    assert sorted(names) == ["g0.fna", "g1.fna", "g2.fna", "g3.fna"]


def test_tree_methods_agree_on_branch_lengths() -> None:
    phylip = _scenario_phylip()
    totals = []
    for method in TreeMethod:
        tree = Phylo.read(io.StringIO(build_tree(method, 1, 50, phylip)), "newick")
        totals.append(tree.total_branch_length())

    assert totals == pytest.approx([totals[0]] * len(totals), abs=1e-4)


def test_build_tree_rejects_infinite_distances() -> None:
    phylip = b"2\na.fa       0.000000      inf\nb.fa            inf 0.000000\n"

    with pytest.raises(DashTreeDataError, match="Error constructing tree"):
        build_tree(TreeMethod.RAPIDNJ, 30, 90, phylip)


def test_build_tree_rejects_malformed_matrix() -> None:
    with pytest.raises(DashTreeDataError, match="phylip"):
        build_tree(TreeMethod.NAIVE, 30, 90, b"3\na 0.0 0.1 0.2\n")
