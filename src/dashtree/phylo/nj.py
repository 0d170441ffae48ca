"""Neighbor-joining over a square distance matrix.

The naive method is Biopython's ``DistanceTreeConstructor.nj``. The solver in
this module adds the searches Biopython lacks. Both look for the pair minimizing
``Q(i, j) = (m - 2) * d(i, j) - r(i) - r(j)`` at each step:

* rapid: RapidNJ-style search over per-node rows sorted by distance. A row is
  scanned ``chunk_size`` entries at a time and abandoned as soon as
  ``(m - 2) * d - r(i) - max(r)`` can no longer beat the best Q found;
* hybrid: a full Q scan for the first ``naive_steps`` joins, rapid afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from Bio.Phylo.BaseTree import Clade, Tree
from Bio.Phylo.TreeConstruction import DistanceMatrix, DistanceTreeConstructor

from dashtree.phylo.phylip import PhylipMatrix

logger = logging.getLogger(__name__)


class NeighborJoiningError(ValueError):
    pass


def _checked_values(matrix: PhylipMatrix) -> np.ndarray:
    values = np.asarray(matrix.values, dtype=np.float64)
    n = matrix.size
    if n == 0:
        raise NeighborJoiningError("Distance matrix is empty.")
    if values.shape != (n, n):
        raise NeighborJoiningError(f"Distance matrix must be {n}x{n}, got {values.shape}.")
    if not np.isfinite(values).all():
        raise NeighborJoiningError("Distance matrix contains non-finite distances.")
    if not np.allclose(values, values.T, rtol=0.0, atol=1e-9):
        raise NeighborJoiningError("Distance matrix is not symmetric.")
    return values


def naive_neighbor_joining(matrix: PhylipMatrix) -> Tree:
    """Canonical neighbor joining with Biopython's tree constructor."""

    values = _checked_values(matrix)
    # Positional labels keep duplicate genome names apart inside DistanceMatrix.
    labels = [str(idx) for idx in range(matrix.size)]
    lower = [[float(value) for value in values[i, : i + 1]] for i in range(matrix.size)]
    tree = DistanceTreeConstructor().nj(DistanceMatrix(labels, lower))

    for leaf in tree.get_terminals():
        leaf.name = matrix.names[int(leaf.name)]
    for inner in tree.get_nonterminals():
        inner.name = None
    tree.rooted = False
    return tree


@dataclass(slots=True)
class _SortedRow:
    distances: np.ndarray
    nodes: np.ndarray


class NeighborJoiningSolver:
    def __init__(self, matrix: PhylipMatrix, *, chunk_size: int, naive_steps: int = 0) -> None:
        if chunk_size < 1:
            raise NeighborJoiningError("`chunk_size` must be >= 1.")
        self.matrix = matrix
        self.chunk_size = chunk_size
        self.naive_steps = naive_steps

    @classmethod
    def rapid(cls, matrix: PhylipMatrix, chunk_size: int) -> "NeighborJoiningSolver":
        return cls(matrix, chunk_size=chunk_size)

    @classmethod
    def hybrid(cls, matrix: PhylipMatrix, chunk_size: int, naive_steps: int) -> "NeighborJoiningSolver":
        return cls(matrix, chunk_size=chunk_size, naive_steps=naive_steps)

    def solve(self) -> Tree:
        values = _checked_values(self.matrix)
        n = self.matrix.size
        capacity = max(2 * n - 2, n)

        self._distances = np.zeros((capacity, capacity), dtype=np.float64)
        self._distances[:n, :n] = values
        self._active = np.zeros(capacity, dtype=bool)
        self._active[:n] = True
        self._sums = np.zeros(capacity, dtype=np.float64)
        self._sums[:n] = values.sum(axis=1)
        self._clades: dict[int, Clade] = {
            idx: Clade(name=name, branch_length=0.0) for idx, name in enumerate(self.matrix.names)
        }
        self._rows: dict[int, _SortedRow] = {}
        self._next_node = n

        step = 0
        while int(self._active.sum()) > 3:
            if step < self.naive_steps:
                left, right = self._canonical_search()
            else:
                if not self._rows:
                    self._build_rows()
                left, right = self._rapid_search()
            self._join(left, right)
            step += 1

        root = self._terminate()
        logger.debug("Neighbor joining finished after %d joins", step)
        return Tree(root=root, rooted=False)

    def _active_nodes(self) -> np.ndarray:
        return np.flatnonzero(self._active)

    def _canonical_search(self) -> tuple[int, int]:
        nodes = self._active_nodes()
        m = nodes.size
        sums = self._sums[nodes]
        q = (m - 2) * self._distances[np.ix_(nodes, nodes)] - sums[:, None] - sums[None, :]
        q[np.tril_indices(m)] = np.inf
        flat = int(np.argmin(q))
        return int(nodes[flat // m]), int(nodes[flat % m])

    def _sorted_row(self, node: int) -> _SortedRow:
        others = self._active_nodes()
        others = others[others != node]
        distances = self._distances[node, others]
        order = np.argsort(distances, kind="stable")
        return _SortedRow(distances=distances[order], nodes=others[order])

    def _build_rows(self) -> None:
        for node in self._active_nodes():
            self._rows[int(node)] = self._sorted_row(int(node))

    def _rapid_search(self) -> tuple[int, int]:
        nodes = self._active_nodes()
        m = nodes.size
        max_sum = float(self._sums[nodes].max())
        best_q = np.inf
        best: tuple[int, int] | None = None

        for node in nodes:
            row = self._rows[int(node)]
            node_sum = self._sums[node]
            for start in range(0, row.nodes.size, self.chunk_size):
                chunk_distances = row.distances[start : start + self.chunk_size]
                if (m - 2) * chunk_distances[0] - node_sum - max_sum >= best_q:
                    break
                chunk_nodes = row.nodes[start : start + self.chunk_size]
                q = (m - 2) * chunk_distances - node_sum - self._sums[chunk_nodes]
                q[~self._active[chunk_nodes]] = np.inf
                idx = int(np.argmin(q))
                if q[idx] < best_q:
                    best_q = float(q[idx])
                    best = (int(node), int(chunk_nodes[idx]))

        if best is None:
            raise NeighborJoiningError("Rapid search found no joinable pair.")
        return best

    def _join(self, left: int, right: int) -> None:
        nodes = self._active_nodes()
        m = nodes.size
        d = self._distances
        d_lr = d[left, right]

        left_length = 0.5 * d_lr + (self._sums[left] - self._sums[right]) / (2.0 * (m - 2))
        right_length = d_lr - left_length

        parent = self._next_node
        self._next_node += 1
        others = nodes[(nodes != left) & (nodes != right)]

        new_distances = 0.5 * (d[left, others] + d[right, others] - d_lr)
        d[parent, others] = new_distances
        d[others, parent] = new_distances

        self._sums[others] += new_distances - d[left, others] - d[right, others]
        self._sums[parent] = new_distances.sum()
        self._active[[left, right]] = False
        self._active[parent] = True

        left_clade = self._clades.pop(left)
        right_clade = self._clades.pop(right)
        left_clade.branch_length = float(left_length)
        right_clade.branch_length = float(right_length)
        self._clades[parent] = Clade(branch_length=0.0, clades=[left_clade, right_clade])

        self._rows.pop(left, None)
        self._rows.pop(right, None)
        if self._rows:
            self._rows[parent] = self._sorted_row(parent)

    def _terminate(self) -> Clade:
        nodes = [int(node) for node in self._active_nodes()]
        d = self._distances

        if len(nodes) == 1:
            return Clade(branch_length=0.0, clades=[self._clades[nodes[0]]])

        if len(nodes) == 2:
            a, b = nodes
            for node in nodes:
                self._clades[node].branch_length = float(d[a, b]) / 2.0
            return Clade(branch_length=0.0, clades=[self._clades[a], self._clades[b]])

        a, b, c = nodes
        lengths = {
            a: 0.5 * (d[a, b] + d[a, c] - d[b, c]),
            b: 0.5 * (d[a, b] + d[b, c] - d[a, c]),
            c: 0.5 * (d[a, c] + d[b, c] - d[a, b]),
        }
        for node, length in lengths.items():
            self._clades[node].branch_length = float(length)
        return Clade(branch_length=0.0, clades=[self._clades[node] for node in nodes])
