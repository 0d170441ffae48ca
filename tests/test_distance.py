from __future__ import annotations

import math

import numpy as np
import pytest

from dashtree.parallel import WorkerPool
from dashtree.phylo.distance import HAMMING_FLOOR, build_distance_matrix, hamming_distance, mash_distance


def _closed_form(hamming: float, k: int) -> float:
    jaccard = 1.0 - hamming
    return -math.log(2.0 * jaccard / (1.0 + jaccard)) / k


def test_hamming_distance_is_fraction_of_differing_positions() -> None:
    query = np.array([1.0, 2.0, 3.0, 4.0], dtype=np.float32)
    reference = np.array([1.0, 2.0, 0.0, 0.0], dtype=np.float32)

    distance = hamming_distance(query, reference)

    assert distance == pytest.approx(0.5)
    assert isinstance(distance, np.float32)


def test_hamming_distance_rejects_mismatched_signatures() -> None:
    with pytest.raises(ValueError):
        hamming_distance(np.zeros(4, dtype=np.float32), np.zeros(5, dtype=np.float32))


@pytest.mark.parametrize("hamming", [0.1, 0.2, 0.3, 0.4, 0.5, 0.9])
@pytest.mark.parametrize("k", [12, 16, 21])
def test_mash_distance_matches_closed_form(hamming: float, k: int) -> None:
    assert mash_distance(hamming, k) == pytest.approx(_closed_form(hamming, k), abs=1e-6)


def test_zero_hamming_uses_floor() -> None:
    distance = mash_distance(0.0, 16)

    assert distance == mash_distance(HAMMING_FLOOR, 16)
    assert distance > 0.0
    assert math.isfinite(distance)


def test_fully_different_signatures_give_infinite_distance() -> None:
    assert mash_distance(1.0, 16) == math.inf


def test_distance_strictly_decreases_with_jaccard() -> None:
    jaccards = np.linspace(0.05, 1.0, 40)
    distances = [mash_distance(1.0 - jaccard, 16) for jaccard in jaccards]

    assert all(later < earlier for earlier, later in zip(distances, distances[1:]))
    assert all(distance >= 0.0 for distance in distances)


def test_distance_matrix_is_symmetric_with_zero_diagonal() -> None:
    rng = np.random.default_rng(42)
    genomes = [f"genome_{idx}.fna" for idx in range(6)]
    signatures = {
        genome: rng.integers(0, 4, size=200).astype(np.float32) for genome in genomes
    }

    matrix = build_distance_matrix(signatures, genomes, 16, WorkerPool(3))

    assert matrix.shape == (6, 6)
    assert np.array_equal(matrix, matrix.T)
    assert np.all(np.diag(matrix) == 0.0)
    assert np.all(matrix >= 0.0)
    assert np.isfinite(matrix).all()


def test_distance_matrix_does_not_depend_on_pool_width() -> None:
    rng = np.random.default_rng(7)
    genomes = [f"g{idx}" for idx in range(8)]
    signatures = {genome: rng.integers(0, 3, size=64).astype(np.float32) for genome in genomes}

    single = build_distance_matrix(signatures, genomes, 21, WorkerPool(1))
    parallel = build_distance_matrix(signatures, genomes, 21, WorkerPool(4))

    assert np.array_equal(single, parallel)


def test_engineered_hamming_distances_follow_mash_transform() -> None:
    genomes = ["g0.fna", "g1.fna", "g2.fna", "g3.fna"]
    signatures = {genome: np.array([idx], dtype=np.float32) for idx, genome in enumerate(genomes)}
    pair_hamming = {
        (0, 1): 0.0,
        (0, 2): 0.1,
        (0, 3): 0.2,
        (1, 2): 0.3,
        (1, 3): 0.4,
        (2, 3): 0.5,
    }

    def _metric(query: np.ndarray, reference: np.ndarray) -> float:
        return pair_hamming[(int(query[0]), int(reference[0]))]

    matrix = build_distance_matrix(signatures, genomes, 16, WorkerPool(2), metric=_metric)

    for (i, j), hamming in pair_hamming.items():
        expected = _closed_form(hamming if hamming else HAMMING_FLOOR, 16)
        assert matrix[i, j] == pytest.approx(expected, abs=1e-6)
        assert matrix[j, i] == matrix[i, j]
