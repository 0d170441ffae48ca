from __future__ import annotations

import numpy as np
import pytest

from dashtree.sketch.dispatch import resolve_sketch_strategy
from dashtree.sketch.kmer import canonical, kmer_values, reverse_complement, select_kmer_width
from dashtree.sketch.sequence import encode_bases

COMPLEMENT = str.maketrans("ACGT", "TGCA")


def _random_sequence(length: int, seed: int) -> str:
    rng = np.random.default_rng(seed)
    return "".join(rng.choice(list("ACGT"), size=length))


def _revcomp(sequence: str) -> str:
    return sequence.translate(COMPLEMENT)[::-1]


def test_kmer_values_pack_two_bits_per_base() -> None:
    width = select_kmer_width(2)
    values = kmer_values(encode_bases("ACGT"), 2, width)

    assert values.tolist() == [0b0001, 0b0110, 0b1011]


def test_kmer_values_skip_windows_with_ambiguous_bases() -> None:
    width = select_kmer_width(2)
    values = kmer_values(encode_bases("ACNGT"), 2, width)

    assert values.tolist() == [0b0001, 0b1011]


def test_kmer_values_empty_when_sequence_shorter_than_k() -> None:
    width = select_kmer_width(16)
    assert kmer_values(encode_bases("ACGT"), 16, width).size == 0


def test_reverse_complement_of_single_kmer() -> None:
    width = select_kmer_width(3)
    aac = kmer_values(encode_bases("AAC"), 3, width)
    gtt = kmer_values(encode_bases("GTT"), 3, width)

    assert reverse_complement(aac, 3, width).tolist() == gtt.tolist()


@pytest.mark.parametrize("k", [5, 14, 16, 21, 32])
def test_canonical_is_strand_independent(k: int) -> None:
    width = select_kmer_width(k)
    values = kmer_values(encode_bases(_random_sequence(300, seed=k)), k, width)
    reverse = reverse_complement(values, k, width)

    assert np.array_equal(reverse_complement(reverse, k, width), values)
    assert np.array_equal(canonical(values, k, width), canonical(reverse, k, width))
    assert np.all(canonical(values, k, width) <= values)
    assert np.all(canonical(values, k, width) <= reverse)


@pytest.mark.parametrize("densification", [0, 1])
def test_sketch_of_reverse_complement_matches(densification: int) -> None:
    strategy = resolve_sketch_strategy(16, 128, densification)
    sequence = _random_sequence(2000, seed=7)

    forward = strategy.engine.sketch_sequences([encode_bases(sequence)], strategy.canonical_hasher())
    reverse = strategy.engine.sketch_sequences([encode_bases(_revcomp(sequence))], strategy.canonical_hasher())

    assert np.array_equal(forward[0], reverse[0])
