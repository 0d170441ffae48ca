from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import numpy as np
from Bio.SeqIO.FastaIO import SimpleFastaParser
from Bio.SeqIO.QualityIO import FastqGeneralIterator

from dashtree.exceptions import DashTreeInputError
from dashtree.utils.validation import (
    FASTA_SUFFIXES,
    FASTQ_SUFFIXES,
    open_text,
    resolve_listed_path,
    validate_existing_file,
)

logger = logging.getLogger(__name__)

AMBIGUOUS_CODE = 4

# A=0, C=1, G=2, T=3; every other byte is ambiguous.
_BASE_CODES = np.full(256, AMBIGUOUS_CODE, dtype=np.uint8)
for _code, _base in enumerate("ACGT"):
    _BASE_CODES[ord(_base)] = _code
    _BASE_CODES[ord(_base.lower())] = _code


@dataclass(frozen=True, slots=True)
class EncodedSequence:
    """One sequence record encoded with the 2-bit nucleotide alphabet."""

    codes: np.ndarray

    def __len__(self) -> int:
        return int(self.codes.size)

    @property
    def ambiguous(self) -> np.ndarray:
        return self.codes == AMBIGUOUS_CODE


def encode_bases(bases: str | bytes) -> EncodedSequence:
    """Normalize raw bases and encode them as 2-bit codes (ambiguous bases get code 4)."""

    raw = bases.encode("ascii", errors="replace") if isinstance(bases, str) else bytes(bases)
    codes = np.empty(len(raw), dtype=np.uint8)
    np.take(_BASE_CODES, np.frombuffer(raw, dtype=np.uint8), out=codes)
    return EncodedSequence(codes=codes)


def _sniff_format(path: Path) -> str:
    with open_text(path) as handle:
        for line in handle:
            stripped = line.strip()
            if not stripped:
                continue
            if stripped.startswith(">"):
                return "fasta"
            if stripped.startswith("@"):
                return "fastq"
            raise DashTreeInputError(f"Invalid FASTA/Q file (unknown record marker): {path}")
    raise DashTreeInputError(f"Invalid FASTA/Q file (no records): {path}")


def _iter_raw_sequences(path: Path, fmt: str) -> Iterator[str]:
    with open_text(path) as handle:
        if fmt == "fasta":
            for _, sequence in SimpleFastaParser(handle):
                yield sequence
        else:
            for _, sequence, _ in FastqGeneralIterator(handle):
                yield sequence


def read_sequences(path: Path) -> list[EncodedSequence]:
    """Read every FASTA/FASTQ record of a genome file (optionally gzipped), preserving order."""

    try:
        fmt = _sniff_format(path)
        return [encode_bases(sequence) for sequence in _iter_raw_sequences(path, fmt)]
    except DashTreeInputError:
        raise
    except (OSError, EOFError) as exc:
        raise DashTreeInputError(f"Cannot read genome file {path}: {exc}") from exc
    except ValueError as exc:
        raise DashTreeInputError(f"Error reading sequence record in {path}: {exc}") from exc


def _matches_suffix(path: Path) -> bool:
    lowered = path.name.lower()
    return any(lowered.endswith(suffix) for suffix in FASTA_SUFFIXES + FASTQ_SUFFIXES)


def read_genome_list(list_path: Path) -> list[str]:
    """Read the genome list (one path per line) and check every listed file exists."""

    validate_existing_file(list_path, "Genome list file")
    try:
        lines = list_path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as exc:
        raise DashTreeInputError(f"Cannot read genome list file {list_path}: {exc}") from exc

    genomes = [line.strip() for line in lines if line.strip()]
    if not genomes:
        raise DashTreeInputError(f"Genome list file has no entries: {list_path}")

    for genome in genomes:
        genome_path = resolve_listed_path(list_path.parent, genome)
        validate_existing_file(genome_path, "Genome file")
        if not _matches_suffix(genome_path):
            logger.warning("Unrecognized sequence file extension: %s", genome_path, extra={"genome": genome})

    return genomes
