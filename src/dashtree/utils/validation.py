from __future__ import annotations

import gzip
from pathlib import Path
from typing import IO

from dashtree.exceptions import DashTreeInputError

FASTA_SUFFIXES = (".fa", ".fasta", ".fna", ".fa.gz", ".fasta.gz", ".fna.gz")
FASTQ_SUFFIXES = (".fq", ".fastq", ".fq.gz", ".fastq.gz")


def validate_existing_file(path: Path, label: str) -> None:
    if not path.exists():
        raise DashTreeInputError(f"{label} does not exist: {path}")
    if not path.is_file():
        raise DashTreeInputError(f"{label} is not a file: {path}")


def resolve_listed_path(base_dir: Path | None, value: str) -> Path:
    """Resolve one genome list entry.

    ``~`` is expanded. Relative entries are looked up in the working directory
    first and then next to the list file.
    """

    path = Path(value).expanduser()
    if path.is_absolute():
        return path
    if path.exists() or base_dir is None:
        return path.resolve()
    return (base_dir / path).resolve()


def open_text(path: Path) -> IO[str]:
    if path.suffix == ".gz":
        return gzip.open(path, "rt", encoding="utf-8", errors="replace")
    return path.open("r", encoding="utf-8", errors="replace")
