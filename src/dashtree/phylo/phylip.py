from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePath
from typing import Sequence

import numpy as np

from dashtree.exceptions import DashTreeDataError

NAME_WIDTH = 10
VALUE_WIDTH = 8
VALUE_DIGITS = 6


@dataclass(frozen=True, slots=True)
class PhylipMatrix:
    """Square distance matrix as read back from PHYLIP text."""

    names: list[str]
    values: np.ndarray

    @property
    def size(self) -> int:
        return len(self.names)


def genome_name(path: str) -> str:
    """Final path component of a genome path, or the path itself when there is none."""

    return PurePath(path).name or path


def format_phylip(names: Sequence[str], matrix: np.ndarray) -> bytes:
    """Render a square distance matrix as PHYLIP text (names padded to 10 characters)."""

    n = len(names)
    if matrix.shape != (n, n):
        raise ValueError(f"Matrix shape {matrix.shape} does not match {n} names")

    lines = [str(n)]
    for i, name in enumerate(names):
        cells = "".join(f" {value:{VALUE_WIDTH}.{VALUE_DIGITS}f}" for value in matrix[i])
        lines.append(f"{name:<{NAME_WIDTH}}{cells}")
    return ("\n".join(lines) + "\n").encode("utf-8")


def read_phylip(data: bytes) -> PhylipMatrix:
    """Parse square PHYLIP distance matrix text."""

    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DashTreeDataError(f"Error reading phylip matrix: {exc}") from exc

    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        raise DashTreeDataError("Error reading phylip matrix: input is empty")

    try:
        n = int(lines[0].split()[0])
    except ValueError as exc:
        raise DashTreeDataError(f"Error reading phylip matrix: invalid taxon count {lines[0]!r}") from exc
    if n < 0:
        raise DashTreeDataError(f"Error reading phylip matrix: negative taxon count {n}")

    rows = lines[1:]
    if len(rows) != n:
        raise DashTreeDataError(f"Error reading phylip matrix: expected {n} rows, found {len(rows)}")

    names: list[str] = []
    values = np.zeros((n, n), dtype=np.float64)
    for row_idx, line in enumerate(rows):
        fields = line.split()
        if len(fields) != n + 1:
            raise DashTreeDataError(
                f"Error reading phylip matrix: row {row_idx + 1} has {len(fields) - 1} values, expected {n}"
            )
        names.append(fields[0])
        try:
            values[row_idx] = [float(field) for field in fields[1:]]
        except ValueError as exc:
            raise DashTreeDataError(
                f"Error reading phylip matrix: invalid distance in row {row_idx + 1}: {exc}"
            ) from exc

    return PhylipMatrix(names=names, values=values)
