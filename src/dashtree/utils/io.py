from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from dashtree.exceptions import DashTreeInputError


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def write_bytes(path: Path, content: bytes) -> Path:
    try:
        ensure_dir(path.parent)
        path.write_bytes(content)
    except OSError as exc:
        raise DashTreeInputError(f"Cannot write output file {path}: {exc}") from exc
    return path


def write_text(path: Path, content: str) -> Path:
    return write_bytes(path, content.encode("utf-8"))


def write_json(path: Path, payload: Mapping[str, Any]) -> Path:
    return write_text(path, json.dumps(payload, indent=2, ensure_ascii=True))
