from __future__ import annotations

import sys
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any, Sequence

from dashtree import __version__
from dashtree.utils.io import write_json


@dataclass(slots=True)
class RunManifest:
    command: str
    argv: list[str]
    started_at: str
    ended_at: str | None
    status: str
    cwd: str
    threads: int
    config_path: str | None
    versions: dict[str, str]
    parameters: dict[str, Any]
    input_paths: list[str]
    output_paths: list[str] = field(default_factory=list)


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _package_version(package_name: str) -> str:
    try:
        return version(package_name)
    except PackageNotFoundError:
        return "unknown"


def create_run_manifest(
    *,
    command: str,
    argv: Sequence[str],
    threads: int,
    config_path: Path | None,
    parameters: dict[str, Any],
    input_paths: Sequence[Path | str],
) -> RunManifest:
    return RunManifest(
        command=command,
        argv=list(argv),
        started_at=_utcnow_iso(),
        ended_at=None,
        status="running",
        cwd=str(Path.cwd()),
        threads=threads,
        config_path=str(config_path) if config_path is not None else None,
        versions={
            "dashtree": __version__,
            "python": sys.version.split()[0],
            "numpy": _package_version("numpy"),
            "biopython": _package_version("biopython"),
            "typer": _package_version("typer"),
            "pydantic": _package_version("pydantic"),
            "rich": _package_version("rich"),
        },
        parameters=parameters,
        input_paths=[str(path) for path in input_paths],
    )


def finalize_manifest(
    manifest: RunManifest,
    *,
    status: str,
    output_paths: Sequence[Path | str],
) -> RunManifest:
    manifest.status = status
    manifest.ended_at = _utcnow_iso()
    manifest.output_paths = [str(path) for path in output_paths]
    return manifest


def write_manifest(path: Path, manifest: RunManifest) -> Path:
    return write_json(path, asdict(manifest))
