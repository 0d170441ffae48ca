from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, TypeVar

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PositiveInt,
    ValidationError,
    field_validator,
    model_validator,
)

from dashtree.exceptions import DashTreeUsageError
from dashtree.phylo.tree import TreeMethod, parse_tree_method
from dashtree.sketch.dispatch import Densification
from dashtree.sketch.kmer import select_kmer_width


class CommonConfig(BaseModel):
    """Shared command options across dashtree subcommands."""

    model_config = ConfigDict(extra="forbid")

    threads: PositiveInt = 1
    log_file: Path | None = None
    verbose: bool = False
    quiet: bool = False

    @model_validator(mode="after")
    def _validate_verbosity(self) -> "CommonConfig":
        if self.verbose and self.quiet:
            raise ValueError("`verbose` and `quiet` cannot both be true.")
        return self


class TreeOptions(CommonConfig):
    tree_method: TreeMethod = TreeMethod.RAPIDNJ
    chunk_size: PositiveInt = 30
    naive_percentage: int = Field(default=90, ge=0, le=100)
    output_tree: Path | None = None

    @field_validator("tree_method", mode="before")
    @classmethod
    def _parse_tree_method(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return parse_tree_method(value)
            except DashTreeUsageError as exc:
                raise ValueError(str(exc)) from exc
        return value


class BuildConfig(TreeOptions):
    input_list: Path | None = None
    kmer_size: PositiveInt = 16
    sketch_size: PositiveInt = 10240
    densification: Densification = Densification.OPTIMAL
    output_matrix: Path | None = None
    run_manifest: Path | None = None

    @field_validator("kmer_size")
    @classmethod
    def _validate_kmer_size(cls, value: int) -> int:
        try:
            select_kmer_width(value)
        except DashTreeUsageError as exc:
            raise ValueError(str(exc)) from exc
        return value


class TreeConfig(TreeOptions):
    input_matrix: Path | None = None


class DashTreeConfig(BaseModel):
    """Top-level YAML config model."""

    model_config = ConfigDict(extra="forbid")

    build: BuildConfig | None = None
    tree: TreeConfig | None = None


def load_config(config_path: Path | None) -> DashTreeConfig:
    """Load and validate a YAML config file."""

    if config_path is None:
        return DashTreeConfig()

    if not config_path.exists():
        raise DashTreeUsageError(f"Config file does not exist: {config_path}")

    if not config_path.is_file():
        raise DashTreeUsageError(f"Config path is not a file: {config_path}")

    payload_raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if payload_raw is None:
        payload_raw = {}

    if not isinstance(payload_raw, dict):
        raise DashTreeUsageError("Config YAML must be a key/value mapping at the top level.")

    try:
        return DashTreeConfig.model_validate(payload_raw)
    except ValidationError as exc:
        raise DashTreeUsageError(f"Invalid config file: {config_path}\n{exc}") from exc


T = TypeVar("T", bound=CommonConfig)


def merge_command_config(
    *,
    config_path: Path | None,
    section: str,
    model_cls: type[T],
    cli_overrides: Mapping[str, Any],
) -> T:
    """Merge YAML config values with explicit CLI overrides and validate."""

    root = load_config(config_path)
    section_model = getattr(root, section)

    merged: dict[str, Any] = {}
    if section_model is not None:
        merged.update(section_model.model_dump(exclude_none=True))

    for key, value in cli_overrides.items():
        if value is not None:
            merged[key] = value

    try:
        return model_cls.model_validate(merged)
    except ValidationError as exc:
        raise DashTreeUsageError(f"Invalid merged config for `{section}`:\n{exc}") from exc
