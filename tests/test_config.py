from __future__ import annotations

from pathlib import Path

import pytest

from dashtree.config import BuildConfig, TreeConfig, load_config, merge_command_config
from dashtree.exceptions import DashTreeUsageError
from dashtree.phylo.tree import TreeMethod
from dashtree.sketch.dispatch import Densification


def _write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "dashtree.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_build_defaults() -> None:
    cfg = BuildConfig()

    assert cfg.kmer_size == 16
    assert cfg.sketch_size == 10240
    assert cfg.densification is Densification.OPTIMAL
    assert cfg.threads == 1
    assert cfg.tree_method is TreeMethod.RAPIDNJ
    assert cfg.chunk_size == 30
    assert cfg.naive_percentage == 90
    assert cfg.output_matrix is None
    assert cfg.output_tree is None


def test_missing_config_file_is_usage_error(tmp_path: Path) -> None:
    with pytest.raises(DashTreeUsageError, match="does not exist"):
        load_config(tmp_path / "absent.yaml")


def test_empty_config_file_is_accepted(tmp_path: Path) -> None:
    root = load_config(_write_config(tmp_path, ""))

    assert root.build is None
    assert root.tree is None


def test_yaml_values_are_merged_and_cli_wins(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path,
        "build:\n"
        "  kmer_size: 21\n"
        "  sketch_size: 2048\n"
        "  densification: 1\n"
        "  tree_method: HYBRID\n"
        "  threads: 2\n",
    )

    cfg = merge_command_config(
        config_path=config_path,
        section="build",
        model_cls=BuildConfig,
        cli_overrides={"threads": 8, "kmer_size": None, "naive_percentage": 50},
    )

    assert cfg.kmer_size == 21
    assert cfg.sketch_size == 2048
    assert cfg.densification is Densification.REVERSE_OPTIMAL
    assert cfg.tree_method is TreeMethod.HYBRID
    assert cfg.threads == 8
    assert cfg.naive_percentage == 50


@pytest.mark.parametrize("kmer_size", [15, 33])
def test_unsupported_kmer_size_in_yaml_is_rejected(tmp_path: Path, kmer_size: int) -> None:
    config_path = _write_config(tmp_path, f"build:\n  kmer_size: {kmer_size}\n")

    with pytest.raises(DashTreeUsageError):
        merge_command_config(config_path=config_path, section="build", model_cls=BuildConfig, cli_overrides={})


def test_unknown_keys_are_rejected(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path, "build:\n  kmer: 21\n")

    with pytest.raises(DashTreeUsageError, match="Invalid config file"):
        load_config(config_path)


def test_verbose_and_quiet_are_exclusive() -> None:
    with pytest.raises(DashTreeUsageError, match="verbose"):
        merge_command_config(
            config_path=None,
            section="tree",
            model_cls=TreeConfig,
            cli_overrides={"verbose": True, "quiet": True},
        )


@pytest.mark.parametrize(
    "overrides",
    [
        {"tree_method": "upgma"},
        {"naive_percentage": 101},
        {"chunk_size": 0},
    ],
)
def test_invalid_tree_options_are_usage_errors(overrides: dict) -> None:
    with pytest.raises(DashTreeUsageError):
        merge_command_config(config_path=None, section="tree", model_cls=TreeConfig, cli_overrides=overrides)
