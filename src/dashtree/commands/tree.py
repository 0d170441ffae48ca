from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from dashtree.config import TreeConfig, merge_command_config
from dashtree.exceptions import DashTreeError
from dashtree.logging import configure_logging, get_logger
from dashtree.pipeline import run_tree_from_matrix
from dashtree.reporting import print_session_summary

app = typer.Typer(help="Build a neighbor-joining tree from an existing PHYLIP distance matrix.")
console = Console(stderr=True)


def run_tree(
    *,
    config_path: Path | None,
    input_matrix: Path | None,
    tree_method: str | None,
    chunk_size: int | None,
    naive_percentage: int | None,
    output_tree: Path | None,
    log_file: Path | None,
    verbose: bool | None,
    quiet: bool | None,
) -> int:
    try:
        cfg = merge_command_config(
            config_path=config_path,
            section="tree",
            model_cls=TreeConfig,
            cli_overrides={
                "input_matrix": input_matrix,
                "tree_method": tree_method,
                "chunk_size": chunk_size,
                "naive_percentage": naive_percentage,
                "output_tree": output_tree,
                "log_file": log_file,
                "verbose": verbose,
                "quiet": quiet,
            },
        )
        configure_logging(verbose=cfg.verbose, quiet=cfg.quiet, log_file=cfg.log_file)
        if not cfg.quiet:
            print_session_summary(
                console,
                "tree",
                {"Distance matrix": cfg.input_matrix, "Tree method": cfg.tree_method.value},
            )
        run_tree_from_matrix(cfg)
        return 0

    except DashTreeError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}", highlight=False)
        return exc.exit_code
    except Exception as exc:  # pragma: no cover - defensive catch-all
        get_logger("dashtree.tree").exception("Unhandled tree error")
        console.print(f"[red]Unexpected error:[/red] {escape(str(exc))}")
        return 1


@app.callback(invoke_without_command=True)
def tree_callback(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", help="YAML config file."),
    input_matrix: Path | None = typer.Option(None, "--matrix", "-m", help="PHYLIP distance matrix file."),
    tree_method: str | None = typer.Option(None, "--tree", help="Tree method: naive, rapidnj, hybrid [default: rapidnj]."),
    chunk_size: int | None = typer.Option(None, "--chunk-size", min=1, help="Chunk size for rapidnj/hybrid [default: 30]."),
    naive_percentage: int | None = typer.Option(
        None,
        "--naive-percentage",
        min=0,
        max=100,
        help="Percentage of naive steps for the hybrid method [default: 90].",
    ),
    output_tree: Path | None = typer.Option(None, "--output-tree", help="Write the Newick tree to this file (stdout otherwise)."),
    log_file: Path | None = typer.Option(None, "--log-file", help="Write JSON logs to this file."),
    verbose: bool | None = typer.Option(None, "--verbose", help="Enable verbose logging."),
    quiet: bool | None = typer.Option(None, "--quiet", help="Only show errors."),
) -> None:
    if ctx.invoked_subcommand is not None:
        return

    exit_code = run_tree(
        config_path=config,
        input_matrix=input_matrix,
        tree_method=tree_method,
        chunk_size=chunk_size,
        naive_percentage=naive_percentage,
        output_tree=output_tree,
        log_file=log_file,
        verbose=verbose,
        quiet=quiet,
    )
    raise typer.Exit(exit_code)
