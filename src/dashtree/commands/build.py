from __future__ import annotations

import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from dashtree.config import BuildConfig, merge_command_config
from dashtree.exceptions import DashTreeError
from dashtree.logging import configure_logging, get_logger
from dashtree.manifest import create_run_manifest, finalize_manifest, write_manifest
from dashtree.parallel import WorkerPool
from dashtree.pipeline import run_pipeline
from dashtree.reporting import print_session_summary

app = typer.Typer(help="Sketch genomes, build the distance matrix and the neighbor-joining tree.")
console = Console(stderr=True)


def run_build(
    *,
    config_path: Path | None,
    input_list: Path | None,
    kmer_size: int | None,
    sketch_size: int | None,
    densification: int | None,
    threads: int | None,
    tree_method: str | None,
    chunk_size: int | None,
    naive_percentage: int | None,
    output_matrix: Path | None,
    output_tree: Path | None,
    run_manifest: Path | None,
    log_file: Path | None,
    verbose: bool | None,
    quiet: bool | None,
) -> int:
    try:
        cfg = merge_command_config(
            config_path=config_path,
            section="build",
            model_cls=BuildConfig,
            cli_overrides={
                "input_list": input_list,
                "kmer_size": kmer_size,
                "sketch_size": sketch_size,
                "densification": densification,
                "threads": threads,
                "tree_method": tree_method,
                "chunk_size": chunk_size,
                "naive_percentage": naive_percentage,
                "output_matrix": output_matrix,
                "output_tree": output_tree,
                "run_manifest": run_manifest,
                "log_file": log_file,
                "verbose": verbose,
                "quiet": quiet,
            },
        )
        configure_logging(verbose=cfg.verbose, quiet=cfg.quiet, log_file=cfg.log_file)
        logger = get_logger("dashtree.build")
        if not cfg.quiet:
            print_session_summary(
                console,
                "build",
                {
                    "Genome list": cfg.input_list,
                    "K-mer size": cfg.kmer_size,
                    "Sketch size": cfg.sketch_size,
                    "Densification": cfg.densification.name.lower(),
                    "Tree method": cfg.tree_method.value,
                    "Threads": cfg.threads,
                },
            )

        manifest = create_run_manifest(
            command="build",
            argv=sys.argv,
            threads=cfg.threads,
            config_path=config_path,
            parameters=cfg.model_dump(mode="json"),
            input_paths=[cfg.input_list] if cfg.input_list is not None else [],
        )

        pool = WorkerPool(cfg.threads, show_progress=not cfg.quiet, console=console)
        logger.debug("Worker pool configured with %d threads", pool.threads)
        result = run_pipeline(cfg, pool)

        if cfg.run_manifest is not None:
            finalize_manifest(manifest, status="completed", output_paths=result.output_paths)
            write_manifest(cfg.run_manifest, manifest)

        logger.info("Tree built for %d genomes.", len(result.genomes))
        return 0

    except DashTreeError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}", highlight=False)
        return exc.exit_code
    except Exception as exc:  # pragma: no cover - defensive catch-all
        get_logger("dashtree.build").exception("Unhandled build error")
        console.print(f"[red]Unexpected error:[/red] {escape(str(exc))}")
        return 1


@app.callback(invoke_without_command=True)
def build_callback(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", help="YAML config file."),
    input_list: Path | None = typer.Option(
        None,
        "--input",
        "-i",
        help="Genome list file (one FASTA/FASTQ file per line, .gz supported).",
    ),
    kmer_size: int | None = typer.Option(None, "--kmer-size", "-k", min=1, help="K-mer size (<=14, 16, or 17-32) [default: 16]."),
    sketch_size: int | None = typer.Option(None, "--sketch-size", "-s", min=1, help="MinHash sketch size [default: 10240]."),
    densification: int | None = typer.Option(
        None,
        "--densification",
        "-d",
        min=0,
        max=1,
        help="Densification: 0=optimal, 1=reverse optimal (faster) [default: 0].",
    ),
    threads: int | None = typer.Option(None, "--threads", "-t", min=1, help="Worker threads [default: 1]."),
    tree_method: str | None = typer.Option(None, "--tree", help="Tree method: naive, rapidnj, hybrid [default: rapidnj]."),
    chunk_size: int | None = typer.Option(None, "--chunk-size", min=1, help="Chunk size for rapidnj/hybrid [default: 30]."),
    naive_percentage: int | None = typer.Option(
        None,
        "--naive-percentage",
        min=0,
        max=100,
        help="Percentage of naive steps for the hybrid method [default: 90].",
    ),
    output_matrix: Path | None = typer.Option(None, "--output-matrix", help="Write the PHYLIP distance matrix to this file."),
    output_tree: Path | None = typer.Option(None, "--output-tree", help="Write the Newick tree to this file (stdout otherwise)."),
    run_manifest: Path | None = typer.Option(None, "--run-manifest", help="Write a JSON run manifest to this file."),
    log_file: Path | None = typer.Option(None, "--log-file", help="Write JSON logs to this file."),
    verbose: bool | None = typer.Option(None, "--verbose", help="Enable verbose logging."),
    quiet: bool | None = typer.Option(None, "--quiet", help="Only show errors."),
) -> None:
    if ctx.invoked_subcommand is not None:
        return

    exit_code = run_build(
        config_path=config,
        input_list=input_list,
        kmer_size=kmer_size,
        sketch_size=sketch_size,
        densification=densification,
        threads=threads,
        tree_method=tree_method,
        chunk_size=chunk_size,
        naive_percentage=naive_percentage,
        output_matrix=output_matrix,
        output_tree=output_tree,
        run_manifest=run_manifest,
        log_file=log_file,
        verbose=verbose,
        quiet=quiet,
    )
    raise typer.Exit(exit_code)
