from __future__ import annotations

import typer

from dashtree import __version__
from dashtree.commands import build, tree

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help=(
        "dashtree: binwise densified MinHash sketching and rapid neighbor-joining "
        "tree construction for genome collections."
    ),
)

app.add_typer(build.app, name="build", help="Sketch genomes and build a distance matrix and tree.")
app.add_typer(tree.app, name="tree", help="Build a tree from an existing PHYLIP distance matrix.")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show dashtree version and exit."),
) -> None:
    # Subcommands print their own session banner once the config is merged.
    if version:
        typer.echo(f"dashtree {__version__}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(2)
