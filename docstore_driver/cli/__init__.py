"""CLI commands for docstore-driver."""

import typer

from docstore_driver.cli.collections import app as collections_app

main_app = typer.Typer(
    name="docstore",
    help="Docstore driver CLI",
    no_args_is_help=True,
)
main_app.add_typer(collections_app, name="collections")


def main() -> None:
    """Entry point for the CLI."""
    main_app()


__all__ = ["main", "main_app"]
