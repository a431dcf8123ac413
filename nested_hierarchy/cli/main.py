"""Main CLI entry point for nested-hierarchy management commands."""

import click

from nested_hierarchy.cli.commands import db, tree
from nested_hierarchy.infra.logging.config import setup_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="nested-hierarchy")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Nested hierarchy CLI - manage category trees stored as nested sets.

    \b
    Command Groups:
      db         Database setup
      tree       Create, move, inspect and delete category subtrees

    \b
    Quick Start:
      nested-hierarchy db init
      nested-hierarchy tree add Books
      nested-hierarchy tree add Fiction --parent 1
      nested-hierarchy tree show 1
    """
    ctx.ensure_object(dict)


cli.add_command(db.db)
cli.add_command(tree.tree)


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
