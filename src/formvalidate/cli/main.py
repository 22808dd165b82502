"""formvalidate CLI entry point."""

import logging

import click


@click.group()
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable debug logging.")
def cli(verbose: bool):
    """formvalidate: declarative form validation CLI."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


# Register subcommands
from formvalidate.cli.check_cmd import check, rules_cmd  # noqa: E402

cli.add_command(check)
cli.add_command(rules_cmd)
