"""
CLI entry point for the isocensus package.
"""

import logging
from pathlib import Path

import click

from isocensus.commands.generate_config import generate_config
from isocensus.commands.quantify import quantify
from isocensus.core.logger import configure_logging

import isocensus

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])

LOG_LEVELS = ["debug", "info", "warn"]
LOG_LEVELS_TO_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARN,
}


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(
    version=isocensus.__version__,
    package_name="isocensus",
    message="%(package)s %(version)s",
)
@click.option(
    "-v",
    "--log-level",
    type=click.Choice(LOG_LEVELS, False),
    default="info",
    help="Set the logging level.",
)
@click.option(
    "--log-file",
    type=click.Path(writable=True, path_type=Path),
    required=False,
    help="Write log to this file.",
)
def cli(log_level: str, log_file: Path):
    """
    isocensus - Census isobaric quantification reports to protein abundances.

    Parse TMT/iTRAQ reporter-ion reports produced by Census, filter peptides,
    normalize channels and aggregate proteins.
    """
    configure_logging(LOG_LEVELS_TO_LEVELS[log_level.lower()], log_file=log_file)


cli.add_command(quantify)
cli.add_command(generate_config)


def main():
    """
    Main function to run the CLI.
    """
    try:
        cli()
    except SystemExit as e:
        if e.code != 0:
            raise


if __name__ == "__main__":
    main()
