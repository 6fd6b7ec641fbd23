"""
CLI command writing an example pipeline configuration.
"""

from pathlib import Path

import click

from isocensus.pipeline.config import generate_example_config


@click.command("generate-config", short_help="Write an example pipeline configuration")
@click.option(
    "-o",
    "--output",
    help="Output file (.yaml, .yml or .json)",
    required=True,
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
)
def generate_config(output: Path) -> None:
    """Write a commented example configuration to OUTPUT."""
    generate_example_config(output)
    click.echo(f"Example configuration written to {output}")
