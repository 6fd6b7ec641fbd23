"""
CLI commands for the isocensus package.

This module provides Click commands for the isocensus CLI.
"""

from isocensus.commands.quantify import quantify
from isocensus.commands.generate_config import generate_config

__all__ = [
    "quantify",
    "generate_config",
]
