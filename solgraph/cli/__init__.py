"""CLI module for solgraph."""

from .cli import main, cli_main

__all__ = ['main', 'cli_main']
