"""
FolderSync CLI - Command-line interface.
"""

from foldersync.cli.main import cli, main

__all__ = ["cli", "main"]
