"""Typer sub-commands for the Quorum CLI."""
