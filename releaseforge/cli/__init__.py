"""Releaseforge CLI — Typer-based command-line interface.

Provides the ``releaseforge`` command with subcommands for building,
uploading, listing checksums, verifying a single archive, and printing
the resolved version.

All output uses Rich for formatted terminal display.
"""
