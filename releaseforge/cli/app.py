"""Main Typer application — imports and registers all CLI commands.

Entry point: ``releaseforge`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import typer

from releaseforge.cli.commands.build import build_cmd
from releaseforge.cli.commands.inspect import checksums_cmd, verify_cmd, version_cmd
from releaseforge.cli.commands.upload import upload_cmd

app = typer.Typer(
    name="releaseforge",
    help="Releaseforge: reproducible builds, signed archives, atomic releases.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

app.command(name="build", help="Build, package, checksum and sign every target.")(build_cmd)
app.command(name="upload", help="Publish every target for the resolved version.")(upload_cmd)
app.command(name="checksums", help="Print checksums of existing archives.")(checksums_cmd)
app.command(name="verify", help="Verify an archive's checksum and signature.")(verify_cmd)
app.command(name="version", help="Print the resolved release version.")(version_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
