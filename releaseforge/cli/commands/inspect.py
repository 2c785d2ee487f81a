"""Read-only commands: ``checksums``, ``verify`` and ``version``."""

from __future__ import annotations

from pathlib import Path

import typer

from releaseforge.bridge.crypto_bridge import load_public_key
from releaseforge.cli.common import console, fatal_errors, load_config
from releaseforge.core.integrity import IntegrityService
from releaseforge.core.orchestrator import ReleaseOrchestrator
from releaseforge.core.preflight import check_key_pair, check_tools
from releaseforge.monitor.renderer import MonitorRenderer


def checksums_cmd(
    artifacts: Path = typer.Option(None, "--artifacts", "-o", help="Directory holding the archives."),
) -> None:
    """Print the checksum of every archive, checked against its record."""
    config = load_config(artifacts_dir=artifacts)
    archives = sorted(config.artifacts_dir.glob("*.tar.xz"))
    if not archives:
        console.print(f"[dim]No archives in {config.artifacts_dir}.[/dim]")
        raise typer.Exit(code=1)

    with fatal_errors():
        rows = [(path.name, IntegrityService.verify_checksum(path)) for path in archives]
    MonitorRenderer(console=console).print_checksum_rows(rows)


def verify_cmd(
    archive: Path = typer.Argument(..., help="Archive to verify."),
    public_key: Path = typer.Option(
        None, "--public-key", "-k", help="OpenSSH public key (default: configured key)."
    ),
) -> None:
    """Verify ARCHIVE against its .sha256 record and .sig signature."""
    config = load_config()
    key_path = public_key or config.public_key_path

    with fatal_errors():
        check_key_pair(config.private_key_path, key_path, need_private=False)
        key = load_public_key(key_path)
        integrity = IntegrityService(config.private_key_path, key_path)
        digest = integrity.verify_checksum(archive)
        integrity.verify_signature(archive, key)

    console.print(f"[green]OK[/green] {archive.name}")
    console.print(f"  sha256  {digest}")
    console.print(f"  signer  {key.fingerprint}")


def version_cmd(
    repo: Path = typer.Option(None, "--repo", "-C", help="Repository to inspect."),
    permissive: bool = typer.Option(
        False, "--permissive", help="Fall back to a build identifier when untagged."
    ),
) -> None:
    """Print the version the current revision resolves to."""
    config = load_config(repo_path=repo, strict_version=False if permissive else None)
    orchestrator = ReleaseOrchestrator(config)
    with fatal_errors():
        check_tools(orchestrator.runner, ("git",))
        _revision, version = orchestrator.resolve_version()
    console.print(version, highlight=False)
