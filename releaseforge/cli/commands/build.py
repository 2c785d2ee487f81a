"""``releaseforge build`` — build, package, checksum and sign every target.

Runs the full build pipeline for the revision checked out in the
configured repository. On success the final checksum of every archive is
printed for manual cross-verification.
"""

from __future__ import annotations

from pathlib import Path

import typer

from releaseforge.cli.common import console, fatal_errors, load_config
from releaseforge.core.orchestrator import ReleaseOrchestrator
from releaseforge.monitor.renderer import MonitorRenderer


def build_cmd(
    repo: Path = typer.Option(None, "--repo", "-C", help="Repository to build (default: settings)."),
    artifacts: Path = typer.Option(None, "--artifacts", "-o", help="Output directory for archives."),
    permissive: bool = typer.Option(
        False,
        "--permissive",
        help="Use a deterministic fallback version when no release tag exists.",
    ),
) -> None:
    """Build every configured target and sign the resulting archives."""
    config = load_config(
        repo_path=repo,
        artifacts_dir=artifacts,
        strict_version=False if permissive else None,
    )
    orchestrator = ReleaseOrchestrator(config)
    renderer = MonitorRenderer(console=console)

    try:
        with fatal_errors():
            report = orchestrator.build()
    finally:
        renderer.print_stages(orchestrator.stage_machine, title="Build")

    console.print()
    renderer.print_checksums(report.artifacts)
    console.print(f"\n[bold]Manifest:[/bold] {report.manifest_path}")
