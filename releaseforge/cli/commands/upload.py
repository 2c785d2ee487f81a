"""``releaseforge upload`` — publish the built release.

Publishes every configured target; there is deliberately no option to
select a subset. Local artifacts are re-verified before any transfer,
and ``latest`` is repointed only after every file is uploaded.
"""

from __future__ import annotations

from pathlib import Path

import typer

from releaseforge.bridge.transport import LocalRemoteStore, RemoteStore, SshRemoteStore
from releaseforge.cli.common import console, fatal_errors, load_config
from releaseforge.core.orchestrator import ReleaseOrchestrator
from releaseforge.core.preflight import LOCAL_UPLOAD_TOOLS, SSH_UPLOAD_TOOLS
from releaseforge.monitor.renderer import MonitorRenderer


def upload_cmd(
    local_root: Path = typer.Option(
        None,
        "--local-root",
        help="Publish into this local directory instead of the SSH release host.",
    ),
    repo: Path = typer.Option(None, "--repo", "-C", help="Repository the release was built from."),
    artifacts: Path = typer.Option(None, "--artifacts", "-o", help="Directory holding the archives."),
) -> None:
    """Upload every configured target for the resolved version."""
    config = load_config(repo_path=repo, artifacts_dir=artifacts)
    orchestrator = ReleaseOrchestrator(config)
    renderer = MonitorRenderer(console=console)

    store: RemoteStore
    if local_root is not None:
        store = LocalRemoteStore()
        release_root = str(local_root.resolve())
        tools = LOCAL_UPLOAD_TOOLS
    else:
        store = SshRemoteStore(
            orchestrator.runner,
            config.ssh_address,
            identity_file=config.ssh_key_path,
            timeout=config.network_timeout_seconds,
        )
        release_root = None
        tools = SSH_UPLOAD_TOOLS

    try:
        with fatal_errors():
            release = orchestrator.upload(store, release_root=release_root, tools=tools)
    finally:
        renderer.print_stages(orchestrator.stage_machine, title="Upload")

    console.print()
    renderer.print_published(release)
