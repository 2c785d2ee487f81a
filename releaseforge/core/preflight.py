"""Preflight checks — fail before any build work starts.

Mirrors the single enforcement point pattern: every missing prerequisite
is collected and reported at once, then the run stops.
"""

from __future__ import annotations

import logging
from pathlib import Path

from releaseforge.core.process import CommandRunner
from releaseforge.errors import MissingSigningKey, MissingToolchain

logger = logging.getLogger(__name__)

BUILD_TOOLS: tuple[str, ...] = ("git", "podman")
SSH_UPLOAD_TOOLS: tuple[str, ...] = ("git", "ssh", "scp")
LOCAL_UPLOAD_TOOLS: tuple[str, ...] = ("git",)


def check_tools(runner: CommandRunner, tools: tuple[str, ...]) -> dict[str, str]:
    """Resolve every tool on PATH.

    Returns a mapping of tool name to resolved path. Raises
    ``MissingToolchain`` naming every tool that could not be found.
    """
    resolved: dict[str, str] = {}
    missing: list[str] = []
    for tool in tools:
        path = runner.which(tool)
        if path is None:
            missing.append(tool)
        else:
            resolved[tool] = path
    if missing:
        logger.critical("missing required tools: %s", ", ".join(missing))
        raise MissingToolchain(missing)
    return resolved


def check_key_pair(private_key: Path, public_key: Path, *, need_private: bool = True) -> None:
    """Ensure the signing key files exist before anything else runs."""
    missing = [public_key]
    if need_private:
        missing.insert(0, private_key)
    missing = [path for path in missing if not path.is_file()]
    if missing:
        raise MissingSigningKey(
            "no key found at " + ", ".join(str(path) for path in missing)
        )
