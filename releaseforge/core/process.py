"""External command execution behind a pluggable runner.

Defines the ``CommandRunner`` Protocol every stage uses to reach external
programs (git, podman, ssh, scp), along with the default subprocess-backed
implementation. Every call is blocking and fail-fast: a non-zero exit, a
timeout, or a missing executable raises ``CommandFailed``. There are no
retries.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class CommandFailed(RuntimeError):
    """Raised when an external command exits non-zero, times out, or cannot start."""

    def __init__(
        self,
        argv: Sequence[str],
        returncode: int | None,
        stderr: str = "",
    ) -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr.strip()
        status = "timed out" if returncode is None else f"exited with {returncode}"
        message = f"`{shlex.join(self.argv)}` {status}"
        if self.stderr:
            message += f": {self.stderr.splitlines()[-1]}"
        super().__init__(message)


@dataclass(frozen=True)
class CommandResult:
    argv: tuple[str, ...]
    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def text(self) -> str:
        """Decoded, stripped stdout."""
        return self.stdout.decode("utf-8", errors="replace").strip()


@runtime_checkable
class CommandRunner(Protocol):
    """Protocol for external command execution backends."""

    def run(
        self,
        argv: Sequence[str],
        *,
        input: bytes | None = None,
        env: Mapping[str, str] | None = None,
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run *argv* to completion; raise ``CommandFailed`` unless it exits 0."""
        ...

    def which(self, tool: str) -> str | None:
        """Return the resolved path of *tool*, or ``None`` if unavailable."""
        ...


class SubprocessRunner:
    """Runs commands with :func:`subprocess.run`.

    ``env`` entries are layered over the current process environment so
    that PATH and HOME keep working.
    """

    def run(
        self,
        argv: Sequence[str],
        *,
        input: bytes | None = None,
        env: Mapping[str, str] | None = None,
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        logger.debug("exec: %s", shlex.join(argv))
        full_env = {**os.environ, **env} if env else None
        try:
            proc = subprocess.run(
                list(argv),
                input=input,
                capture_output=True,
                env=full_env,
                cwd=cwd,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise CommandFailed(argv, None, _decode(exc.stderr)) from exc
        except OSError as exc:
            raise CommandFailed(argv, 127, str(exc)) from exc

        if proc.returncode != 0:
            raise CommandFailed(argv, proc.returncode, _decode(proc.stderr))
        return CommandResult(
            argv=tuple(argv),
            returncode=proc.returncode,
            stdout=proc.stdout,
            stderr=proc.stderr,
        )

    def which(self, tool: str) -> str | None:
        return shutil.which(tool)


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data
