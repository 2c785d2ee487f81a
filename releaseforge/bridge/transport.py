"""Transport bridge — the remote release store.

Bridge boundary
---------------
``ReleasePublisher`` only talks to a ``RemoteStore``. Two backends exist:

1. **SshRemoteStore**: the release host, reached with ``ssh``/``scp``
   through the pipeline's ``CommandRunner``. Used for real releases.
2. **LocalRemoteStore**: a directory on this machine with the same
   layout. Used for mirrors and tests.

Alias updates are atomic in both: a new link is created under a
temporary name and renamed over the old one, so readers see either the
previous target or the new one, never a missing link.
"""

from __future__ import annotations

import logging
import os
import posixpath
import shlex
import shutil
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from releaseforge.core.process import CommandFailed, CommandRunner
from releaseforge.errors import PublishError

logger = logging.getLogger(__name__)

_SSH_OPTIONS = ("-o", "BatchMode=yes")


@runtime_checkable
class RemoteStore(Protocol):
    """Protocol for release store backends. Paths are POSIX strings."""

    def ensure_dir(self, path: str) -> None:
        """Create *path* and its parents if needed."""
        ...

    def upload(self, files: Sequence[Path], remote_dir: str) -> None:
        """Copy local *files* into *remote_dir*."""
        ...

    def symlink(self, target: str, link: str) -> None:
        """Point *link* at *target*, atomically replacing any existing link."""
        ...

    def read_link(self, link: str) -> str | None:
        """Return the target of *link*, or ``None`` if it does not exist."""
        ...


def _tmp_link(link: str) -> str:
    head, tail = posixpath.split(link)
    return posixpath.join(head, f".{tail}.tmp")


class SshRemoteStore:
    """Release store on a remote host reached over SSH.

    Parameters
    ----------
    runner:
        Command runner used to invoke ``ssh`` and ``scp``.
    address:
        ``login@host`` of the release host.
    identity_file:
        SSH private key used to authenticate.
    timeout:
        Per-command timeout in seconds.
    """

    def __init__(
        self,
        runner: CommandRunner,
        address: str,
        *,
        identity_file: Path | None = None,
        timeout: float | None = None,
    ) -> None:
        self._runner = runner
        self._address = address
        self._identity = ["-i", str(identity_file)] if identity_file else []
        self._timeout = timeout

    def _ssh(self, command: str) -> str:
        argv = ["ssh", *self._identity, *_SSH_OPTIONS, self._address, command]
        try:
            return self._runner.run(argv, timeout=self._timeout).text
        except CommandFailed as exc:
            raise PublishError(f"remote command failed on {self._address}: {exc}") from exc

    def ensure_dir(self, path: str) -> None:
        self._ssh(shlex.join(["mkdir", "-p", path]))

    def upload(self, files: Sequence[Path], remote_dir: str) -> None:
        argv = [
            "scp",
            *self._identity,
            *_SSH_OPTIONS,
            *(str(f) for f in files),
            f"{self._address}:{remote_dir}/",
        ]
        try:
            self._runner.run(argv, timeout=self._timeout)
        except CommandFailed as exc:
            raise PublishError(f"upload to {self._address}:{remote_dir} failed: {exc}") from exc

    def symlink(self, target: str, link: str) -> None:
        tmp = _tmp_link(link)
        self._ssh(
            f"{shlex.join(['ln', '-sfn', target, tmp])} && {shlex.join(['mv', '-Tf', tmp, link])}"
        )

    def read_link(self, link: str) -> str | None:
        output = self._ssh(f"readlink {shlex.quote(link)} || true")
        return output or None


class LocalRemoteStore:
    """Release store in a local directory tree."""

    def ensure_dir(self, path: str) -> None:
        try:
            Path(path).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PublishError(f"cannot create {path}: {exc}") from exc

    def upload(self, files: Sequence[Path], remote_dir: str) -> None:
        for src in files:
            dest = Path(remote_dir) / src.name
            tmp = dest.with_name(f".{dest.name}.tmp")
            try:
                shutil.copyfile(src, tmp)
                os.replace(tmp, dest)
            except OSError as exc:
                raise PublishError(f"cannot copy {src} to {remote_dir}: {exc}") from exc

    def symlink(self, target: str, link: str) -> None:
        tmp = _tmp_link(link)
        try:
            if os.path.lexists(tmp):
                os.unlink(tmp)
            os.symlink(target, tmp)
            os.replace(tmp, link)
        except OSError as exc:
            raise PublishError(f"cannot link {link} -> {target}: {exc}") from exc

    def read_link(self, link: str) -> str | None:
        if not os.path.islink(link):
            return None
        return os.readlink(link)
