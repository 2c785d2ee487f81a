"""Source snapshots — a deterministic archive of exactly the tracked tree.

``git archive`` emits only tracked files and stamps every entry with the
commit time, so the uncompressed tar depends on nothing but the revision.
It is gzip-compressed here with a zero header mtime and no embedded file
name, which keeps the compressed bytes identical across machines too.
"""

from __future__ import annotations

import gzip
import io
import logging
from pathlib import Path

from releaseforge.core.hasher import sha256_hex
from releaseforge.core.process import CommandFailed, CommandRunner
from releaseforge.errors import SnapshotError
from releaseforge.models.versioning import Revision

logger = logging.getLogger(__name__)

# Fixed so that the snapshot bytes never depend on the zlib default.
_GZIP_LEVEL = 9

DOC_SOURCE_SUFFIX = ".1.adoc"


def resolve_revision(
    runner: CommandRunner,
    repo_path: Path,
    rev: str = "HEAD",
    *,
    timeout: float | None = None,
) -> Revision:
    """Resolve *rev* to a commit and read its id, short id and commit time."""
    try:
        commit_id = _git(runner, repo_path, ["rev-parse", "--verify", f"{rev}^{{commit}}"], timeout)
        short_id = _git(runner, repo_path, ["rev-parse", "--short", commit_id], timeout)
        commit_time = _git(runner, repo_path, ["log", "-1", "--pretty=%ct", commit_id], timeout)
    except CommandFailed as exc:
        raise SnapshotError(f"cannot resolve revision {rev!r}: {exc}") from exc

    try:
        epoch = int(commit_time)
    except ValueError as exc:
        raise SnapshotError(f"unparseable commit time {commit_time!r} for {rev}") from exc

    return Revision(commit_id=commit_id, short_id=short_id, commit_time=epoch)


class SourceSnapshotter:
    """Produces the content-addressed source snapshot for a revision.

    Parameters
    ----------
    runner:
        Command runner used to invoke ``git``.
    repo_path:
        Working tree of the repository to snapshot.
    """

    def __init__(
        self,
        runner: CommandRunner,
        repo_path: Path,
        *,
        timeout: float | None = None,
    ) -> None:
        self._runner = runner
        self._repo = Path(repo_path)
        self._timeout = timeout

    def snapshot_bytes(self, revision: Revision) -> bytes:
        """Return the gzip-compressed tar of the revision's tracked tree."""
        try:
            result = self._runner.run(
                ["git", "archive", "--format=tar", revision.commit_id],
                cwd=self._repo,
                timeout=self._timeout,
            )
        except CommandFailed as exc:
            raise SnapshotError(
                f"cannot archive revision {revision.short_id}: {exc}"
            ) from exc

        buf = io.BytesIO()
        with gzip.GzipFile(
            filename="", mode="wb", fileobj=buf, compresslevel=_GZIP_LEVEL, mtime=0
        ) as gz:
            gz.write(result.stdout)
        return buf.getvalue()

    def create(self, revision: Revision, dest_dir: Path, product: str) -> tuple[Revision, Path]:
        """Write ``<product>-<short id>.tar.gz`` into *dest_dir*.

        Returns the revision with its ``content_hash`` filled in, and the
        path of the snapshot file.
        """
        data = self.snapshot_bytes(revision)
        digest = sha256_hex(data)
        path = Path(dest_dir) / f"{product}-{revision.short_id}.tar.gz"
        path.write_bytes(data)
        logger.info(
            "snapshot of %s written to %s (sha256:%s)", revision.short_id, path, digest[:16]
        )
        return revision.model_copy(update={"content_hash": f"sha256:{digest}"}), path

    def doc_pages(self, revision: Revision) -> list[str]:
        """Man page names rendered from tracked ``*.1.adoc`` files at the root.

        ``rad.1.adoc`` renders to ``rad.1`` inside the build image.
        """
        try:
            listing = _git(
                self._runner,
                self._repo,
                ["ls-tree", "--name-only", revision.commit_id],
                self._timeout,
            )
        except CommandFailed as exc:
            raise SnapshotError(f"cannot list tree of {revision.short_id}: {exc}") from exc
        names = [line.strip() for line in listing.splitlines()]
        return sorted(
            name.removesuffix(".adoc") for name in names if name.endswith(DOC_SOURCE_SUFFIX)
        )


def _git(
    runner: CommandRunner, repo: Path, args: list[str], timeout: float | None
) -> str:
    return runner.run(["git", *args], cwd=repo, timeout=timeout).text
