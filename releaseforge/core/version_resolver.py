"""Version resolution from repository tags."""

from __future__ import annotations

import logging
from pathlib import Path

from releaseforge.core.process import CommandFailed, CommandRunner
from releaseforge.errors import NoVersionTag
from releaseforge.models.versioning import Revision

logger = logging.getLogger(__name__)


class VersionResolver:
    """Derives the release version of a revision.

    Uses the nearest tag matching ``<tag_prefix>*`` reachable from the
    revision (``git describe --candidates=1``), with the prefix stripped.
    A revision past the tag resolves to the describe form, e.g.
    ``1.2.0-3-gabc1234``, so distinct revisions never share a version.

    In strict mode a revision with no such tag fails with ``NoVersionTag``.
    In permissive mode it falls back to ``0.0.0-<commit time>-g<short id>``.
    """

    def __init__(
        self,
        runner: CommandRunner,
        repo_path: Path,
        *,
        tag_prefix: str = "v",
        strict: bool = True,
        timeout: float | None = None,
    ) -> None:
        self._runner = runner
        self._repo = Path(repo_path)
        self._prefix = tag_prefix
        self._strict = strict
        self._timeout = timeout

    def resolve(self, revision: Revision) -> str:
        try:
            described = self._runner.run(
                [
                    "git",
                    "describe",
                    f"--match={self._prefix}*",
                    "--candidates=1",
                    revision.commit_id,
                ],
                cwd=self._repo,
                timeout=self._timeout,
            ).text
        except CommandFailed as exc:
            if self._strict:
                raise NoVersionTag(
                    f"no version tag found by 'git describe' for {revision.short_id}"
                ) from exc
            version = self.fallback(revision)
            logger.warning(
                "no version tag for %s, using fallback version %s",
                revision.short_id,
                version,
            )
            return version

        version = described.removeprefix(self._prefix).strip()
        if not version:
            raise NoVersionTag(
                f"tag {described!r} on {revision.short_id} yields an empty version"
            )
        logger.info("resolved version %s for %s", version, revision.short_id)
        return version

    @staticmethod
    def fallback(revision: Revision) -> str:
        """Deterministic build identifier for untagged revisions."""
        return f"0.0.0-{revision.commit_time}-g{revision.short_id}"
