"""Release publication with atomic alias promotion.

Remote layout::

    <release-root>/<version>/<product>-<version>-<target>.tar.xz{,.sig,.sha256}
    <release-root>/<version>/<product>.json
    <release-root>/<product>-<target>.tar.xz{,.sig,.sha256} -> <version>/...
    <release-root>/latest -> <release-root>/<version>

Ordering is the whole contract: every file for the version is uploaded
before any alias moves, and ``latest`` moves last. A failure at any point
leaves ``latest`` on the previous release.
"""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path

from releaseforge.bridge.transport import RemoteStore
from releaseforge.core.integrity import CHECKSUM_SUFFIX, SIGNATURE_SUFFIX
from releaseforge.errors import PublishError
from releaseforge.models.artifacts import PublishedRelease, ReleaseManifest
from releaseforge.models.config import PipelineConfig

logger = logging.getLogger(__name__)

_COMPANION_SUFFIXES = ("", SIGNATURE_SUFFIX, CHECKSUM_SUFFIX)


class ReleasePublisher:
    """Uploads a signed release and promotes its aliases.

    Parameters
    ----------
    store:
        The release store backend.
    config:
        The run's pipeline configuration.
    release_root:
        Overrides ``config.release_root`` (e.g. for a local mirror).
    """

    def __init__(
        self,
        store: RemoteStore,
        config: PipelineConfig,
        *,
        release_root: str | None = None,
    ) -> None:
        self._store = store
        self._config = config
        self._root = (release_root or config.release_root).rstrip("/") or "/"

    @property
    def release_root(self) -> str:
        return self._root

    def version_dir(self, version: str) -> str:
        return posixpath.join(self._root, version)

    def local_files(self, manifest: ReleaseManifest, local_dir: Path) -> list[Path]:
        """Every local file the release consists of, manifest last."""
        missing_targets = [t for t in self._config.targets if t not in manifest.targets]
        if missing_targets:
            raise PublishError(
                f"manifest for {manifest.version} lacks targets: {', '.join(missing_targets)}"
            )

        files: list[Path] = []
        for target in self._config.targets:
            archive = manifest.entry_for(target).archive
            files.extend(local_dir / f"{archive}{suffix}" for suffix in _COMPANION_SUFFIXES)
        files.append(local_dir / self._config.manifest_name)

        missing = [str(f) for f in files if not f.is_file()]
        if missing:
            raise PublishError(f"missing release files: {', '.join(missing)}")
        return files

    def publish(self, manifest: ReleaseManifest, local_dir: Path) -> PublishedRelease:
        version = manifest.version
        if not version:
            raise PublishError("empty version number")

        files = self.local_files(manifest, local_dir)
        version_dir = self.version_dir(version)

        # 1. Upload everything for this version.
        logger.info("uploading %s %s to %s", self._config.product_name, version, version_dir)
        self._store.ensure_dir(version_dir)
        self._store.upload(files, version_dir)

        # 2. Per-target aliases, only once every upload has succeeded.
        aliases: dict[str, str] = {}
        for target in self._config.targets:
            archive = manifest.entry_for(target).archive
            alias = self._config.alias_name(target)
            logger.info("creating aliases for %s", target)
            for suffix in _COMPANION_SUFFIXES:
                link = posixpath.join(self._root, f"{alias}{suffix}")
                dest = posixpath.join(version_dir, f"{archive}{suffix}")
                self._store.symlink(dest, link)
                aliases[link] = dest

        # 3. Promote 'latest' last.
        latest = posixpath.join(self._root, "latest")
        previous = self._store.read_link(latest)
        self._store.symlink(version_dir, latest)
        logger.info("latest: %s -> %s", previous or "(none)", version_dir)

        return PublishedRelease(
            version=version,
            version_dir=version_dir,
            files=[posixpath.join(version_dir, f.name) for f in files],
            aliases=aliases,
            latest=latest,
        )
