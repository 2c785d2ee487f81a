"""Release manifest — the JSON descriptor of a version's signed artifacts."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from releaseforge.errors import PublishError
from releaseforge.models.artifacts import ManifestEntry, ReleaseManifest, SignedArtifact
from releaseforge.models.versioning import Revision

logger = logging.getLogger(__name__)


def build_manifest(
    product: str,
    version: str,
    revision: Revision,
    artifacts: list[SignedArtifact],
) -> ReleaseManifest:
    """Assemble the manifest in the order the artifacts were configured."""
    entries = [
        ManifestEntry(
            target=item.archive.target,
            archive=item.archive.filename,
            sha256=item.archive.sha256,
            size=item.archive.size_bytes,
            checksum_file=item.checksum.path.name,
            signature=item.signature.path.name,
        )
        for item in artifacts
    ]
    return ReleaseManifest(
        product=product,
        version=version,
        revision=revision.commit_id,
        commit_time=revision.commit_time,
        targets=[entry.target for entry in entries],
        artifacts=entries,
    )


def render_manifest(manifest: ReleaseManifest) -> str:
    """Sorted-key, two-space JSON with a trailing newline; no timestamps."""
    return json.dumps(manifest.model_dump(mode="json"), sort_keys=True, indent=2) + "\n"


def write_manifest(manifest: ReleaseManifest, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.tmp")
    tmp.write_text(render_manifest(manifest), encoding="utf-8")
    os.replace(tmp, path)
    logger.info("wrote release manifest %s", path)
    return path


def load_manifest(path: Path) -> ReleaseManifest:
    """Read a manifest written by :func:`write_manifest`."""
    if not path.is_file():
        raise PublishError(f"no release manifest at {path}; run the build first")
    try:
        return ReleaseManifest.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as exc:
        raise PublishError(f"invalid release manifest {path}: {exc}") from exc
