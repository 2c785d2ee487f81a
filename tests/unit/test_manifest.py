"""Unit tests for the release manifest and hashing helpers."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from releaseforge.core.hasher import sha256_file, sha256_hex, stable_json, stage_digest
from releaseforge.core.manifest import build_manifest, load_manifest, render_manifest, write_manifest
from releaseforge.errors import PublishError
from releaseforge.models.artifacts import (
    Archive,
    ChecksumRecord,
    Signature,
    SignedArtifact,
)
from releaseforge.models.versioning import Revision

REVISION = Revision(commit_id="e" * 40, short_id="eeeeeee", commit_time=1_700_000_000)


def _sealed(tmp: Path, target: str) -> SignedArtifact:
    name = f"radicle-2.1.0-{target}.tar.xz"
    archive = Archive(
        version="2.1.0", target=target, path=tmp / name, sha256="0" * 64, size_bytes=42
    )
    return SignedArtifact(
        archive=archive,
        checksum=ChecksumRecord(archive_name=name, sha256="0" * 64, path=tmp / f"{name}.sha256"),
        signature=Signature(
            archive_name=name, path=tmp / f"{name}.sig", namespace="file", key_fingerprint="SHA256:x"
        ),
    )


class TestManifest:
    def test_build_manifest(self, tmp_dir: Path):
        manifest = build_manifest("radicle", "2.1.0", REVISION, [_sealed(tmp_dir, "t1"), _sealed(tmp_dir, "t2")])
        assert manifest.targets == ["t1", "t2"]
        entry = manifest.entry_for("t2")
        assert entry.archive == "radicle-2.1.0-t2.tar.xz"
        assert entry.checksum_file == "radicle-2.1.0-t2.tar.xz.sha256"
        assert entry.signature == "radicle-2.1.0-t2.tar.xz.sig"
        with pytest.raises(KeyError):
            manifest.entry_for("t3")

    def test_render_is_stable_json(self, tmp_dir: Path):
        manifest = build_manifest("radicle", "2.1.0", REVISION, [_sealed(tmp_dir, "t1")])
        text = render_manifest(manifest)
        assert text.endswith("}\n")
        data = json.loads(text)
        assert data["version"] == "2.1.0"
        assert data["artifacts"][0]["sha256"] == "0" * 64
        assert list(data) == sorted(data)
        assert render_manifest(manifest) == text

    def test_write_then_load(self, tmp_dir: Path):
        manifest = build_manifest("radicle", "2.1.0", REVISION, [_sealed(tmp_dir, "t1")])
        path = write_manifest(manifest, tmp_dir / "out" / "radicle.json")
        assert load_manifest(path) == manifest

    def test_load_missing(self, tmp_dir: Path):
        with pytest.raises(PublishError, match="run the build first"):
            load_manifest(tmp_dir / "radicle.json")

    def test_load_invalid(self, tmp_dir: Path):
        path = tmp_dir / "radicle.json"
        path.write_text('{"version": 1}')
        with pytest.raises(PublishError, match="invalid release manifest"):
            load_manifest(path)


class TestHasher:
    def test_stable_json_is_sorted_and_compact(self):
        assert stable_json({"b": 1, "a": [1, 2]}) == b'{"a":[1,2],"b":1}'

    def test_stage_digest_ignores_key_order(self):
        assert stage_digest("package", "in", {"a": 1, "b": 2}) == stage_digest(
            "package", "in", {"b": 2, "a": 1}
        )

    def test_stage_digest_depends_on_stage_and_role(self):
        assert stage_digest("package", "in", {"x": 1}) != stage_digest("integrity", "in", {"x": 1})
        assert stage_digest("package", "in", {"x": 1}) != stage_digest("package", "out", {"x": 1})

    def test_sha256_file_matches_bytes(self, tmp_dir: Path):
        path = tmp_dir / "blob"
        data = b"x" * (3 << 20)
        path.write_bytes(data)
        assert sha256_file(path) == sha256_hex(data)
