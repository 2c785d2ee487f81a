"""Build output and release artifact models (immutable once created)."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict


class BuildOutput(BaseModel):
    """Binaries and documentation extracted for one target."""

    model_config = ConfigDict(frozen=True)

    target: str
    directory: Path
    binaries: list[Path]
    docs: list[Path] = []

    @property
    def files(self) -> list[Path]:
        return [*self.binaries, *self.docs]


class Archive(BaseModel):
    """A deterministic compressed bundle of one target's build output."""

    model_config = ConfigDict(frozen=True)

    version: str
    target: str
    path: Path
    sha256: str
    size_bytes: int

    @property
    def filename(self) -> str:
        return self.path.name


class ChecksumRecord(BaseModel):
    """SHA-256 digest of an archive, persisted as ``<archive>.sha256``."""

    model_config = ConfigDict(frozen=True)

    archive_name: str
    sha256: str
    path: Path

    def render(self) -> str:
        """Render in ``sha256sum`` output format."""
        return f"{self.sha256}  {self.archive_name}\n"


class Signature(BaseModel):
    """Detached SSH signature over an archive, persisted as ``<archive>.sig``."""

    model_config = ConfigDict(frozen=True)

    archive_name: str
    path: Path
    namespace: str
    key_fingerprint: str


class SignedArtifact(BaseModel):
    """One (Archive, ChecksumRecord, Signature) triple."""

    model_config = ConfigDict(frozen=True)

    archive: Archive
    checksum: ChecksumRecord
    signature: Signature

    @property
    def paths(self) -> list[Path]:
        return [self.archive.path, self.checksum.path, self.signature.path]


class ManifestEntry(BaseModel):
    """Per-target record inside the release manifest."""

    model_config = ConfigDict(frozen=True)

    target: str
    archive: str
    sha256: str
    size: int
    checksum_file: str
    signature: str


class ReleaseManifest(BaseModel):
    """The finalized set of signed artifacts for a version."""

    model_config = ConfigDict(frozen=True)

    product: str
    version: str
    revision: str
    commit_time: int
    targets: list[str]
    artifacts: list[ManifestEntry]

    def entry_for(self, target: str) -> ManifestEntry:
        for entry in self.artifacts:
            if entry.target == target:
                return entry
        raise KeyError(target)


class PublishedRelease(BaseModel):
    """Where a version ended up on the release store."""

    model_config = ConfigDict(frozen=True)

    version: str
    version_dir: str
    files: list[str]
    aliases: dict[str, str]  # link -> target
    latest: str


class BuildReport(BaseModel):
    """Outcome of a successful build run."""

    model_config = ConfigDict(frozen=True)

    version: str
    revision: str
    commit_time: int
    artifacts: list[SignedArtifact]
    manifest_path: Path
