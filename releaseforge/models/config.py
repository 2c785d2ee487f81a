"""Pipeline configuration model — the explicit, immutable run configuration."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from releaseforge.config import ReleaseSettings


class PipelineConfig(BaseModel):
    """Everything a stage may consult, fixed for the duration of a run.

    Built once from ``ReleaseSettings`` so that no stage reads the
    process environment or any other hidden global state.
    """

    model_config = ConfigDict(frozen=True)

    product_name: str = "radicle"
    targets: list[str] = Field(min_length=1)
    binaries: list[str] = Field(min_length=1)

    repo_path: Path = Path(".")
    artifacts_dir: Path = Path("build/artifacts")
    dockerfile: Path = Path("build/Dockerfile")

    image_name: str = "radicle-build"
    container_name: str = "radicle-build-container"
    build_arch: str = "amd64"

    private_key_path: Path
    public_key_path: Path

    tag_prefix: str = "v"
    strict_version: bool = True
    compression_level: int = Field(default=6, ge=0, le=9)

    release_root: str = "/mnt/radicle/files/releases"
    ssh_address: str = "release@files.radicle.xyz"
    ssh_key_path: Path | None = None

    command_timeout_seconds: int = 1800
    network_timeout_seconds: int = 300
    max_workers: int = Field(default=4, ge=1)

    @field_validator("targets")
    @classmethod
    def _unique_targets(cls, value: list[str]) -> list[str]:
        if len(set(value)) != len(value):
            raise ValueError(f"duplicate targets in {value}")
        return value

    @classmethod
    def from_settings(cls, settings: ReleaseSettings) -> PipelineConfig:
        key_dir = settings.key_dir.expanduser()
        private_key = key_dir / settings.key_name
        return cls(
            product_name=settings.product_name,
            targets=settings.targets,
            binaries=settings.binaries,
            repo_path=settings.repo_path,
            artifacts_dir=settings.artifacts_dir,
            dockerfile=settings.dockerfile,
            image_name=settings.image_name,
            container_name=settings.container_name,
            build_arch=settings.build_arch,
            private_key_path=private_key,
            public_key_path=private_key.with_name(f"{settings.key_name}.pub"),
            tag_prefix=settings.tag_prefix,
            strict_version=settings.strict_version,
            compression_level=settings.compression_level,
            release_root=settings.release_root,
            ssh_address=settings.ssh_address,
            ssh_key_path=(
                settings.ssh_key.expanduser() if settings.ssh_key else private_key
            ),
            command_timeout_seconds=settings.command_timeout_seconds,
            network_timeout_seconds=settings.network_timeout_seconds,
            max_workers=settings.max_workers,
        )

    def archive_name(self, version: str, target: str) -> str:
        """``<product>-<version>-<target>.tar.xz``"""
        return f"{self.product_name}-{version}-{target}.tar.xz"

    def alias_name(self, target: str) -> str:
        """Unversioned per-target alias, ``<product>-<target>.tar.xz``."""
        return f"{self.product_name}-{target}.tar.xz"

    @property
    def manifest_name(self) -> str:
        return f"{self.product_name}.json"

    def output_dir(self, target: str) -> Path:
        """Directory holding the extracted build output for *target*."""
        return self.artifacts_dir / target
