"""Release configuration — env-driven.

Centralized settings using pydantic-settings. Reads from a .env file and
RELEASEFORGE_* environment variables. The pipeline itself never reads the
environment: settings are converted once into a frozen ``PipelineConfig``
(see ``releaseforge.models.config``) and passed to every stage.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TARGETS: list[str] = [
    "x86_64-unknown-linux-musl",
    "aarch64-unknown-linux-musl",
    "x86_64-apple-darwin",
    "aarch64-apple-darwin",
]

DEFAULT_BINARIES: list[str] = [
    "rad",
    "radicle-node",
    "radicle-httpd",
    "git-remote-rad",
]


class ReleaseSettings(BaseSettings):
    """Release settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export RELEASEFORGE_LOG_LEVEL=DEBUG
        export RELEASEFORGE_KEY_DIR=/secure/keys
        export RELEASEFORGE_TARGETS='["x86_64-unknown-linux-musl"]'

    Or via .env file::

        RELEASEFORGE_SSH_HOST=files.example.org
        RELEASEFORGE_STRICT_VERSION=false
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="RELEASEFORGE_",
        env_file_encoding="utf-8",
    )

    # Product
    product_name: str = "radicle"
    targets: list[str] = list(DEFAULT_TARGETS)
    binaries: list[str] = list(DEFAULT_BINARIES)

    # Source and output paths
    repo_path: Path = Path(".")
    artifacts_dir: Path = Path("build/artifacts")
    dockerfile: Path = Path("build/Dockerfile")

    # Container runtime
    image_name: str = "radicle-build"
    container_name: str = "radicle-build-container"
    build_arch: str = "amd64"

    # Signing key pair (private key file and its ``.pub`` companion)
    key_dir: Path = Path("~/.radicle/keys")
    key_name: str = "radicle"

    # Version resolution
    tag_prefix: str = "v"
    strict_version: bool = True

    # Packaging
    compression_level: int = 6

    # Remote release store
    release_root: str = "/mnt/radicle/files/releases"
    ssh_login: str = "release"
    ssh_host: str = "files.radicle.xyz"
    ssh_key: Path | None = None

    # Execution
    command_timeout_seconds: int = 1800
    network_timeout_seconds: int = 300
    max_workers: int = 4

    # Observability
    log_level: str = "INFO"

    @property
    def ssh_address(self) -> str:
        """``login@host`` address of the release host."""
        return f"{self.ssh_login}@{self.ssh_host}"
