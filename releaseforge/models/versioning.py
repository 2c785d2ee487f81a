"""Revision and version models — the immutable identity of a release run."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator


class Revision(BaseModel):
    """The exact source state being built.

    ``commit_id`` and ``short_id`` come from the repository; ``content_hash``
    is filled in once the source snapshot exists.
    """

    model_config = ConfigDict(frozen=True)

    commit_id: str
    short_id: str
    commit_time: int  # seconds since the epoch, UTC
    content_hash: str = ""  # "sha256:<hex>" of the snapshot bytes


class EnvironmentFacts(BaseModel):
    """The only inputs allowed to vary a build besides the source itself.

    Wall-clock time and random identifiers never reach the build; every
    timestamp inside an artifact is derived from ``commit_time``.
    """

    model_config = ConfigDict(frozen=True)

    commit_time: int
    revision: str
    version: str

    @field_validator("version")
    @classmethod
    def _version_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("version must not be empty")
        return value

    def container_env(self) -> dict[str, str]:
        """Build arguments injected into the container image build."""
        return {
            "GIT_COMMIT_TIME": str(self.commit_time),
            "GIT_HEAD": self.revision,
            "RADICLE_VERSION": self.version,
        }

    def process_env(self) -> dict[str, str]:
        """Variables exported to local subprocesses for reproducibility."""
        return {
            "SOURCE_DATE_EPOCH": str(self.commit_time),
            "TZ": "UTC0",
            "LC_ALL": "C",
        }
