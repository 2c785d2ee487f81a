"""Releaseforge data models — all Pydantic v2, all frozen (immutable)."""

from releaseforge.models.artifacts import (
    Archive,
    BuildOutput,
    BuildReport,
    ChecksumRecord,
    ManifestEntry,
    PublishedRelease,
    ReleaseManifest,
    Signature,
    SignedArtifact,
)
from releaseforge.models.config import PipelineConfig
from releaseforge.models.stages import (
    BUILD_STAGE_DEFINITIONS,
    UPLOAD_STAGE_DEFINITIONS,
    VALID_TRANSITIONS,
    StageDefinition,
    StageState,
    StageTransition,
)
from releaseforge.models.versioning import EnvironmentFacts, Revision

__all__ = [
    # versioning
    "Revision",
    "EnvironmentFacts",
    # stages
    "StageState",
    "StageDefinition",
    "StageTransition",
    "VALID_TRANSITIONS",
    "BUILD_STAGE_DEFINITIONS",
    "UPLOAD_STAGE_DEFINITIONS",
    # artifacts
    "BuildOutput",
    "BuildReport",
    "Archive",
    "ChecksumRecord",
    "Signature",
    "SignedArtifact",
    "ManifestEntry",
    "ReleaseManifest",
    "PublishedRelease",
    # config
    "PipelineConfig",
]
