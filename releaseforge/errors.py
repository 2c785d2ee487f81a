"""Release error taxonomy.

Every fatal condition in the pipeline is a ``ReleaseError``. Each class
carries an ``ErrorKind`` and the process exit code the CLI uses for it,
so that a trust-chain defect (integrity) is never reported the same way
as a build defect.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    ENVIRONMENT = "environment"
    RESOLUTION = "resolution"
    SNAPSHOT = "snapshot"
    BUILD = "build"
    PACKAGING = "packaging"
    INTEGRITY = "integrity"
    PUBLISH = "publish"


# Exit codes, one per error kind. 1 is reserved for unexpected failures.
EXIT_CODES: dict[ErrorKind, int] = {
    ErrorKind.ENVIRONMENT: 2,
    ErrorKind.RESOLUTION: 3,
    ErrorKind.SNAPSHOT: 4,
    ErrorKind.BUILD: 4,
    ErrorKind.PACKAGING: 5,
    ErrorKind.INTEGRITY: 6,
    ErrorKind.PUBLISH: 7,
}


class ReleaseError(RuntimeError):
    """Base class for every fatal pipeline error."""

    kind: ErrorKind = ErrorKind.BUILD

    @property
    def exit_code(self) -> int:
        return EXIT_CODES.get(self.kind, 1)


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------


class MissingToolchain(ReleaseError):
    """A required external program is not on PATH."""

    kind = ErrorKind.ENVIRONMENT

    def __init__(self, tools: list[str]) -> None:
        self.tools = list(tools)
        super().__init__(f"{', '.join(self.tools)} not installed")


class MissingSigningKey(ReleaseError):
    """The signing key pair is not where it is expected."""

    kind = ErrorKind.ENVIRONMENT


class ConfigurationError(ReleaseError):
    """A ``RELEASEFORGE_*`` setting is malformed or out of range."""

    kind = ErrorKind.ENVIRONMENT


# ---------------------------------------------------------------------------
# Resolution and snapshot
# ---------------------------------------------------------------------------


class NoVersionTag(ReleaseError):
    """No usable version tag exists in the revision's ancestry."""

    kind = ErrorKind.RESOLUTION


class SnapshotError(ReleaseError):
    """The revision cannot be resolved to a tree or archived."""

    kind = ErrorKind.SNAPSHOT


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------


class ContainerBuildFailed(ReleaseError):
    """The container image build or container creation failed."""

    kind = ErrorKind.BUILD


class ExtractionFailed(ReleaseError):
    """An expected file is missing inside the completed image."""

    kind = ErrorKind.BUILD


# ---------------------------------------------------------------------------
# Packaging
# ---------------------------------------------------------------------------


class PackagingError(ReleaseError):
    """An expected file is missing or unreadable while archiving."""

    kind = ErrorKind.PACKAGING


class ReproducibilityError(PackagingError):
    """A rebuilt archive differs from the existing one for the same version."""


# ---------------------------------------------------------------------------
# Integrity
# ---------------------------------------------------------------------------


class IntegrityError(ReleaseError):
    """Base for trust-chain defects."""

    kind = ErrorKind.INTEGRITY


class KeyFormatError(IntegrityError):
    """A key file cannot be parsed as an OpenSSH ed25519 key."""


class SignatureVerificationError(IntegrityError):
    """A signature does not verify against the expected public key."""


class ChecksumMismatch(IntegrityError):
    """An archive's bytes do not match its recorded digest."""


# ---------------------------------------------------------------------------
# Publish
# ---------------------------------------------------------------------------


class PublishError(ReleaseError):
    """Transfer or aliasing on the release host failed."""

    kind = ErrorKind.PUBLISH
