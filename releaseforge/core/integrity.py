"""Checksums and detached signatures for release archives.

Each archive gets two companions next to it:

- ``<archive>.sha256`` in ``sha256sum`` format (``<hex>  <filename>``),
- ``<archive>.sig``, an armored SSHSIG in the ``file`` namespace.

Signing is always followed by self-verification against the public key
on disk. A signature that does not verify is a trust-chain defect and
raises ``SignatureVerificationError``; the bad file is removed.
"""

from __future__ import annotations

import logging
from pathlib import Path

from releaseforge.bridge.crypto_bridge import (
    FILE_NAMESPACE,
    PublicKey,
    file_digest,
    load_private_key,
    load_public_key,
    sign_digest,
    verify_digest,
)
from releaseforge.core.hasher import sha256_file
from releaseforge.errors import ChecksumMismatch, KeyFormatError, SignatureVerificationError
from releaseforge.models.artifacts import Archive, ChecksumRecord, Signature, SignedArtifact

logger = logging.getLogger(__name__)

CHECKSUM_SUFFIX = ".sha256"
SIGNATURE_SUFFIX = ".sig"


def checksum_path(archive: Path) -> Path:
    return archive.with_name(archive.name + CHECKSUM_SUFFIX)


def signature_path(archive: Path) -> Path:
    return archive.with_name(archive.name + SIGNATURE_SUFFIX)


def parse_checksum_file(path: Path) -> tuple[str, str]:
    """Return ``(hex digest, filename)`` from a ``sha256sum`` line."""
    line = path.read_text(encoding="utf-8").strip()
    digest, sep, name = line.partition("  ")
    if not sep or len(digest) != 64 or not name:
        raise ChecksumMismatch(f"malformed checksum file {path}")
    return digest.lower(), name.lstrip("*")


class IntegrityService:
    """Computes checksums, signs, and verifies archives.

    Parameters
    ----------
    private_key_path:
        Unencrypted OpenSSH ed25519 private key. Read only inside
        :meth:`sign` and never retained.
    public_key_path:
        The matching ``.pub`` file used for self-verification.
    """

    def __init__(
        self,
        private_key_path: Path,
        public_key_path: Path,
        *,
        namespace: str = FILE_NAMESPACE,
    ) -> None:
        self._private_key_path = Path(private_key_path)
        self._public_key_path = Path(public_key_path)
        self._namespace = namespace

    def public_key(self) -> PublicKey:
        return load_public_key(self._public_key_path)

    # ------------------------------------------------------------------
    # Checksums
    # ------------------------------------------------------------------

    def checksum(self, archive: Archive) -> ChecksumRecord:
        """Write ``<archive>.sha256`` from the archive's bytes on disk."""
        digest = sha256_file(archive.path)
        if digest != archive.sha256:
            raise ChecksumMismatch(
                f"{archive.filename} changed after packaging "
                f"(expected {archive.sha256[:16]}, found {digest[:16]})"
            )
        record = ChecksumRecord(
            archive_name=archive.filename,
            sha256=digest,
            path=checksum_path(archive.path),
        )
        record.path.write_text(record.render(), encoding="utf-8")
        logger.info("checksum of %s is %s", archive.filename, digest)
        return record

    @staticmethod
    def verify_checksum(archive_path: Path) -> str:
        """Recompute the digest of *archive_path* and compare it to its record.

        Returns the digest. Raises ``ChecksumMismatch`` on any discrepancy.
        """
        record = checksum_path(archive_path)
        if not record.is_file():
            raise ChecksumMismatch(f"no checksum file for {archive_path.name}")
        expected, name = parse_checksum_file(record)
        if name != archive_path.name:
            raise ChecksumMismatch(f"{record.name} names {name!r}, not {archive_path.name!r}")
        actual = sha256_file(archive_path)
        if actual != expected:
            raise ChecksumMismatch(
                f"{archive_path.name}: sha256 {actual[:16]} does not match recorded {expected[:16]}"
            )
        return actual

    # ------------------------------------------------------------------
    # Signatures
    # ------------------------------------------------------------------

    def sign(self, archive: Archive) -> Signature:
        """Sign *archive*, replacing any existing signature, then self-verify."""
        sig_path = signature_path(archive.path)
        sig_path.unlink(missing_ok=True)

        identity = load_private_key(self._private_key_path)
        public = self.public_key()
        if identity.public.key != public.key:
            raise KeyFormatError(
                f"{self._private_key_path} does not match {self._public_key_path}"
            )

        armored = sign_digest(file_digest(archive.path), identity, self._namespace)
        sig_path.write_text(armored, encoding="utf-8")

        if not self.verify(archive.path, sig_path, public):
            sig_path.unlink(missing_ok=True)
            raise SignatureVerificationError(
                f"signature for {archive.filename} failed self-verification"
            )
        logger.info("signed %s with %s", archive.filename, public.fingerprint)
        return Signature(
            archive_name=archive.filename,
            path=sig_path,
            namespace=self._namespace,
            key_fingerprint=public.fingerprint,
        )

    def verify(self, archive_path: Path, sig_path: Path, public_key: PublicKey | None = None) -> bool:
        """Check *sig_path* over *archive_path* under *public_key*."""
        key = public_key or self.public_key()
        if not sig_path.is_file() or not archive_path.is_file():
            return False
        return verify_digest(
            file_digest(archive_path),
            sig_path.read_text(encoding="utf-8"),
            key,
            self._namespace,
        )

    def verify_signature(self, archive_path: Path, public_key: PublicKey | None = None) -> None:
        """Like :meth:`verify` but raises ``SignatureVerificationError``."""
        if not self.verify(archive_path, signature_path(archive_path), public_key):
            raise SignatureVerificationError(
                f"signature of {archive_path.name} does not verify"
            )

    # ------------------------------------------------------------------
    # Combined
    # ------------------------------------------------------------------

    def seal(self, archive: Archive) -> SignedArtifact:
        """Checksum then sign one archive."""
        checksum = self.checksum(archive)
        signature = self.sign(archive)
        return SignedArtifact(archive=archive, checksum=checksum, signature=signature)
