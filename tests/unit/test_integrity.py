"""Unit tests for IntegrityService — checksum records and signatures."""

from __future__ import annotations

from pathlib import Path

import nacl.signing
import pytest

from releaseforge.bridge.crypto_bridge import SigningIdentity
from releaseforge.core.hasher import sha256_hex
from releaseforge.core.integrity import (
    IntegrityService,
    checksum_path,
    parse_checksum_file,
    signature_path,
)
from releaseforge.errors import ChecksumMismatch, KeyFormatError, SignatureVerificationError
from releaseforge.models.artifacts import Archive


@pytest.fixture
def archive(tmp_dir: Path) -> Archive:
    path = tmp_dir / "radicle-1.0.0-t1.tar.xz"
    data = b"archive payload" * 100
    path.write_bytes(data)
    return Archive(
        version="1.0.0",
        target="t1",
        path=path,
        sha256=sha256_hex(data),
        size_bytes=len(data),
    )


@pytest.fixture
def integrity(key_pair) -> IntegrityService:
    return IntegrityService(*key_pair)


class TestChecksum:
    def test_writes_sha256sum_format(self, integrity: IntegrityService, archive: Archive):
        record = integrity.checksum(archive)
        assert record.path == checksum_path(archive.path)
        assert record.path.read_text() == f"{archive.sha256}  radicle-1.0.0-t1.tar.xz\n"
        assert parse_checksum_file(record.path) == (archive.sha256, archive.filename)

    def test_detects_change_after_packaging(self, integrity: IntegrityService, archive: Archive):
        archive.path.write_bytes(b"tampered")
        with pytest.raises(ChecksumMismatch, match="changed after packaging"):
            integrity.checksum(archive)

    def test_verify_checksum(self, integrity: IntegrityService, archive: Archive):
        integrity.checksum(archive)
        assert IntegrityService.verify_checksum(archive.path) == archive.sha256

    def test_verify_checksum_detects_tampering(self, integrity: IntegrityService, archive: Archive):
        integrity.checksum(archive)
        archive.path.write_bytes(b"tampered")
        with pytest.raises(ChecksumMismatch, match="does not match"):
            IntegrityService.verify_checksum(archive.path)

    def test_verify_checksum_requires_record(self, archive: Archive):
        with pytest.raises(ChecksumMismatch, match="no checksum file"):
            IntegrityService.verify_checksum(archive.path)

    def test_malformed_record(self, archive: Archive):
        checksum_path(archive.path).write_text("nonsense\n")
        with pytest.raises(ChecksumMismatch, match="malformed"):
            IntegrityService.verify_checksum(archive.path)


class TestSign:
    def test_sign_and_verify(self, integrity: IntegrityService, archive: Archive, signing_identity):
        signature = integrity.sign(archive)
        assert signature.path == signature_path(archive.path)
        assert signature.namespace == "file"
        assert signature.key_fingerprint == signing_identity.public.fingerprint
        assert integrity.verify(archive.path, signature.path)
        integrity.verify_signature(archive.path)

    def test_stale_signature_is_replaced(self, integrity: IntegrityService, archive: Archive):
        stale = signature_path(archive.path)
        stale.write_text("-----BEGIN SSH SIGNATURE-----\nstale\n-----END SSH SIGNATURE-----\n")
        integrity.sign(archive)
        assert "stale" not in stale.read_text()
        assert integrity.verify(archive.path, stale)

    def test_tampered_archive_fails_verification(self, integrity: IntegrityService, archive: Archive):
        integrity.sign(archive)
        archive.path.write_bytes(b"tampered")
        assert not integrity.verify(archive.path, signature_path(archive.path))
        with pytest.raises(SignatureVerificationError):
            integrity.verify_signature(archive.path)

    def test_missing_signature_does_not_verify(self, integrity: IntegrityService, archive: Archive):
        assert not integrity.verify(archive.path, signature_path(archive.path))

    def test_mismatched_public_key_is_fatal(self, tmp_dir: Path, key_pair, archive: Archive):
        other = SigningIdentity.from_signing_key(nacl.signing.SigningKey(b"\x02" * 32))
        wrong_pub = tmp_dir / "other.pub"
        wrong_pub.write_text(other.public.to_openssh())
        service = IntegrityService(key_pair[0], wrong_pub)
        with pytest.raises(KeyFormatError, match="does not match"):
            service.sign(archive)
        assert not signature_path(archive.path).exists()

    def test_self_verification_failure_removes_signature(
        self, integrity: IntegrityService, archive: Archive, monkeypatch
    ):
        monkeypatch.setattr(
            "releaseforge.core.integrity.verify_digest", lambda *args, **kwargs: False
        )
        with pytest.raises(SignatureVerificationError, match="self-verification"):
            integrity.sign(archive)
        assert not signature_path(archive.path).exists()

    def test_verify_against_another_key(self, integrity: IntegrityService, archive: Archive):
        integrity.sign(archive)
        other = SigningIdentity.from_signing_key(nacl.signing.SigningKey(b"\x03" * 32))
        assert not integrity.verify(archive.path, signature_path(archive.path), other.public)


class TestSeal:
    def test_seal_produces_triple(self, integrity: IntegrityService, archive: Archive):
        sealed = integrity.seal(archive)
        assert sealed.archive == archive
        assert [p.name for p in sealed.paths] == [
            "radicle-1.0.0-t1.tar.xz",
            "radicle-1.0.0-t1.tar.xz.sha256",
            "radicle-1.0.0-t1.tar.xz.sig",
        ]
        assert all(p.is_file() for p in sealed.paths)
