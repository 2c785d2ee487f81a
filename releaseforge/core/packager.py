"""Deterministic archive construction.

Given the same build output and commit time, ``ArtifactPackager`` yields
byte-identical ``.tar.xz`` files on any machine:

- members sorted by name under one top-level directory,
- owner/group 0 with empty names, modes normalized from the owner bits
  (``go+u,go-w``),
- every mtime set to the commit time, no atime/ctime records,
- POSIX pax format with no extended headers beyond what a member needs,
- xz compression at a pinned preset with a CRC64 check.

Man pages have their roff comment lines removed first, since the
renderer writes build dates and versions there.
"""

from __future__ import annotations

import io
import logging
import lzma
import os
import re
import tarfile
from pathlib import Path

from releaseforge.core.hasher import sha256_hex
from releaseforge.errors import PackagingError, ReproducibilityError
from releaseforge.models.artifacts import Archive, BuildOutput

logger = logging.getLogger(__name__)

_ROFF_COMMENT = re.compile(rb'^.\\"')
_DIR_MODE = 0o755


def strip_roff_comments(data: bytes) -> bytes:
    """Drop every line that is a roff comment (``.\\"`` and variants).

    Works on raw bytes and splits on newlines only, so pages in any
    encoding pass through unchanged apart from the removed lines.
    """
    return b"\n".join(line for line in data.split(b"\n") if not _ROFF_COMMENT.match(line))


def normalize_mode(st_mode: int) -> int:
    """Apply ``go+u,go-w`` to the owner permission bits only."""
    user = (st_mode >> 6) & 0o7
    shared = user & 0o5
    return (user << 6) | (shared << 3) | shared


class ArtifactPackager:
    """Turns one target's ``BuildOutput`` into a reproducible archive.

    Parameters
    ----------
    dest_dir:
        Directory the archives are written to.
    compression_level:
        xz preset; pinned so that output never depends on tool defaults.
    """

    def __init__(self, dest_dir: Path, *, compression_level: int = 6) -> None:
        self._dest = Path(dest_dir)
        self._level = compression_level

    # ------------------------------------------------------------------
    # Archive bytes
    # ------------------------------------------------------------------

    def tar_bytes(self, output: BuildOutput, root: str, mtime: int) -> bytes:
        """Build the uncompressed tar stream for *output*."""
        members: dict[str, tuple[bytes, int]] = {}
        files = [(path, self._read(path)) for path in output.binaries]
        files += [(path, strip_roff_comments(self._read(path))) for path in output.docs]
        for path, data in files:
            if path.name in members:
                raise PackagingError(
                    f"duplicate archive member {path.name!r} in build output for {output.target}"
                )
            members[path.name] = (data, self._mode(path))

        buf = io.BytesIO()
        with tarfile.open(fileobj=buf, mode="w", format=tarfile.PAX_FORMAT) as tar:
            tar.addfile(self._tarinfo(f"{root}/", tarfile.DIRTYPE, _DIR_MODE, mtime))
            for name in sorted(members):
                data, mode = members[name]
                info = self._tarinfo(f"{root}/{name}", tarfile.REGTYPE, mode, mtime)
                info.size = len(data)
                tar.addfile(info, io.BytesIO(data))
        return buf.getvalue()

    def compress(self, data: bytes) -> bytes:
        return lzma.compress(
            data, format=lzma.FORMAT_XZ, check=lzma.CHECK_CRC64, preset=self._level
        )

    # ------------------------------------------------------------------
    # Archive files
    # ------------------------------------------------------------------

    def package(
        self,
        output: BuildOutput,
        *,
        archive_name: str,
        version: str,
        mtime: int,
    ) -> Archive:
        """Write *archive_name* for *output* and return its record.

        An existing archive with the same name must have identical bytes;
        it is then rewritten in place. Different bytes mean the build is
        not reproducible and raise ``ReproducibilityError``.
        """
        if not output.binaries:
            raise PackagingError(f"no binaries in build output for {output.target}")

        root = archive_name.removesuffix(".tar.xz")
        data = self.compress(self.tar_bytes(output, root, mtime))
        digest = sha256_hex(data)

        path = self._dest / archive_name
        if path.exists():
            existing = sha256_hex(path.read_bytes())
            if existing != digest:
                raise ReproducibilityError(
                    f"{archive_name} already exists with different contents "
                    f"(existing sha256 {existing[:16]}, rebuilt {digest[:16]})"
                )
            logger.info("%s already exists with identical contents", archive_name)

        self._dest.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(f".{path.name}.tmp")
        tmp.write_bytes(data)
        os.replace(tmp, path)
        logger.info("created %s (%d bytes)", path, len(data))

        return Archive(
            version=version,
            target=output.target,
            path=path,
            sha256=digest,
            size_bytes=len(data),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _tarinfo(name: str, kind: bytes, mode: int, mtime: int) -> tarfile.TarInfo:
        info = tarfile.TarInfo(name)
        info.type = kind
        info.mode = mode
        info.mtime = mtime
        info.uid = info.gid = 0
        info.uname = info.gname = ""
        return info

    @staticmethod
    def _read(path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as exc:
            raise PackagingError(f"expected file {path} is missing: {exc}") from exc

    @staticmethod
    def _mode(path: Path) -> int:
        try:
            return normalize_mode(path.stat().st_mode)
        except OSError as exc:
            raise PackagingError(f"expected file {path} is missing: {exc}") from exc
