"""Digests used across the pipeline.

Archive identity and checksum records rest on :func:`sha256_file`.
:func:`stage_digest` fingerprints what went into and came out of each
stage, so two runs can be compared stage by stage from their summaries.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

_CHUNK_SIZE = 1 << 20


def stable_json(obj: Any) -> bytes:
    """Key-sorted, separator-minimal JSON; non-JSON values go through ``str``."""
    text = json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str)
    return text.encode("utf-8")


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def sha256_file(path: Path) -> str:
    """Hex SHA-256 of a file, read in 1 MiB chunks."""
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def stage_digest(stage_id: str, role: str, values: Mapping[str, Any]) -> str:
    """Digest of a stage's inputs or outputs (*role* is ``"in"`` or ``"out"``)."""
    return sha256_hex(stable_json({"stage": stage_id, "role": role, "values": dict(values)}))
