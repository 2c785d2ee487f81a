"""Releaseforge: reproducible release builds with signed, atomically published archives.

Pipeline: version -> source snapshot -> container build -> per-target
archive -> checksum and signature -> publish with per-target aliases and
a ``latest`` pointer.
"""

__version__ = "0.1.0"

from releaseforge.core.orchestrator import ReleaseOrchestrator
from releaseforge.cli.app import app as cli

__all__ = ["ReleaseOrchestrator", "cli", "__version__"]
