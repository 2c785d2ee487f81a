"""Releaseforge core — the pipeline components and their orchestrator.

Modules
-------
process
    ``CommandRunner`` protocol and the subprocess-backed default.
preflight
    Toolchain and signing-key checks run before any build work.
snapshot / version_resolver
    Revision identity, deterministic source snapshot, version string.
container
    Container image build, container lifetime, per-target extraction.
packager
    Canonical tar.xz archives.
integrity
    Checksum records and SSH signatures with self-verification.
manifest / publisher
    Release descriptor and the atomic remote publication.
orchestrator
    ``ReleaseOrchestrator`` composing the stages above.
"""
