"""Pipeline orchestrator — the central coordinator for release runs.

The orchestrator wires the VersionResolver, SourceSnapshotter,
ContainerBuildOrchestrator, ArtifactPackager, IntegrityService and
ReleasePublisher into two strictly sequential pipelines:

- **build**: preflight -> version -> snapshot -> container build
  -> package -> checksum & sign
- **upload**: preflight -> version -> local verification -> publish

Each stage runs through :meth:`ReleaseOrchestrator.execute_stage`, which
records RUNNING/PASSED/FAILED in the ``StageMachine``. The first failure
marks every later stage BLOCKED and propagates; nothing after it runs.
"""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, TypeVar

from releaseforge.bridge.transport import RemoteStore
from releaseforge.core.container import ContainerBuildOrchestrator
from releaseforge.core.hasher import stage_digest
from releaseforge.core.integrity import IntegrityService
from releaseforge.core.manifest import build_manifest, load_manifest, write_manifest
from releaseforge.core.packager import ArtifactPackager
from releaseforge.core.preflight import BUILD_TOOLS, SSH_UPLOAD_TOOLS, check_key_pair, check_tools
from releaseforge.core.process import CommandRunner, SubprocessRunner
from releaseforge.core.publisher import ReleasePublisher
from releaseforge.core.snapshot import SourceSnapshotter, resolve_revision
from releaseforge.core.stage_machine import StageMachine
from releaseforge.core.version_resolver import VersionResolver
from releaseforge.errors import PublishError
from releaseforge.models.artifacts import (
    Archive,
    BuildOutput,
    BuildReport,
    PublishedRelease,
    ReleaseManifest,
    SignedArtifact,
)
from releaseforge.models.config import PipelineConfig
from releaseforge.models.stages import (
    BUILD_STAGE_DEFINITIONS,
    UPLOAD_STAGE_DEFINITIONS,
    StageDefinition,
    StageState,
)
from releaseforge.models.versioning import EnvironmentFacts, Revision

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReleaseOrchestrator:
    """Runs the build and upload pipelines for one configuration.

    Parameters
    ----------
    config:
        The immutable pipeline configuration.
    runner:
        Command runner for git/podman/ssh. Defaults to ``SubprocessRunner``.
    """

    def __init__(
        self,
        config: PipelineConfig,
        *,
        runner: CommandRunner | None = None,
    ) -> None:
        self.config = config
        self.runner = runner or SubprocessRunner()
        self.integrity = IntegrityService(config.private_key_path, config.public_key_path)
        self.stage_machine = StageMachine(BUILD_STAGE_DEFINITIONS)

    # ------------------------------------------------------------------
    # Stage execution
    # ------------------------------------------------------------------

    def _start(self, definitions: list[StageDefinition]) -> None:
        self.stage_machine = StageMachine(definitions)

    def execute_stage(
        self,
        stage_id: str,
        handler: Callable[[], T],
        inputs: dict[str, Any] | None = None,
        summarize: Callable[[T], dict[str, Any]] | None = None,
    ) -> T:
        """Run one stage handler with state tracking.

        Lifecycle:
        1. Compute input_hash, transition to RUNNING (prerequisites checked)
        2. Call handler
        3. On error: transition to FAILED (dependents BLOCKED) and re-raise
        4. Compute output_hash from ``summarize(result)``, transition to PASSED
        """
        display = self.stage_machine.definition(stage_id).display_name
        input_hash = stage_digest(stage_id, "in", inputs or {})
        self.stage_machine.transition(stage_id, StageState.RUNNING, input_hash=input_hash)
        logger.info("%s [%s] started", display, stage_id)

        try:
            result = handler()
        except Exception as exc:
            self.stage_machine.transition(
                stage_id,
                StageState.FAILED,
                input_hash=input_hash,
                output_hash=stage_digest(stage_id, "out", {"error": str(exc)}),
                detail=str(exc),
            )
            logger.error("%s [%s] failed: %s", display, stage_id, exc)
            raise

        output_hash = stage_digest(stage_id, "out", summarize(result) if summarize else {})
        self.stage_machine.transition(
            stage_id, StageState.PASSED, input_hash=input_hash, output_hash=output_hash
        )
        logger.info("%s [%s] passed output_hash=%s", display, stage_id, output_hash[:12])
        return result

    def get_states(self) -> dict[str, StageState]:
        return self.stage_machine.get_all_states()

    # ------------------------------------------------------------------
    # Shared stages
    # ------------------------------------------------------------------

    def resolve_version(self) -> tuple[Revision, str]:
        cfg = self.config
        revision = resolve_revision(
            self.runner, cfg.repo_path, timeout=cfg.network_timeout_seconds
        )
        resolver = VersionResolver(
            self.runner,
            cfg.repo_path,
            tag_prefix=cfg.tag_prefix,
            strict=cfg.strict_version,
            timeout=cfg.network_timeout_seconds,
        )
        return revision, resolver.resolve(revision)

    def _version_stage(self) -> tuple[Revision, str]:
        return self.execute_stage(
            "version",
            self.resolve_version,
            {"repo": str(self.config.repo_path), "tag_prefix": self.config.tag_prefix},
            lambda rv: {"revision": rv[0].commit_id, "version": rv[1]},
        )

    # ------------------------------------------------------------------
    # Build pipeline
    # ------------------------------------------------------------------

    def build(self) -> BuildReport:
        """Run the full build pipeline; return the signed artifacts."""
        cfg = self.config
        self._start(BUILD_STAGE_DEFINITIONS)

        def preflight() -> dict[str, str]:
            tools = check_tools(self.runner, BUILD_TOOLS)
            check_key_pair(cfg.private_key_path, cfg.public_key_path)
            return tools

        self.execute_stage("preflight", preflight, {"tools": list(BUILD_TOOLS)}, dict)
        revision, version = self._version_stage()
        facts = EnvironmentFacts(
            commit_time=revision.commit_time, revision=revision.short_id, version=version
        )
        logger.info("building %s %s at %s", cfg.product_name, version, revision.short_id)

        with tempfile.TemporaryDirectory(prefix=f"{cfg.product_name}-build-") as tmp:
            snapshotter = SourceSnapshotter(
                self.runner, cfg.repo_path, timeout=cfg.command_timeout_seconds
            )

            def snapshot() -> tuple[Revision, Path, list[str]]:
                snap_revision, path = snapshotter.create(revision, Path(tmp), cfg.product_name)
                return snap_revision, path, snapshotter.doc_pages(revision)

            revision, snapshot_path, doc_pages = self.execute_stage(
                "snapshot",
                snapshot,
                {"revision": revision.commit_id},
                lambda r: {"content_hash": r[0].content_hash, "docs": r[2]},
            )

            containers = ContainerBuildOrchestrator(self.runner, cfg)
            outputs = self.execute_stage(
                "container_build",
                lambda: containers.build(snapshot_path, facts, doc_pages),
                {**facts.model_dump(), "content_hash": revision.content_hash},
                lambda out: {t: [p.name for p in o.files] for t, o in out.items()},
            )

        archives = self.execute_stage(
            "package",
            lambda: self.package_all(outputs, version, revision.commit_time),
            {"version": version, "targets": cfg.targets},
            lambda arcs: {a.target: a.sha256 for a in arcs},
        )

        def integrity() -> tuple[list[SignedArtifact], Path]:
            sealed = [self.integrity.seal(archive) for archive in archives]
            manifest = build_manifest(cfg.product_name, version, revision, sealed)
            return sealed, write_manifest(manifest, cfg.artifacts_dir / cfg.manifest_name)

        sealed, manifest_path = self.execute_stage(
            "integrity",
            integrity,
            {a.target: a.sha256 for a in archives},
            lambda r: {s.archive.filename: s.signature.key_fingerprint for s in r[0]},
        )

        return BuildReport(
            version=version,
            revision=revision.commit_id,
            commit_time=revision.commit_time,
            artifacts=sealed,
            manifest_path=manifest_path,
        )

    def package_all(
        self, outputs: dict[str, BuildOutput], version: str, mtime: int
    ) -> list[Archive]:
        """Package every target concurrently; all must succeed."""
        cfg = self.config
        packager = ArtifactPackager(cfg.artifacts_dir, compression_level=cfg.compression_level)
        workers = min(cfg.max_workers, len(cfg.targets))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="package") as pool:
            futures: list[Future[Archive]] = [
                pool.submit(
                    packager.package,
                    outputs[target],
                    archive_name=cfg.archive_name(version, target),
                    version=version,
                    mtime=mtime,
                )
                for target in cfg.targets
            ]
        return [future.result() for future in futures]

    # ------------------------------------------------------------------
    # Upload pipeline
    # ------------------------------------------------------------------

    def verify_local_release(self, version: str) -> ReleaseManifest:
        """Re-check every local artifact for *version* before any transfer."""
        cfg = self.config
        manifest = load_manifest(cfg.artifacts_dir / cfg.manifest_name)
        if manifest.version != version:
            raise PublishError(
                f"local artifacts are for {manifest.version}, but the revision resolves "
                f"to {version}; rebuild first"
            )
        public_key = self.integrity.public_key()
        for target in cfg.targets:
            try:
                entry = manifest.entry_for(target)
            except KeyError:
                raise PublishError(f"no artifact for {target} in {cfg.manifest_name}") from None
            archive_path = cfg.artifacts_dir / entry.archive
            digest = self.integrity.verify_checksum(archive_path)
            if digest != entry.sha256:
                raise PublishError(f"{entry.archive} does not match the manifest digest")
            self.integrity.verify_signature(archive_path, public_key)
        return manifest

    def upload(
        self,
        store: RemoteStore,
        *,
        release_root: str | None = None,
        tools: tuple[str, ...] = SSH_UPLOAD_TOOLS,
    ) -> PublishedRelease:
        """Publish every configured target for the resolved version."""
        cfg = self.config
        self._start(UPLOAD_STAGE_DEFINITIONS)

        def preflight() -> dict[str, str]:
            resolved = check_tools(self.runner, tools)
            check_key_pair(cfg.private_key_path, cfg.public_key_path, need_private=False)
            return resolved

        self.execute_stage("preflight", preflight, {"tools": list(tools)}, dict)
        _revision, version = self._version_stage()
        manifest = self.execute_stage(
            "verify",
            lambda: self.verify_local_release(version),
            {"version": version},
            lambda m: {e.archive: e.sha256 for e in m.artifacts},
        )
        publisher = ReleasePublisher(store, cfg, release_root=release_root)
        return self.execute_stage(
            "publish",
            lambda: publisher.publish(manifest, cfg.artifacts_dir),
            {"version": version, "release_root": publisher.release_root},
            lambda r: {"version_dir": r.version_dir, "aliases": r.aliases},
        )
