"""Container build orchestration — isolated, per-version build environments.

The build image is tagged uniquely per version, a container is
instantiated from it, and each target's binaries and man pages are copied
out into a target-private directory. Image and container are scoped
resources: ``ContainerSession`` removes both on every exit path.

Environment facts (commit time, revision, version) are the only values
injected into the image build; nothing else about the host reaches it.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path

from releaseforge.core.process import CommandFailed, CommandRunner
from releaseforge.errors import ContainerBuildFailed, ExtractionFailed
from releaseforge.models.artifacts import BuildOutput
from releaseforge.models.config import PipelineConfig
from releaseforge.models.versioning import EnvironmentFacts

logger = logging.getLogger(__name__)

_PODMAN = ("podman", "--cgroup-manager=cgroupfs")


class ContainerSession:
    """A built image plus one container created from it.

    Use :meth:`ContainerBuildOrchestrator.session` rather than
    constructing this directly.
    """

    def __init__(
        self,
        runner: CommandRunner,
        image_tag: str,
        container_name: str,
        *,
        timeout: float | None = None,
    ) -> None:
        self._runner = runner
        self.image_tag = image_tag
        self.container_name = container_name
        self._timeout = timeout

    def copy_out(self, source: str, dest: Path) -> Path:
        """Copy *source* from the container to *dest*; return *dest*."""
        try:
            self._runner.run(
                [*_PODMAN, "cp", f"{self.container_name}:{source}", str(dest)],
                timeout=self._timeout,
            )
        except CommandFailed as exc:
            raise ExtractionFailed(f"cannot copy {source} out of the build: {exc}") from exc
        if not dest.is_file():
            raise ExtractionFailed(f"{source} is missing from the build output")
        return dest

    def teardown(self) -> list[str]:
        """Remove the container and the image. Returns errors, if any."""
        errors: list[str] = []
        for argv in (
            [*_PODMAN, "rm", "--ignore", self.container_name],
            [*_PODMAN, "rmi", "--ignore", self.image_tag],
        ):
            try:
                self._runner.run(argv, timeout=self._timeout)
            except CommandFailed as exc:
                errors.append(str(exc))
        return errors


class ContainerBuildOrchestrator:
    """Builds the per-version image and extracts output for every target.

    Parameters
    ----------
    runner:
        Command runner used to invoke ``podman``.
    config:
        The run's pipeline configuration.
    """

    def __init__(self, runner: CommandRunner, config: PipelineConfig) -> None:
        self._runner = runner
        self._config = config

    def image_tag(self, version: str) -> str:
        return f"{self._config.image_name}-{version}"

    def container_name(self, version: str) -> str:
        return f"{self._config.container_name}-{version}"

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    @contextmanager
    def session(self, snapshot: Path, facts: EnvironmentFacts) -> Iterator[ContainerSession]:
        """Build the image from *snapshot*, create a container, tear both down.

        Teardown runs even if the build itself fails part way. A teardown
        failure after an otherwise successful body is fatal; during an
        error it is logged and the original error propagates.
        """
        cfg = self._config
        sess = ContainerSession(
            self._runner,
            self.image_tag(facts.version),
            self.container_name(facts.version),
            timeout=cfg.command_timeout_seconds,
        )
        body_failed = False
        try:
            self._build_image(sess, snapshot, facts)
            self._create_container(sess)
            yield sess
        except BaseException:
            body_failed = True
            raise
        finally:
            errors = sess.teardown()
            for err in errors:
                logger.error("container teardown failed: %s", err)
            if errors and not body_failed:
                raise ContainerBuildFailed(
                    f"could not remove build environment {sess.image_tag}: {errors[0]}"
                )
            if not errors:
                logger.info("removed container %s and image %s", sess.container_name, sess.image_tag)

    def _build_image(self, sess: ContainerSession, snapshot: Path, facts: EnvironmentFacts) -> None:
        cfg = self._config
        dockerfile = cfg.repo_path / cfg.dockerfile
        if not dockerfile.is_file():
            raise ContainerBuildFailed(f"no container file at {dockerfile}")

        argv = [*_PODMAN, "build"]
        for key, value in facts.container_env().items():
            argv += ["--env", f"{key}={value}"]
        argv += ["--arch", cfg.build_arch, "--tag", sess.image_tag, "-f", str(cfg.dockerfile), "-"]

        logger.info("building image %s", sess.image_tag)
        try:
            self._runner.run(
                argv,
                input=snapshot.read_bytes(),
                env=facts.process_env(),
                cwd=cfg.repo_path,
                timeout=cfg.command_timeout_seconds,
            )
        except CommandFailed as exc:
            raise ContainerBuildFailed(f"image build failed: {exc}") from exc

    def _create_container(self, sess: ContainerSession) -> None:
        logger.info("creating container %s", sess.container_name)
        try:
            self._runner.run(
                [*_PODMAN, "create", "--replace", "--name", sess.container_name, sess.image_tag],
                timeout=self._config.command_timeout_seconds,
            )
        except CommandFailed as exc:
            raise ContainerBuildFailed(f"container creation failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def build(
        self,
        snapshot: Path,
        facts: EnvironmentFacts,
        doc_pages: list[str],
    ) -> dict[str, BuildOutput]:
        """Build once, extract every configured target, tear down.

        Returns outputs keyed by target, in configured target order. If
        any target fails, the whole build fails.
        """
        with self.session(snapshot, facts) as sess:
            return self.extract_all(sess, doc_pages)

    def extract_all(self, sess: ContainerSession, doc_pages: list[str]) -> dict[str, BuildOutput]:
        targets = self._config.targets
        workers = min(self._config.max_workers, len(targets))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="extract") as pool:
            futures: dict[str, Future[BuildOutput]] = {
                target: pool.submit(self.extract_target, sess, target, doc_pages)
                for target in targets
            }
        # The pool has drained: no extraction is still writing when we raise.
        return {target: futures[target].result() for target in targets}

    def extract_target(
        self, sess: ContainerSession, target: str, doc_pages: list[str]
    ) -> BuildOutput:
        """Copy one target's binaries and man pages into its own directory."""
        outdir = self._config.output_dir(target)
        if outdir.exists():
            shutil.rmtree(outdir)
        outdir.mkdir(parents=True)

        logger.info("copying artifacts for %s", target)
        binaries = [
            sess.copy_out(f"/bin/{target}/{name}", outdir / name)
            for name in self._config.binaries
        ]
        docs = [sess.copy_out(f"/src/{page}", outdir / page) for page in doc_pages]
        return BuildOutput(target=target, directory=outdir, binaries=binaries, docs=docs)
