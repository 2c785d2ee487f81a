"""Shared test fixtures for Releaseforge."""

from __future__ import annotations

import os
import shutil
import subprocess
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import nacl.signing
import pytest

from releaseforge.bridge.crypto_bridge import SigningIdentity
from releaseforge.core.process import CommandFailed, CommandResult, SubprocessRunner
from releaseforge.models.config import PipelineConfig

TARGETS = ["t1", "t2"]
BINARIES = ["rad", "radicle-node"]

# A fixed seed keeps signatures stable across test runs.
TEST_SEED = bytes(range(32))

PODMAN = ("podman", "--cgroup-manager=cgroupfs")


# ---------------------------------------------------------------------------
# Fake command runner
# ---------------------------------------------------------------------------


@dataclass
class FakeCall:
    argv: tuple[str, ...]
    input: bytes | None
    env: dict[str, str] | None
    cwd: Path | None


Handler = Callable[[FakeCall], bytes | str | None]


class FakeRunner:
    """In-memory ``CommandRunner``.

    Commands are matched by argv prefix against registered handlers, most
    recent first. Unmatched ``git`` commands go to *delegate* when given;
    anything else succeeds with empty output.
    """

    def __init__(
        self,
        *,
        tools: Sequence[str] = ("git", "podman", "ssh", "scp"),
        delegate: SubprocessRunner | None = None,
    ) -> None:
        self.tools = set(tools)
        self.calls: list[FakeCall] = []
        self._handlers: list[tuple[tuple[str, ...], Handler]] = []
        self.delegate = delegate

    def on(self, *prefix: str, stdout: bytes | str = b"", handler: Handler | None = None) -> None:
        self._handlers.append((tuple(prefix), handler or (lambda call: stdout)))

    def fail(self, *prefix: str, returncode: int = 1, stderr: str = "boom") -> None:
        def _raise(call: FakeCall) -> None:
            raise CommandFailed(call.argv, returncode, stderr)

        self._handlers.append((tuple(prefix), _raise))

    def run(
        self,
        argv: Sequence[str],
        *,
        input: bytes | None = None,
        env: Mapping[str, str] | None = None,
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        call = FakeCall(tuple(argv), input, dict(env) if env else None, cwd)
        self.calls.append(call)
        for prefix, handler in reversed(self._handlers):
            if call.argv[: len(prefix)] == prefix:
                out = handler(call)
                if isinstance(out, str):
                    out = out.encode("utf-8")
                return CommandResult(call.argv, 0, out or b"", b"")
        if self.delegate is not None and call.argv[0] == "git":
            return self.delegate.run(argv, input=input, env=env, cwd=cwd, timeout=timeout)
        return CommandResult(call.argv, 0, b"", b"")

    def which(self, tool: str) -> str | None:
        return f"/usr/bin/{tool}" if tool in self.tools else None

    def commands(self, *prefix: str) -> list[tuple[str, ...]]:
        """argv of every recorded call starting with *prefix*."""
        return [c.argv for c in self.calls if c.argv[: len(prefix)] == prefix]


# ---------------------------------------------------------------------------
# Fake build image
# ---------------------------------------------------------------------------


def man_page(name: str, date: str = "2026-01-01") -> bytes:
    """A rendered man page with the generator's volatile comment header."""
    return (
        "'\\\" t\n"
        f'.\\"     Title: {name}\n'
        '.\\"    Author: [see the "AUTHOR(S)" section]\n'
        '.\\" Generator: Asciidoctor 2.0.20\n'
        f'.\\"      Date: {date}\n'
        f'.TH "{name.upper()}" "1" "" "" ""\n'
        ".SH NAME\n"
        f"{name} \\- radicle command\n"
    ).encode("utf-8")


def image_files(
    targets: Sequence[str] = TARGETS,
    binaries: Sequence[str] = BINARIES,
    pages: Sequence[str] = ("rad.1",),
    *,
    date: str = "2026-01-01",
) -> dict[str, bytes]:
    files = {
        f"/bin/{target}/{name}": f"\x7fELF {target} {name}\n".encode("utf-8")
        for target in targets
        for name in binaries
    }
    for page in pages:
        files[f"/src/{page}"] = man_page(page.split(".")[0], date)
    return files


class FakeImage:
    """Simulates ``podman build/create/cp/rm/rmi`` against a file table."""

    def __init__(self, files: dict[str, bytes]) -> None:
        self.files = files
        self.build_input: bytes | None = None
        self.build_env: dict[str, str] | None = None

    def install(self, runner: FakeRunner) -> FakeImage:
        runner.on(*PODMAN, "build", handler=self._build)
        runner.on(*PODMAN, "cp", handler=self._cp)
        return self

    def _build(self, call: FakeCall) -> None:
        self.build_input = call.input
        self.build_env = call.env
        return None

    def _cp(self, call: FakeCall) -> None:
        source = call.argv[-2].split(":", 1)[1]
        dest = Path(call.argv[-1])
        if source not in self.files:
            raise CommandFailed(call.argv, 125, f"no such file or directory: {source}")
        dest.write_bytes(self.files[source])
        if source.startswith("/bin/"):
            dest.chmod(0o755)
        else:
            dest.chmod(0o644)
        return None


# ---------------------------------------------------------------------------
# Keys and configuration
# ---------------------------------------------------------------------------


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def signing_identity() -> SigningIdentity:
    """Deterministic ed25519 identity."""
    return SigningIdentity.from_signing_key(
        nacl.signing.SigningKey(TEST_SEED), comment="release@test"
    )


@pytest.fixture
def key_pair(tmp_dir: Path, signing_identity: SigningIdentity) -> tuple[Path, Path]:
    """Write the identity as ``keys/radicle`` and ``keys/radicle.pub``."""
    key_dir = tmp_dir / "keys"
    key_dir.mkdir()
    private = key_dir / "radicle"
    public = key_dir / "radicle.pub"
    private.write_text(signing_identity.to_openssh(check=0x1234ABCD), encoding="utf-8")
    private.chmod(0o600)
    public.write_text(signing_identity.public.to_openssh(), encoding="utf-8")
    return private, public


@pytest.fixture
def make_config(tmp_dir: Path, key_pair: tuple[Path, Path]) -> Callable[..., PipelineConfig]:
    """Factory fixture: a PipelineConfig rooted in the temp directory."""

    def _factory(**overrides: Any) -> PipelineConfig:
        defaults: dict[str, Any] = {
            "targets": list(TARGETS),
            "binaries": list(BINARIES),
            "repo_path": tmp_dir / "repo",
            "artifacts_dir": tmp_dir / "artifacts",
            "private_key_path": key_pair[0],
            "public_key_path": key_pair[1],
            "release_root": str(tmp_dir / "releases"),
            "max_workers": 2,
        }
        defaults.update(overrides)
        return PipelineConfig(**defaults)

    return _factory


@pytest.fixture
def config(make_config: Callable[..., PipelineConfig]) -> PipelineConfig:
    return make_config()


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


# ---------------------------------------------------------------------------
# Real git repositories
# ---------------------------------------------------------------------------

COMMIT_TIME = 1_700_000_000


def git(repo: Path, *args: str, when: int = COMMIT_TIME) -> str:
    env = {
        **os.environ,
        "GIT_AUTHOR_NAME": "Release Tester",
        "GIT_AUTHOR_EMAIL": "release@test",
        "GIT_COMMITTER_NAME": "Release Tester",
        "GIT_COMMITTER_EMAIL": "release@test",
        "GIT_AUTHOR_DATE": f"@{when} +0000",
        "GIT_COMMITTER_DATE": f"@{when} +0000",
        "GIT_CONFIG_GLOBAL": os.devnull,
        "GIT_CONFIG_NOSYSTEM": "1",
    }
    proc = subprocess.run(
        ["git", *args], cwd=repo, env=env, capture_output=True, text=True, check=True
    )
    return proc.stdout.strip()


@pytest.fixture
def git_repo(tmp_dir: Path) -> Path:
    """A small repository with a container file and one man page source."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    repo = tmp_dir / "repo"
    (repo / "build").mkdir(parents=True)
    (repo / "build" / "Dockerfile").write_text("FROM scratch\n", encoding="utf-8")
    (repo / "rad.1.adoc").write_text("= rad(1)\n", encoding="utf-8")
    (repo / "README.md").write_text("radicle\n", encoding="utf-8")
    git(repo, "init", "-q", "-b", "main")
    git(repo, "add", ".")
    git(repo, "commit", "-q", "-m", "initial")
    return repo


# ---------------------------------------------------------------------------
# Factory fixtures over the helpers above
# ---------------------------------------------------------------------------


@pytest.fixture
def make_image() -> Callable[..., FakeImage]:
    """Factory fixture: a FakeImage holding every target's files."""

    def _factory(**kwargs: Any) -> FakeImage:
        return FakeImage(image_files(**kwargs))

    return _factory


@pytest.fixture
def render_man_page() -> Callable[..., bytes]:
    return man_page


@pytest.fixture
def run_git() -> Callable[..., str]:
    return git


@pytest.fixture
def build_runner(fake_runner: FakeRunner, make_image: Callable[..., FakeImage]) -> FakeRunner:
    """Fake runner with a working build image and real git underneath."""
    fake_runner.delegate = SubprocessRunner()
    make_image().install(fake_runner)
    return fake_runner
