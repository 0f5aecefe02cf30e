"""Shared test fixtures for plugship.

Provides reusable fixtures for fake toolchain runs, isolated data
directories, output state, and CLI invocation. These fixtures are
automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable
from unittest.mock import MagicMock

import pytest

from plugship.builder import artifact_path
from plugship.models import Artifact, BuildSpec, ToolchainConfig
from plugship.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate HOME and XDG_DATA_HOME to a temporary directory.

    Pins the platform to Linux so default install roots and library names
    are predictable, and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: home))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("plugship.config.current_system", lambda: "Linux")
    monkeypatch.setattr("plugship.builder.current_system", lambda: "Linux")
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Stage fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def artifact_file(tmp_path: Path) -> Artifact:
    """A non-empty fake shared library on disk."""
    path = tmp_path / "build" / "libdemo_plugin.so"
    path.parent.mkdir(parents=True)
    path.write_bytes(b"\x7fELF" + b"\x00" * 256)
    return Artifact(path=path)


@pytest.fixture
def fake_toolchain() -> Callable[..., MagicMock]:
    """Return a factory for ``subprocess.run`` side effects.

    The side effect mimics the toolchain: it writes a non-empty library at
    the artifact path for *spec* and returns a result with *returncode*.
    With ``write=False`` the run "succeeds" without producing anything.
    """

    def _factory(
        spec: BuildSpec,
        toolchain: ToolchainConfig,
        returncode: int = 0,
        write: bool = True,
    ) -> MagicMock:
        def _run(cmd, **kwargs):
            if write and returncode == 0:
                path = artifact_path(spec, toolchain)
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(b"\xcf\xfa\xed\xfe" + b"\x00" * 512)
            result = MagicMock()
            result.returncode = returncode
            return result

        return MagicMock(side_effect=_run)

    return _factory


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet PLAIN-format output manager for tests that ignore output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()


def _tree_snapshot(root: Path) -> dict[str, tuple[bytes, int]]:
    """Map every file under *root* to its bytes and permission bits."""
    return {
        str(p.relative_to(root)): (p.read_bytes(), p.stat().st_mode & 0o777)
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


@pytest.fixture
def snapshot() -> Callable[[Path], dict[str, tuple[bytes, int]]]:
    """Return a function that captures a directory tree for comparison."""
    return _tree_snapshot
