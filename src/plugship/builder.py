"""Builder stage -- compile the plugin with the toolchain.

:func:`build` runs ``<toolchain> build --profile <profile> -p <target>``
in the configured workspace and returns the :class:`~plugship.models.Artifact`
at the toolchain's deterministic output path. The call blocks until the
compiler exits; its output streams straight to the terminal.

A failed build is never retried. Build failures are deterministic (syntax or
configuration errors), so the pipeline stops at the first one.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Optional

from plugship.config import current_system
from plugship.exceptions import BuildFailed
from plugship.models import Artifact, BuildSpec, ToolchainConfig

logger = logging.getLogger(__name__)

EXIT_COMMAND_NOT_FOUND = 127
"""Shell convention for "command not found", reported when the toolchain is missing."""

EXIT_COMMAND_NOT_EXECUTABLE = 126
"""Shell convention for a command that exists but cannot be executed."""


def library_filename(lib_name: str, system: Optional[str] = None) -> str:
    """Return the platform file name of a shared library called *lib_name*.

    Example::

        >>> library_filename("octasine", "Darwin")
        'liboctasine.dylib'
        >>> library_filename("octasine", "Windows")
        'octasine.dll'
    """
    system = system or current_system()
    if system == "Darwin":
        return f"lib{lib_name}.dylib"
    if system == "Windows":
        return f"{lib_name}.dll"
    return f"lib{lib_name}.so"


def profile_dir_name(profile: str) -> str:
    """Return the output directory the toolchain uses for *profile*.

    The ``dev`` profile writes to ``debug/``; every other profile writes
    to a directory of its own name.
    """
    return "debug" if profile == "dev" else profile


def artifact_path(
    spec: BuildSpec,
    toolchain: ToolchainConfig,
    system: Optional[str] = None,
) -> Path:
    """Compose the path the toolchain writes the shared library to.

    Layout: ``<target_dir>/[<triple>/]<profile_dir>/<library file>``.
    """
    out = toolchain.resolved_target_dir()
    if toolchain.triple:
        out = out / toolchain.triple
    lib_name = toolchain.lib_name or spec.target.replace("-", "_")
    return out / profile_dir_name(spec.profile) / library_filename(lib_name, system)


def build_command(spec: BuildSpec, toolchain: ToolchainConfig) -> list[str]:
    """Return the argv used to build *spec*."""
    cmd = [toolchain.command, "build", "--profile", spec.profile, "-p", spec.target]
    if toolchain.features:
        cmd.extend(["--features", ",".join(toolchain.features)])
    if toolchain.no_default_features:
        cmd.append("--no-default-features")
    if toolchain.triple:
        cmd.extend(["--target", toolchain.triple])
    if toolchain.target_dir is not None:
        cmd.extend(["--target-dir", str(toolchain.resolved_target_dir().resolve())])
    return cmd


def build(spec: BuildSpec, toolchain: Optional[ToolchainConfig] = None) -> Artifact:
    """Compile *spec* and return the produced artifact.

    Args:
        spec: Profile and target to build.
        toolchain: Toolchain invocation settings. Defaults to ``cargo`` in
            the current directory.

    Returns:
        The :class:`~plugship.models.Artifact` whose path exists and is
        non-empty.

    Raises:
        BuildFailed: If the toolchain cannot be started, exits non-zero, or
            exits zero without leaving a non-empty artifact behind.
    """
    toolchain = toolchain or ToolchainConfig()
    cmd = build_command(spec, toolchain)
    logger.debug("Running %s in %s", " ".join(cmd), toolchain.workspace)

    try:
        result = subprocess.run(cmd, cwd=toolchain.workspace)
    except OSError as exc:
        # Missing executable and missing workspace both land here; the
        # OSError's filename tells them apart.
        detail = exc.strerror or str(exc)
        if exc.filename:
            detail = f"{detail}: {exc.filename}"
        raise BuildFailed(
            spec.profile,
            spec.target,
            EXIT_COMMAND_NOT_FOUND
            if isinstance(exc, FileNotFoundError)
            else EXIT_COMMAND_NOT_EXECUTABLE,
            reason=(
                f"cannot run toolchain '{toolchain.command}' in "
                f"{toolchain.workspace}: {detail}"
            ),
        ) from exc

    if result.returncode != 0:
        raise BuildFailed(spec.profile, spec.target, result.returncode)

    path = artifact_path(spec, toolchain)
    if not path.is_file() or path.stat().st_size == 0:
        raise BuildFailed(
            spec.profile,
            spec.target,
            result.returncode,
            reason=f"toolchain succeeded but produced no artifact at {path}",
        )

    logger.debug("Built artifact %s", path)
    return Artifact(path=path)
