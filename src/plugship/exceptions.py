"""Exception hierarchy for plugship.

All exceptions inherit from :class:`PlugshipError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`plugship.exit_codes`
and a ``stage`` name used in the one-line diagnostic. The command in
:mod:`plugship.app` catches ``PlugshipError``, prints ``<stage>: <message>``
to stderr and exits with the error's code, while unexpected exceptions
produce a crash log and exit with :data:`EXIT_BUILD_FAILURE`.

Subclass hierarchy::

    PlugshipError (exit 1)
    +-- BuildFailed        (exit 1)
    +-- MissingArtifact    (exit 2)
    +-- BundleWriteFailed  (exit 2)
    +-- InstallFailed      (exit 3)
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from plugship.exit_codes import (
    EXIT_BUILD_FAILURE,
    EXIT_BUNDLE_FAILURE,
    EXIT_INSTALL_FAILURE,
)


class PlugshipError(Exception):
    """Base exception for all plugship errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`plugship.exit_codes` and a ``stage`` naming the
    pipeline stage that raised it.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_BUILD_FAILURE
    stage: str = "plugship"

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code

    def diagnostic(self) -> str:
        """Return the one-line ``<stage>: <message>`` diagnostic."""
        return f"{self.stage}: {self}"


class BuildFailed(PlugshipError):
    """Raised when the toolchain exits non-zero or leaves no artifact behind.

    Args:
        profile: Build profile passed to the toolchain.
        target: Package the toolchain was asked to build.
        returncode: The toolchain's exit status (127 when it could not be
            started at all).
        reason: Optional override for the default message.
    """

    exit_code = EXIT_BUILD_FAILURE
    stage = "build"

    def __init__(
        self,
        profile: str,
        target: str,
        returncode: int,
        reason: Optional[str] = None,
    ):
        self.profile = profile
        self.target = target
        self.returncode = returncode
        message = reason or (
            f"building '{target}' with profile '{profile}' failed "
            f"(exit code {returncode})"
        )
        super().__init__(message)


class MissingArtifact(PlugshipError):
    """Raised when the artifact to bundle is absent or not a regular file."""

    exit_code = EXIT_BUNDLE_FAILURE
    stage = "bundle"

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"artifact not found: {path}")


class _FilesystemError(PlugshipError):
    """Shared shape for errors wrapping an :class:`OSError` on a path."""

    def __init__(self, action: str, path: Path, cause: OSError):
        self.path = path
        self.errno = cause.errno
        detail = cause.strerror or str(cause)
        if cause.errno is not None:
            detail = f"{detail} (errno {cause.errno})"
        super().__init__(f"{action} {path}: {detail}")


class BundleWriteFailed(_FilesystemError):
    """Raised when bundle directories or files cannot be written."""

    exit_code = EXIT_BUNDLE_FAILURE
    stage = "bundle"


class InstallFailed(_FilesystemError):
    """Raised when the bundle cannot be copied into the install root.

    Named after the stage rather than the cause: permission errors, full
    disks and interrupted copies all surface as this type.
    """

    exit_code = EXIT_INSTALL_FAILURE
    stage = "install"
