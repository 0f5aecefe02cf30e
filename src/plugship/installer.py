"""Installer stage -- copy a bundle into the plugin directory.

Installation has overwrite semantics: an existing bundle with the same name
under the destination root is removed before the new one is copied in, so
running :func:`install` twice leaves the same tree as running it once. The
source bundle is only ever read.

No rollback is attempted when a copy fails halfway; re-running the install
repairs the destination.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from plugship.exceptions import InstallFailed
from plugship.models import Bundle, InstallTarget

logger = logging.getLogger(__name__)


def installed_path(bundle: Bundle, target: InstallTarget) -> Path:
    """Return where *bundle* ends up under *target*."""
    return target.destination_root / bundle.root_path.name


def install(bundle: Bundle, target: InstallTarget) -> Path:
    """Copy *bundle* into ``target.destination_root``, replacing any prior copy.

    Args:
        bundle: The bundle produced by :func:`~plugship.bundler.bundle`.
        target: The install root.

    Returns:
        Path of the installed bundle.

    Raises:
        InstallFailed: If the destination cannot be created or written, the
            copy is interrupted, or the destination is the bundle itself.
    """
    dest = installed_path(bundle, target)
    source = bundle.root_path

    if dest.resolve() == source.resolve():
        raise InstallFailed(
            "refusing to install bundle onto itself at",
            dest,
            OSError(None, "destination is the source bundle"),
        )

    try:
        target.destination_root.mkdir(parents=True, exist_ok=True)
        if dest.is_dir() and not dest.is_symlink():
            logger.debug("Removing previous install at %s", dest)
            shutil.rmtree(dest)
        elif dest.exists() or dest.is_symlink():
            dest.unlink()
        shutil.copytree(source, dest, symlinks=True)
    except OSError as exc:
        raise InstallFailed("cannot install bundle to", dest, exc) from exc

    logger.debug("Installed %s -> %s", source, dest)
    return dest
