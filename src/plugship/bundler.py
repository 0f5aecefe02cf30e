"""Bundler stage -- wrap the built library in a platform plugin bundle.

Every supported :class:`~plugship.models.BundleFormat` is described by a
:class:`BundleLayout`: the bundle directory's extension, where the binary
lives inside it, and which metadata files accompany it. :func:`bundle`
assembles the layout in a staging directory next to the final location and
swaps it in, so a failure never leaves a half-written bundle behind::

    Demo.bundle/                 Demo.vst/
        Contents/                    Contents/
            Info.plist                   Info.plist
            Demo                         PkgInfo
                                         MacOS/
                                             Demo

The metadata is written deterministically (sorted plist keys, no
timestamps), so bundling the same artifact twice yields identical trees.
"""

from __future__ import annotations

import logging
import os
import plistlib
import shutil
import stat
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from plugship.exceptions import BundleWriteFailed, MissingArtifact
from plugship.models import Bundle, BundleFormat, BundleOptions, BundleSpec

logger = logging.getLogger(__name__)

PACKAGE_TYPE = "BNDL"
SIGNATURE = "????"


@dataclass(frozen=True)
class BundleLayout:
    """Directory conventions for one bundle format.

    Attributes:
        extension: Suffix of the bundle directory, including the dot.
        binary_dir: Directory holding the binary, relative to the bundle root.
        plist_dir: Directory holding ``Info.plist``, relative to the root.
        write_pkginfo: Whether a ``PkgInfo`` file accompanies the plist.
    """

    extension: str
    binary_dir: tuple[str, ...]
    plist_dir: tuple[str, ...] = ("Contents",)
    write_pkginfo: bool = True

    def root_name(self, product_name: str) -> str:
        return f"{product_name}{self.extension}"

    def binary_relpath(self, product_name: str) -> Path:
        """Path of the binary relative to the bundle root."""
        return Path(*self.binary_dir, product_name)


LAYOUTS: dict[BundleFormat, BundleLayout] = {
    BundleFormat.BUNDLE: BundleLayout(
        extension=".bundle", binary_dir=("Contents",), write_pkginfo=False
    ),
    BundleFormat.VST: BundleLayout(extension=".vst", binary_dir=("Contents", "MacOS")),
    BundleFormat.VST3: BundleLayout(extension=".vst3", binary_dir=("Contents", "MacOS")),
    BundleFormat.CLAP: BundleLayout(extension=".clap", binary_dir=("Contents", "MacOS")),
}


def get_layout(fmt: BundleFormat) -> BundleLayout:
    """Return the :class:`BundleLayout` for *fmt*."""
    return LAYOUTS[fmt]


def bundle_root(spec: BundleSpec, options: BundleOptions) -> Path:
    """Return where :func:`bundle` will place the bundle for *spec*."""
    return options.output_dir / get_layout(options.format).root_name(spec.product_name)


def default_identifier(product_name: str, fmt: BundleFormat) -> str:
    """Return the fallback ``CFBundleIdentifier``, e.g. ``com.octasine.vst``."""
    stem = "".join(c for c in product_name.lower() if c.isalnum() or c in "-.")
    return f"com.{stem or 'plugin'}.{fmt.value}"


def info_plist(product_name: str, options: BundleOptions) -> dict[str, Any]:
    """Return the ``Info.plist`` contents for a bundle named *product_name*."""
    return {
        "CFBundleDevelopmentRegion": "English",
        "CFBundleExecutable": product_name,
        "CFBundleGetInfoString": options.format.value,
        "CFBundleIdentifier": options.identifier
        or default_identifier(product_name, options.format),
        "CFBundleInfoDictionaryVersion": "6.0",
        "CFBundleName": product_name,
        "CFBundlePackageType": PACKAGE_TYPE,
        "CFBundleShortVersionString": options.version,
        "CFBundleSignature": SIGNATURE,
        "CFBundleVersion": options.version,
        "CSResourcesFileMapped": True,
    }


def _write_tree(
    staging: Path, spec: BundleSpec, options: BundleOptions, layout: BundleLayout
) -> None:
    """Write the full bundle layout for *spec* under *staging*."""
    name = spec.product_name

    plist_dir = staging.joinpath(*layout.plist_dir)
    plist_dir.mkdir(parents=True, exist_ok=True)
    with open(plist_dir / "Info.plist", "wb") as f:
        plistlib.dump(info_plist(name, options), f, sort_keys=True)
    if layout.write_pkginfo:
        (plist_dir / "PkgInfo").write_text(f"{PACKAGE_TYPE}{SIGNATURE}", encoding="ascii")

    binary = staging / layout.binary_relpath(name)
    binary.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(spec.source_artifact.path, binary)
    mode = binary.stat().st_mode
    binary.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def bundle(spec: BundleSpec, options: Optional[BundleOptions] = None) -> Bundle:
    """Package the artifact in *spec* into a platform bundle.

    An existing bundle of the same name in ``options.output_dir`` is
    replaced.

    Args:
        spec: The artifact to package and the product name to use.
        options: Layout and metadata choices. Defaults to a generic
            ``.bundle`` under ``target/bundles``.

    Returns:
        The :class:`~plugship.models.Bundle` describing the new tree.

    Raises:
        MissingArtifact: If the source artifact is absent or not a regular
            file. Nothing is written in that case.
        BundleWriteFailed: If creating directories or copying files fails.
    """
    options = options or BundleOptions()
    source = spec.source_artifact.path
    if not source.is_file():
        raise MissingArtifact(source)

    layout = get_layout(options.format)
    root = bundle_root(spec, options)

    try:
        options.output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise BundleWriteFailed(
            "cannot create bundle directory", options.output_dir, exc
        ) from exc

    staging: Optional[Path] = None
    try:
        staging = Path(
            tempfile.mkdtemp(prefix=f".{root.name}.", suffix=".tmp", dir=options.output_dir)
        )
        logger.debug("Assembling %s in %s", root.name, staging)
        _write_tree(staging, spec, options, layout)
        # mkdtemp creates 0700 directories; bundles need the usual 0755.
        staging.chmod(0o755)
        if root.is_dir() and not root.is_symlink():
            shutil.rmtree(root)
        elif root.exists() or root.is_symlink():
            root.unlink()
        os.replace(staging, root)
        staging = None
    except OSError as exc:
        raise BundleWriteFailed("cannot write bundle", root, exc) from exc
    finally:
        if staging is not None:
            shutil.rmtree(staging, ignore_errors=True)

    logger.debug("Bundled %s", root)
    return Bundle(root_path=root, binary_path=root / layout.binary_relpath(spec.product_name))
