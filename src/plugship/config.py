"""Platform defaults and configuration resolution.

plugship persists no configuration of its own. Everything a run needs comes
from CLI flags layered over platform conventions:

* **Platform detection** -- :func:`current_system` wraps
  :func:`platform.system` so tests can pin a platform.
* **Install roots** -- :func:`default_install_root` maps a
  :class:`~plugship.models.BundleFormat` to the conventional per-user plugin
  directory of the running platform.
* **Data directory** -- :func:`get_data_dir` is XDG compliant on Linux/BSD
  and ``~/.plugship/`` elsewhere. It only holds crash logs.
* **Resolution** -- :func:`resolve_config` merges CLI values with the
  defaults into a frozen :class:`~plugship.models.PipelineConfig`.
"""

from __future__ import annotations

import os
import platform
from pathlib import Path
from typing import Iterable, Optional

from plugship.models import (
    BuildSpec,
    BundleFormat,
    BundleOptions,
    InstallTarget,
    PipelineConfig,
    ToolchainConfig,
)

_APP_NAME = "plugship"

DEFAULT_PROFILE = "release"

# Per-user plugin directories on macOS, under ~/Library/Audio/Plug-Ins.
_MACOS_PLUGIN_DIRS: dict[BundleFormat, str] = {
    BundleFormat.BUNDLE: "Bundles",
    BundleFormat.VST: "VST",
    BundleFormat.VST3: "VST3",
    BundleFormat.CLAP: "CLAP",
}


# --- Platform ---


def current_system() -> str:
    """Return the running platform name (``Darwin``, ``Linux``, ``Windows``...)."""
    return platform.system()


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    system = current_system()
    return system == "Linux" or system.endswith("BSD")


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/plugship/`` (default ``~/.local/share/plugship/``).
    On macOS/Windows: ``~/.plugship/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_DATA_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".local" / "share"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


def default_install_root(
    fmt: BundleFormat, system: Optional[str] = None
) -> Path:
    """Return the conventional per-user install root for *fmt*.

    macOS uses ``~/Library/Audio/Plug-Ins/<dir>``; every other platform uses
    a dot directory named after the format (``~/.vst``, ``~/.clap``...).

    Args:
        fmt: The bundle format being installed.
        system: Platform name override; defaults to :func:`current_system`.
    """
    system = system or current_system()
    if system == "Darwin":
        return (
            Path.home() / "Library" / "Audio" / "Plug-Ins" / _MACOS_PLUGIN_DIRS[fmt]
        )
    return Path.home() / f".{fmt.value}"


# --- Resolution ---


def _split_features(features: Iterable[str]) -> tuple[str, ...]:
    """Flatten repeated and comma-separated ``--features`` values, keeping order."""
    seen: list[str] = []
    for value in features:
        for item in value.split(","):
            item = item.strip()
            if item and item not in seen:
                seen.append(item)
    return tuple(seen)


def resolve_config(
    *,
    target: str,
    product_name: str,
    profile: Optional[str] = None,
    fmt: BundleFormat = BundleFormat.BUNDLE,
    install_root: Optional[Path] = None,
    install: bool = True,
    workspace: Optional[Path] = None,
    target_dir: Optional[Path] = None,
    lib_name: Optional[str] = None,
    features: Iterable[str] = (),
    no_default_features: bool = False,
    triple: Optional[str] = None,
    toolchain: Optional[str] = None,
    bundle_dir: Optional[Path] = None,
    bundle_id: Optional[str] = None,
    bundle_version: Optional[str] = None,
    system: Optional[str] = None,
) -> PipelineConfig:
    """Resolve CLI values and platform defaults into a :class:`PipelineConfig`.

    Precedence is simply CLI value over default:

    * ``profile`` -> :data:`DEFAULT_PROFILE`
    * ``target_dir`` -> ``<workspace>/target``
    * ``bundle_dir`` -> ``<target_dir>/bundles`` (the build output tree)
    * ``install_root`` -> :func:`default_install_root` for *fmt*

    Returns:
        The frozen configuration for one pipeline run.

    Raises:
        pydantic.ValidationError: If a value is empty or malformed.
    """
    toolchain_cfg = ToolchainConfig(
        command=toolchain or "cargo",
        workspace=(workspace or Path(".")).resolve(),
        target_dir=target_dir.resolve() if target_dir is not None else None,
        lib_name=lib_name,
        features=_split_features(features),
        no_default_features=no_default_features,
        triple=triple,
    )

    bundle_options = BundleOptions(
        format=fmt,
        output_dir=(
            bundle_dir
            if bundle_dir is not None
            else toolchain_cfg.resolved_target_dir() / "bundles"
        ),
        identifier=bundle_id,
        version=bundle_version or "1.0.0",
    )

    install_target: Optional[InstallTarget] = None
    if install:
        root = install_root or default_install_root(fmt, system)
        install_target = InstallTarget(destination_root=root.expanduser())

    return PipelineConfig(
        build=BuildSpec(profile=profile or DEFAULT_PROFILE, target=target),
        product_name=product_name,
        toolchain=toolchain_cfg,
        bundle=bundle_options,
        install=install_target,
    )
