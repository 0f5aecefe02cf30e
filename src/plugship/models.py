"""Canonical Pydantic models shared across all plugship modules.

This is the single source of truth for data shapes in the project. The models
fall into two groups:

**Stage values** -- each produced by exactly one stage and frozen afterwards:
    :class:`BuildSpec`, :class:`Artifact`, :class:`BundleSpec`,
    :class:`Bundle`, :class:`InstallTarget`, and :class:`PipelineResult`.

**Configuration models** -- explicit structs for everything a run reads
instead of relying on the working directory and environment:
    :class:`ToolchainConfig`, :class:`BundleFormat`, :class:`BundleOptions`,
    and :class:`PipelineConfig`.

All models use Pydantic v2. Stage values set ``frozen=True`` so that a later
stage cannot mutate what an earlier stage produced.
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field


_FROZEN = ConfigDict(frozen=True)


def _check_product_name(value: str) -> str:
    """Reject product names that would escape the bundle directory."""
    if "/" in value or "\\" in value or value in (".", ".."):
        raise ValueError(f"product name must be a plain file name: {value!r}")
    return value


ProductName = Annotated[str, Field(min_length=1), AfterValidator(_check_product_name)]


# --- Stage values ---


class BuildSpec(BaseModel):
    """What to build: a toolchain profile and a package within the workspace."""

    model_config = _FROZEN

    profile: str = Field(
        default="release", min_length=1, description="Toolchain build profile"
    )
    target: str = Field(min_length=1, description="Package identifier to build")


class Artifact(BaseModel):
    """The raw shared library produced by the builder."""

    model_config = _FROZEN

    path: Path


class BundleSpec(BaseModel):
    """Input to the bundler: an artifact plus the product name to ship it as."""

    model_config = _FROZEN

    source_artifact: Artifact
    product_name: ProductName


class Bundle(BaseModel):
    """A bundle directory on disk and the binary inside it."""

    model_config = _FROZEN

    root_path: Path
    binary_path: Path


class InstallTarget(BaseModel):
    """Where bundles are installed. Set by platform convention or ``--install-root``."""

    model_config = _FROZEN

    destination_root: Path


class PipelineResult(BaseModel):
    """Everything a successful run produced, in stage order."""

    model_config = _FROZEN

    artifact: Artifact
    bundle: Bundle
    installed_path: Optional[Path] = None


# --- Configuration ---


class BundleFormat(str, enum.Enum):
    """Plugin bundle layouts the bundler knows how to write.

    ``BUNDLE`` is a generic loadable bundle with the binary directly under
    ``Contents/``; the others follow the macOS plugin layout with the binary
    under ``Contents/MacOS/``.
    """

    BUNDLE = "bundle"
    VST = "vst"
    VST3 = "vst3"
    CLAP = "clap"


class ToolchainConfig(BaseModel):
    """How to invoke the toolchain and where it writes its output.

    ``workspace`` makes the working directory of the toolchain
    explicit. ``lib_name`` covers packages whose library stem
    differs from the package name (e.g. package ``octasine-vst2-plugin``
    producing ``liboctasine.dylib``).
    """

    model_config = _FROZEN

    command: str = Field(default="cargo", description="Toolchain executable")
    workspace: Path = Field(default=Path("."), description="Toolchain working directory")
    target_dir: Optional[Path] = Field(
        default=None,
        description="Toolchain output tree, relative to the workspace [default: target]",
    )
    lib_name: Optional[str] = Field(
        default=None, description="Library stem [default: target with '-' -> '_']"
    )
    features: tuple[str, ...] = ()
    no_default_features: bool = False
    triple: Optional[str] = Field(
        default=None, description="Cross-compilation target triple"
    )

    def resolved_target_dir(self) -> Path:
        """Return the output tree. Relative ``target_dir`` values are relative to the workspace."""
        return self.workspace / (self.target_dir or "target")


class BundleOptions(BaseModel):
    """Layout and metadata choices for the bundler."""

    model_config = _FROZEN

    format: BundleFormat = BundleFormat.BUNDLE
    output_dir: Path = Field(
        default=Path("target") / "bundles",
        description="Directory the bundle is assembled in",
    )
    identifier: Optional[str] = Field(
        default=None, description="CFBundleIdentifier [default: com.<name>.<format>]"
    )
    version: str = "1.0.0"


class PipelineConfig(BaseModel):
    """Fully resolved configuration for one run.

    Produced by :func:`~plugship.config.resolve_config`. ``install`` is
    ``None`` when the install stage is skipped.
    """

    model_config = _FROZEN

    build: BuildSpec
    product_name: ProductName
    toolchain: ToolchainConfig = Field(default_factory=ToolchainConfig)
    bundle: BundleOptions = Field(default_factory=BundleOptions)
    install: Optional[InstallTarget] = None
