"""Pipeline composition -- Builder -> Bundler -> Installer.

:func:`run_pipeline` calls the three stages in order, handing each one the
typed value the previous stage returned. The first failure propagates
unchanged; no later stage runs and nothing is retried.

:func:`describe_plan` computes the same steps without executing any of
them. It backs ``--dry-run``.
"""

from __future__ import annotations

import logging
from typing import Callable, NamedTuple, Optional

from plugship.builder import artifact_path, build, build_command
from plugship.bundler import bundle, bundle_root, get_layout
from plugship.installer import install
from plugship.models import (
    Artifact,
    BundleSpec,
    PipelineConfig,
    PipelineResult,
)

logger = logging.getLogger(__name__)

StageCallback = Callable[[str], None]


class PlanStep(NamedTuple):
    """One stage of a planned run."""

    stage: str
    action: str
    result: str


def describe_plan(config: PipelineConfig) -> list[PlanStep]:
    """Return the steps :func:`run_pipeline` would take for *config*."""
    artifact = artifact_path(config.build, config.toolchain)
    spec = BundleSpec(
        source_artifact=Artifact(path=artifact), product_name=config.product_name
    )
    root = bundle_root(spec, config.bundle)
    layout = get_layout(config.bundle.format)

    steps = [
        PlanStep(
            "build",
            " ".join(build_command(config.build, config.toolchain)),
            str(artifact),
        ),
        PlanStep(
            "bundle",
            f"{config.bundle.format.value} bundle of {artifact.name}",
            str(root / layout.binary_relpath(config.product_name)),
        ),
    ]
    if config.install is not None:
        steps.append(
            PlanStep(
                "install",
                f"copy {root.name} into {config.install.destination_root}",
                str(config.install.destination_root / root.name),
            )
        )
    return steps


def run_pipeline(
    config: PipelineConfig,
    on_stage: Optional[StageCallback] = None,
) -> PipelineResult:
    """Build, bundle and (unless disabled) install the plugin in *config*.

    Args:
        config: The resolved run configuration.
        on_stage: Optional callback invoked with the stage name before each
            stage starts. The CLI uses it for progress output.

    Returns:
        A :class:`~plugship.models.PipelineResult` with every stage's output.

    Raises:
        BuildFailed: The build stage failed.
        MissingArtifact: The artifact vanished before bundling.
        BundleWriteFailed: The bundle could not be written.
        InstallFailed: The bundle could not be installed.
    """
    notify = on_stage or (lambda stage: None)

    notify("build")
    artifact = build(config.build, config.toolchain)

    notify("bundle")
    spec = BundleSpec(source_artifact=artifact, product_name=config.product_name)
    result_bundle = bundle(spec, config.bundle)

    installed = None
    if config.install is not None:
        notify("install")
        installed = install(result_bundle, config.install)
    else:
        logger.debug("Install stage skipped")

    return PipelineResult(
        artifact=artifact, bundle=result_bundle, installed_path=installed
    )
