"""Typer application and CLI entry point for plugship.

The CLI is a single command with no sub-commands: it resolves a
:class:`~plugship.models.PipelineConfig` from its flags, runs the
build -> bundle -> install pipeline, and reports the result. Each stage's
failure maps to its own exit code (see :mod:`plugship.exit_codes`) so
calling scripts can branch on which stage failed.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
Unhandled exceptions are written to a crash log under the data directory.

See Also:
    :mod:`plugship.config`: Platform defaults and configuration resolution.
    :mod:`plugship.output`: Output formatting initialised in :func:`ship`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import click
import typer
from pydantic import ValidationError

from plugship import __version__
from plugship.exit_codes import (
    EXIT_BUILD_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_SUCCESS,
    EXIT_USAGE,
)
from plugship.models import BundleFormat


app = typer.Typer(
    name="plugship",
    help="Build a native plugin, bundle it, and install it into the plugin directory.",
    add_completion=False,
    rich_markup_mode="rich",
)


_STAGE_LABELS = {"build": "Building", "bundle": "Bundling", "install": "Installing"}


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"plugship {__version__}")
        raise typer.Exit()


@app.command()
def ship(
    target: str = typer.Option(
        ..., "--target", "-t", help="Package to build (e.g. demo-plugin)."
    ),
    product_name: str = typer.Option(
        ..., "--product-name", "-n", help="Product name used for the bundle and binary."
    ),
    profile: str = typer.Option(
        "release", "--profile", "-p", help="Toolchain build profile."
    ),
    install_root: Optional[Path] = typer.Option(
        None,
        "--install-root",
        help="Install destination. (default: platform plugin directory)",
    ),
    fmt: BundleFormat = typer.Option(
        BundleFormat.BUNDLE, "--format", "-f", help="Bundle layout to produce."
    ),
    workspace: Optional[Path] = typer.Option(
        None, "--workspace", "-w", help="Toolchain working directory. (default: .)"
    ),
    target_dir: Optional[Path] = typer.Option(
        None, "--target-dir", help="Toolchain output tree. (default: <workspace>/target)"
    ),
    lib_name: Optional[str] = typer.Option(
        None, "--lib-name", help="Library stem when it differs from the target name."
    ),
    features: Optional[list[str]] = typer.Option(
        None, "--features", help="Comma-separated toolchain features. Repeatable."
    ),
    no_default_features: bool = typer.Option(
        False, "--no-default-features", help="Disable the package's default features."
    ),
    triple: Optional[str] = typer.Option(
        None, "--triple", help="Cross-compilation target triple."
    ),
    toolchain: str = typer.Option(
        "cargo", "--toolchain", help="Toolchain executable."
    ),
    bundle_dir: Optional[Path] = typer.Option(
        None, "--bundle-dir", help="Where the bundle is assembled. (default: <target-dir>/bundles)"
    ),
    bundle_id: Optional[str] = typer.Option(
        None, "--bundle-id", help="Bundle identifier. (default: com.<name>.<format>)"
    ),
    bundle_version: str = typer.Option(
        "1.0.0", "--bundle-version", help="Bundle version string."
    ),
    install: bool = typer.Option(
        True, "--install/--no-install", help="Copy the bundle into the install root."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Print the plan without executing it."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Build, bundle and install a native audio plugin.

    Runs the toolchain with the given profile and target, wraps the
    resulting shared library in a platform plugin bundle, and copies the
    bundle into the install root, replacing any previous version.

    Exit codes: 0 success, 1 build failure, 2 bundling failure,
    3 install failure, 64 invalid usage.

    Example::

        plugship -t demo-plugin -n Demo -p release-debug
        plugship -t octasine-vst2-plugin -n OctaSine --lib-name octasine \\
            --format vst --features simd
    """
    from plugship.config import resolve_config
    from plugship.exceptions import PlugshipError
    from plugship.output import (
        OutputFormat,
        OutputManager,
        configure_logging,
        debug,
        error,
        format_result,
        info,
        print_table,
        set_output,
        success,
        suggest,
    )
    from plugship.pipeline import describe_plan, run_pipeline

    out_fmt = OutputFormat.AUTO
    if json_output:
        out_fmt = OutputFormat.JSON
    elif plain_output:
        out_fmt = OutputFormat.PLAIN

    output = OutputManager(
        format=out_fmt, no_color=no_color, quiet=quiet, verbose=verbose
    )
    set_output(output)
    configure_logging(output)

    try:
        config = resolve_config(
            target=target,
            product_name=product_name,
            profile=profile,
            fmt=fmt,
            install_root=install_root,
            install=install,
            workspace=workspace,
            target_dir=target_dir,
            lib_name=lib_name,
            features=features or [],
            no_default_features=no_default_features,
            triple=triple,
            toolchain=toolchain,
            bundle_dir=bundle_dir,
            bundle_id=bundle_id,
            bundle_version=bundle_version,
        )
    except ValidationError as exc:
        messages = "; ".join(
            f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors()
        )
        bad = typer.BadParameter(messages)
        bad.exit_code = EXIT_USAGE
        raise bad from exc

    debug(f"Resolved config: {config.model_dump(mode='json')}")

    if dry_run:
        steps = describe_plan(config)
        print_table(
            ["stage", "action", "result"],
            [list(step) for step in steps],
            title="Plan (dry run)",
        )
        return

    def _on_stage(stage: str) -> None:
        info(f"{_STAGE_LABELS[stage]} {product_name}...")

    try:
        result = run_pipeline(config, on_stage=_on_stage)
    except PlugshipError as exc:
        error(exc.diagnostic())
        raise typer.Exit(code=exc.exit_code)

    format_result(
        {
            "artifact": str(result.artifact.path),
            "bundle": str(result.bundle.root_path),
            "binary": str(result.bundle.binary_path),
            "installed": str(result.installed_path) if result.installed_path else None,
        }
    )
    if result.installed_path is not None:
        success(f"Installed {product_name} to {result.installed_path}")
    else:
        success(f"Bundled {product_name} at {result.bundle.root_path}")
        suggest("Re-run without --no-install to copy it into the plugin directory.")


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from plugship.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    )
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``plugship`` console script.

    The app runs outside Click's standalone mode so that usage errors can
    exit with :data:`~plugship.exit_codes.EXIT_USAGE` instead of Click's
    ``2``, which is the bundling-failure code here. Unhandled
    :class:`~plugship.exceptions.PlugshipError` instances cause a clean exit
    with the error's ``exit_code``. All other exceptions produce a crash log
    and a generic failure exit.

    Raises:
        SystemExit: Always raised.
    """
    _setup_signal_handlers()
    try:
        rv = app(standalone_mode=False)
    except SystemExit:
        raise
    except click.exceptions.UsageError as exc:
        exc.show()
        sys.exit(EXIT_USAGE)
    except click.exceptions.ClickException as exc:
        exc.show()
        sys.exit(exc.exit_code)
    except (click.exceptions.Abort, KeyboardInterrupt):
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        from plugship.exceptions import PlugshipError
        from plugship.output import error

        if isinstance(exc, PlugshipError):
            error(exc.diagnostic())
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_BUILD_FAILURE)

    sys.exit(rv if isinstance(rv, int) else EXIT_SUCCESS)
