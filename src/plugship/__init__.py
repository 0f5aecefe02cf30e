"""plugship -- build, bundle and install native audio plugins.

This package runs the compile, bundle and install steps of a plugin release as
one command with typed stages. A run compiles a plugin crate with the
toolchain, wraps the resulting shared library in a platform plugin bundle,
and copies that bundle into the user's plugin directory.

Typical workflow::

    plugship --target demo-plugin --product-name Demo --profile release-debug

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared by every stage.
    config: Platform defaults and configuration resolution.
    builder: Toolchain invocation producing the build artifact.
    bundler: Platform bundle layouts and bundle assembly.
    installer: Copying a bundle into the plugin directory.
    pipeline: Composition of the three stages.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes, one per stage.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
