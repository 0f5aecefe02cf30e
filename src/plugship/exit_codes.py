"""Numeric process exit codes, one per pipeline stage.

Each constant maps to the stage that failed and is referenced by the
corresponding :class:`~plugship.exceptions.PlugshipError` subclass.
Calling scripts can branch on the exit code to tell which stage failed
without parsing stderr.

Example::

    $ plugship --target demo-plugin --product-name Demo
    $ echo $?
    2   # EXIT_BUNDLE_FAILURE -- the bundle could not be written
"""

EXIT_SUCCESS = 0
"""The pipeline completed successfully."""

EXIT_BUILD_FAILURE = 1
"""The toolchain failed to build the artifact (also used for unclassified errors)."""

EXIT_BUNDLE_FAILURE = 2
"""The artifact was missing or the bundle could not be written."""

EXIT_INSTALL_FAILURE = 3
"""The bundle could not be copied into the install root."""

EXIT_INTERRUPTED = 130
"""The run was interrupted by SIGINT (Ctrl-C)."""

EXIT_USAGE = 64
"""Invalid command-line usage (``EX_USAGE``); no stage was started."""
