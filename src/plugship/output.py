"""Terminal output for plugship, split strictly between stdout and stderr.

The split follows `clig.dev <https://clig.dev/>`_:

* **stdout** carries the run summary (:meth:`OutputManager.format_result`)
  and the ``--dry-run`` plan (:meth:`OutputManager.print_table`). Nothing
  else, so ``plugship --json`` can be piped straight into ``jq``.
* **stderr** carries stage progress, errors, hints, debug lines and log
  records. The toolchain writes its own output there too.

Rich styling is used when stdout is a terminal and colour has not been
turned off by ``NO_COLOR``, ``TERM=dumb`` or ``--no-color``; otherwise all
output is plain text.

:func:`set_output` installs the per-invocation :class:`OutputManager`; the
module-level helpers (:func:`info`, :func:`error`, ...) forward to it.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table


class OutputFormat(str, Enum):
    """How results are written to stdout.

    ``AUTO`` becomes ``RICH`` on an interactive, colour-capable terminal and
    ``PLAIN`` everywhere else.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Per-invocation output settings plus the two Rich consoles.

    Args:
        format: Result format; ``AUTO`` is resolved at construction.
        no_color: Force plain, unstyled text on both streams.
        quiet: Drop progress and success messages. Errors and results
            are always written.
        verbose: Show debug messages and DEBUG log records.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format != OutputFormat.AUTO:
            self._format = format
        elif _is_tty() and not self._no_color:
            self._format = OutputFormat.RICH
        else:
            self._format = OutputFormat.PLAIN

        rich_stdout = self._format == OutputFormat.RICH
        self._stdout = Console(
            file=sys.stdout, no_color=self._no_color, force_terminal=rich_stdout
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    @property
    def stderr_console(self) -> Console:
        """Console bound to stderr; :func:`configure_logging` writes through it."""
        return self._stderr

    # --- stdout ---

    def format_result(self, data: dict[str, Any]) -> None:
        """Write the run summary to stdout.

        JSON mode emits one object (``None`` as ``null``). Plain mode emits
        ``key<TAB>value`` lines and Rich mode aligned ``key  value`` lines,
        both showing ``None`` as ``-``.

        Args:
            data: Flat mapping of summary fields to values.
        """
        if self._format == OutputFormat.JSON:
            self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))
            return

        shown = {key: "-" if value is None else value for key, value in data.items()}
        if self._format == OutputFormat.PLAIN:
            for key, value in shown.items():
                self.print_data(f"{key}\t{value}")
            return

        width = max((len(key) for key in shown), default=0)
        for key, value in shown.items():
            self._stdout.print(
                f"[bold cyan]{key.ljust(width)}[/bold cyan]  {escape(str(value))}"
            )

    def print_data(self, text: str) -> None:
        """Write *text* to stdout unchanged."""
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write rows to stdout as JSON records, TSV, or a Rich table.

        Args:
            headers: Column names; also the JSON record keys.
            rows: Cell strings, one list per row.
            title: Caption shown above the Rich table.
        """
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(json.dumps(records, indent=2, ensure_ascii=False))
        elif self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
        else:
            table = Table(title=title, header_style="bold cyan")
            for header in headers:
                table.add_column(header)
            for row in rows:
                table.add_row(*(escape(cell) for cell in row))
            self._stdout.print(table)

    # --- stderr ---

    def _emit(self, plain: str, styled: str) -> None:
        """Write one diagnostic line to stderr, styled unless colour is off."""
        if self._no_color:
            print(plain, file=sys.stderr, flush=True)
        else:
            self._stderr.print(styled)

    def info(self, message: str) -> None:
        """Stage progress such as ``Building Demo...``. Hidden by ``--quiet``."""
        if not self._quiet:
            self._emit(message, escape(message))

    def success(self, message: str) -> None:
        """Final success line, in green. Hidden by ``--quiet``."""
        if not self._quiet:
            self._emit(message, f"[green]{escape(message)}[/green]")

    def error(self, message: str) -> None:
        """``Error: <message>``, always shown."""
        self._emit(f"Error: {message}", f"[bold red]Error:[/bold red] {escape(message)}")

    def suggest(self, message: str) -> None:
        """A dimmed ``→`` hint about what to do next. Hidden by ``--quiet``."""
        if not self._quiet:
            self._emit(f"→ {message}", f"[dim]→ {escape(message)}[/dim]")

    def debug(self, message: str) -> None:
        """``[debug] <message>``, shown only with ``--verbose``."""
        if self._verbose:
            self._emit(f"[debug] {message}", f"[dim]\\[debug] {escape(message)}[/dim]")


# --- environment checks ---


def _is_tty() -> bool:
    """True when stdout is an interactive terminal."""
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (to anything) or ``TERM`` is ``dumb``."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


def configure_logging(output: OutputManager) -> None:
    """Send the ``plugship`` logger's records to stderr through Rich.

    The stage modules log at DEBUG; those records only appear when *output*
    is verbose. Calling this again swaps the previous handler out.
    """
    logger = logging.getLogger("plugship")
    for old in [h for h in logger.handlers if isinstance(h, RichHandler)]:
        logger.removeHandler(old)

    logger.addHandler(
        RichHandler(
            console=output.stderr_console,
            show_time=False,
            show_path=False,
            markup=False,
        )
    )
    logger.setLevel(logging.DEBUG if output.is_verbose else logging.WARNING)
    logger.propagate = False


# --- global instance ---

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager, creating an ``AUTO`` one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager (used between tests)."""
    global _output
    _output = None


def format_result(data: dict[str, Any]) -> None:
    get_output().format_result(data)


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def error(message: str) -> None:
    get_output().error(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)
