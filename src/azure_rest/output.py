"""Terminal output with a strict stdout/stderr split.

* **stdout** carries data only: tokens, API response bodies.
* **stderr** carries everything else: status lines, warnings, errors,
  credential chain diagnostics.

:class:`OutputManager` owns two Rich consoles and the quiet/verbose flags.
The CLI creates one in :func:`~azure_rest.app.main_callback` and installs it
with :func:`set_output`; library code (for example the credential chain
diagnostics) writes through :func:`get_output`, which lazily creates a
default manager when none was installed.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax


class OutputFormat(str, Enum):
    """Rendering used for data written to stdout.

    ``AUTO`` becomes ``RICH`` on an interactive, colour-capable terminal and
    ``PLAIN`` otherwise.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Routes data to stdout and diagnostics to stderr.

    Args:
        format: Rendering for :meth:`format_response`.
        no_color: Disable colour and Rich markup.
        quiet: Drop informational stderr messages. Errors and warnings
            are always shown.
        verbose: Show :meth:`debug` messages.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _color_disabled_by_env()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            rich_ok = _is_tty() and not self._no_color
            self._format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        else:
            self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
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
        """The Rich console bound to stderr, for log handlers."""
        return self._stderr

    # ------------------------------------------------------------------ #
    # Data (stdout)
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        """Write *text* to stdout unchanged."""
        print(text, file=sys.stdout, flush=True)

    def format_response(self, data: Any) -> None:
        """Render a decoded payload (dict, list, str) to stdout.

        JSON mode always emits indented JSON. Plain mode emits JSON for
        structured data and the raw string otherwise. Rich mode adds syntax
        highlighting.
        """
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except (json.JSONDecodeError, TypeError):
                if self._format == OutputFormat.JSON:
                    self.print_data(json.dumps(data))
                else:
                    self.print_data(data)
                return

        text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        if self._format == OutputFormat.RICH:
            self._stdout.print(Syntax(text, "json", theme="monokai", word_wrap=True))
        else:
            self.print_data(text)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Informational message. Suppressed by ``quiet``."""
        if not self._quiet:
            self._emit(message, None)

    def success(self, message: str) -> None:
        """Green success message. Suppressed by ``quiet``."""
        if not self._quiet:
            self._emit(message, "[green]{}[/green]")

    def warning(self, message: str) -> None:
        """Yellow warning. Never suppressed."""
        self._emit(f"Warning: {message}", "[yellow]{}[/yellow]")

    def error(self, message: str) -> None:
        """Bold red error. Never suppressed."""
        self._emit(f"Error: {message}", "[bold red]{}[/bold red]")

    def diagnostic(self, message: str) -> None:
        """Explicitly requested trace output. Never suppressed by ``quiet``."""
        self._emit(message, None)

    def debug(self, message: str) -> None:
        """Dimmed debug message. Only shown when ``verbose``."""
        if self._verbose:
            self._emit(f"[debug] {message}", "[dim]{}[/dim]")

    def _emit(self, message: str, markup: Optional[str]) -> None:
        if self._no_color or markup is None:
            print(message, file=sys.stderr, flush=True)
        else:
            self._stderr.print(markup.format(escape(message)), highlight=False)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _color_disabled_by_env() -> bool:
    """``NO_COLOR`` (any value) or ``TERM=dumb`` disable colour."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one if needed."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global manager."""
    global _output
    _output = output


def reset_output() -> None:
    """Forget the global manager. Used by the test suite."""
    global _output
    _output = None
