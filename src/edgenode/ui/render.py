"""Output rendering for the edgenode CLI.

Purpose
- Thin rendering layer for CLI output; tables are drawn with ``rich``.
- Respect the NO_COLOR environment variable and the --no-color CLI flag.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table
from rich.text import Text

if TYPE_CHECKING:
    from collections.abc import Sequence


def _color_allowed(no_color_flag: bool) -> bool:
    if no_color_flag:
        return False
    if os.environ.get("NO_COLOR", ""):
        return False
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


class CLIRenderer:
    """Plain-text lines plus ``rich`` tables.

    Output goes to whatever ``sys.stdout`` is at call time, so captured
    streams in tests see everything.
    """

    def __init__(self, *, no_color: bool = False) -> None:
        self._color = _color_allowed(no_color)

    def text(self, line: str) -> None:
        print(line)

    def table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[str]],
        *,
        title: str | None = None,
    ) -> None:
        """Render ``rows`` as a table; nothing is printed for an empty table."""

        if not rows:
            return

        table = Table(title=title, show_lines=False, header_style="bold" if self._color else "")
        for header in headers:
            table.add_column(header, overflow="fold")
        for row in rows:
            # Cells are literal; catalog values such as "[1.0.0,2.0.0)" are not markup.
            table.add_row(*(Text(str(cell)) for cell in row))

        console = Console(
            file=sys.stdout,
            no_color=not self._color,
            highlight=False,
            soft_wrap=False,
            width=None if self._color else 160,
        )
        console.print(table)


def create_renderer(*, no_color: bool = False) -> CLIRenderer:
    return CLIRenderer(no_color=no_color)


__all__ = ["CLIRenderer", "create_renderer"]
