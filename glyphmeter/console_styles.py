"""Themed console output: status indicators, counts, progress bars."""

from enum import IntEnum
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.theme import Theme

INDENT = "  "

THEME = Theme(
    {
        "info": "cyan",
        "success": "bold green",
        "warning": "yellow",
        "error": "bold red",
        "saved": "green",
        "skipped": "dim",
        "count": "bold magenta",
        "file": "blue",
    }
)

# kind -> (label, style)
_LABELS = {
    "info": ("INFO", "info"),
    "success": ("SUCCESS", "success"),
    "warning": ("WARNING", "warning"),
    "error": ("ERROR", "error"),
    "saved": ("SAVED", "saved"),
    "skipped": ("SKIPPED", "skipped"),
    "fallback": ("FALLBACK", "warning"),
    "retry": ("RETRY", "skipped"),
}

_console: Optional[Console] = None


class Verbosity(IntEnum):
    BRIEF = 0
    VERBOSE = 1
    DEBUG = 2


def get_console() -> Console:
    global _console
    if _console is None:
        _console = Console(theme=THEME, highlight=False)
    return _console


def emit(message: str = "", console: Optional[Console] = None) -> None:
    (console or get_console()).print(message)


def fmt_count(value: int) -> str:
    return f"[count]{value:,}[/count]"


def fmt_file(path: str, filename_only: bool = True) -> str:
    shown = Path(path).name if filename_only else str(path)
    return f"[file]{escape(shown)}[/file]"


def create_progress_bar(console: Optional[Console] = None) -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console or get_console(),
        transient=True,
    )


class StatusIndicator:
    """Chainable one-line status message with optional indented detail lines.

    Usage:
        StatusIndicator("warning").add_message("font fell back").emit(console)
    """

    def __init__(self, kind: str):
        if kind not in _LABELS:
            raise ValueError(f"Unknown status kind: {kind}")
        self.kind = kind
        self._parts: List[str] = []
        self._items: List[str] = []
        self._explanation: Optional[str] = None

    def add_message(self, message: str) -> "StatusIndicator":
        self._parts.append(message)
        return self

    def add_file(self, path: str, filename_only: bool = True) -> "StatusIndicator":
        self._parts.append(fmt_file(path, filename_only=filename_only))
        return self

    def add_item(self, text: str, indent_level: int = 1) -> "StatusIndicator":
        self._items.append(f"{INDENT * (indent_level + 1)}{text}")
        return self

    def with_explanation(self, text: str) -> "StatusIndicator":
        self._explanation = text
        return self

    def with_summary_block(self, **counts: int) -> "StatusIndicator":
        for name, value in counts.items():
            self.add_item(f"{name.replace('_', ' ')}: {fmt_count(value)}")
        return self

    def build(self) -> str:
        label, style = _LABELS[self.kind]
        head = f"[{style}]{label}[/{style}] " + " ".join(self._parts)
        if self._explanation:
            head += f" [dim]({escape(self._explanation)})[/dim]"
        return "\n".join([head] + self._items)

    def emit(self, console: Optional[Console] = None) -> None:
        emit(self.build(), console=console)
