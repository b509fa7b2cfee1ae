"""Presentation helpers for registry notices and task queue dumps."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, TextIO

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from xtask.kernel.types import Task

NOTICE_PREFIXES = {
    "info": "Info",
    "warn": "Warning",
    "error": "Error",
}
NOTICE_STYLES = {
    "info": "cyan",
    "warn": "yellow",
    "error": "bold red",
}
QUEUE_COLUMNS = ("#", "topic", "sort", "stop", "once", "callback")


def render_notice(level: str, message: str) -> str:
    prefix = NOTICE_PREFIXES.get(level, NOTICE_PREFIXES["info"])
    return "{0}: {1}".format(prefix, message)


def _is_tty(stream: TextIO, forced: Optional[bool]) -> bool:
    if forced is not None:
        return forced
    isatty = getattr(stream, "isatty", None)
    if callable(isatty):
        try:
            return bool(isatty())
        except (OSError, ValueError):
            return False
    return False


def print_notice(level: str, message: str, stream: TextIO, is_tty: Optional[bool] = None) -> None:
    text = render_notice(level, message)
    if _is_tty(stream, is_tty):
        console = Console(file=stream, highlight=False, soft_wrap=True)
        console.print(Text(text, style=NOTICE_STYLES.get(level, "cyan")))
        return
    stream.write(text + "\n")
    stream.flush()


def _queue_rows(queue: Iterable[Task]) -> List[Sequence[str]]:
    rows: List[Sequence[str]] = []
    for index, task in enumerate(queue):
        rows.append(
            (
                str(index),
                task.topic,
                str(task.sort),
                str(task.stop),
                str(task.once),
                task.callback_name,
            )
        )
    return rows


def render_queue(
    queue: Iterable[Task],
    stream: TextIO,
    is_tty: Optional[bool] = None,
    title: str = "Task queue",
) -> None:
    """Dump a task collection in registration order."""

    rows = _queue_rows(queue)

    if _is_tty(stream, is_tty):
        table = Table(title=title, box=box.ROUNDED, header_style="bold")
        for column in QUEUE_COLUMNS:
            table.add_column(column, justify="right" if column in {"#", "sort"} else "left")
        for row in rows:
            table.add_row(*row)
        Console(file=stream, highlight=False).print(table)
        return

    stream.write("{0} ({1} tasks)\n".format(title, len(rows)))
    stream.write("\t".join(QUEUE_COLUMNS) + "\n")
    for row in rows:
        stream.write("\t".join(row) + "\n")
    stream.flush()
