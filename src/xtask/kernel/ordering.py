"""Topic filtering and priority ordering over task collections."""

from __future__ import annotations

from typing import Iterable, List

from xtask.kernel.types import Task


def default_filter(queue: Iterable[Task], topic: str) -> List[Task]:
    """Exact topic match. Always returns a new list."""

    return [task for task in queue if task.topic == topic]


def sort_key(task: Task) -> int:
    return task.sort


def sort_tasks(queue: Iterable[Task]) -> List[Task]:
    """Ascending ``sort``; equal values keep insertion order."""

    return sorted(queue, key=sort_key)
