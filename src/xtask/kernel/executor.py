"""Sequential task execution with sort, stop, and once semantics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from xtask.kernel.ordering import sort_tasks
from xtask.kernel.types import Task, TaskCallback, build_task


@dataclass
class DispatchResult:
    result: Any = None
    executed: List[Task] = field(default_factory=list)
    stopped_by: Optional[Task] = None

    @property
    def executed_count(self) -> int:
        return len(self.executed)


def split_context(args: Sequence[Any]) -> Tuple[Any, Any, Tuple[Any, ...]]:
    """Split ``(context?, topic, *rest)``.

    Topics are strings, so a non-string first argument is the context.
    """

    if not args:
        raise TypeError("emit() requires a topic")
    if not isinstance(args[0], str) and len(args) > 1:
        return args[0], args[1], tuple(args[2:])
    return None, args[0], tuple(args[1:])


def add_task(
    queue: List[Task],
    topic: str,
    callback: TaskCallback,
    opts: Optional[Mapping[str, Any]] = None,
    **options: Any,
) -> Task:
    merged: Dict[str, Any] = dict(opts or {})
    merged.update(options)
    task = build_task(topic, callback, merged)
    queue.append(task)
    return task


def has_task(queue: List[Task], task: Task) -> bool:
    return any(item is task for item in queue)


def is_truthy(value: Any) -> bool:
    """Only None, False, zero, NaN and "" are falsy; containers always count."""

    if value is None or value is False:
        return False
    if isinstance(value, str):
        return value != ""
    if isinstance(value, (int, float)):
        return value == value and value != 0
    return True


def remove_task(queue: List[Task], task: Task) -> bool:
    for index, item in enumerate(queue):
        if item is task:
            del queue[index]
            return True
    return False


def resolve_context(task: Task, context: Any) -> Any:
    if context is not None:
        return context
    if task.ctx is not None:
        return task.ctx
    return task


def execute(
    selected: Iterable[Task],
    args: Sequence[Any] = (),
    kwargs: Optional[Dict[str, Any]] = None,
    context: Any = None,
    owner: Optional[List[Task]] = None,
) -> DispatchResult:
    outcome = DispatchResult()
    call_kwargs = dict(kwargs or {})

    for task in sort_tasks(selected):
        # a reentrant emit may already have consumed this once task
        if task.once and owner is not None and not has_task(owner, task):
            continue
        value = task.callback(resolve_context(task, context), *args, **call_kwargs)
        outcome.executed.append(task)
        if is_truthy(value):
            outcome.result = value
        if task.once and owner is not None:
            remove_task(owner, task)
        if task.stop:
            outcome.stopped_by = task
            break

    return outcome


def run_tasks(
    selected: Iterable[Task],
    args: Sequence[Any] = (),
    kwargs: Optional[Dict[str, Any]] = None,
    context: Any = None,
    owner: Optional[List[Task]] = None,
) -> Any:
    """Run ``selected`` in priority order and return the last truthy result."""

    return execute(selected, args, kwargs=kwargs, context=context, owner=owner).result
