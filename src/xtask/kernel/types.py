"""Core typed contracts shared by the registry, executor, and instances."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

TaskCallback = Callable[..., Any]

TASK_DEFAULTS: Dict[str, int] = {"sort": 0, "stop": 0, "once": 0}
TASK_OPTION_KEYS = ("sort", "stop", "once", "ctx")


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(eq=False)
class Task:
    """One registered handler.

    Tasks compare by identity: two registrations of the same topic and
    callback are still two distinct tasks.
    """

    topic: str
    callback: TaskCallback
    sort: int = 0
    stop: int = 0
    once: int = 0
    ctx: Any = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def callback_name(self) -> str:
        name = getattr(self.callback, "__qualname__", None) or getattr(self.callback, "__name__", None)
        if name:
            return str(name)
        return type(self.callback).__name__

    def as_dict(self) -> Dict[str, Any]:
        return {
            "topic": self.topic,
            "callback": self.callback_name,
            "sort": self.sort,
            "stop": self.stop,
            "once": self.once,
            "has_ctx": self.ctx is not None,
            "extra": dict(self.extra),
        }


TaskQueue = List[Task]


def build_task(
    topic: str,
    callback: TaskCallback,
    options: Optional[Mapping[str, Any]] = None,
) -> Task:
    merged: Dict[str, Any] = dict(TASK_DEFAULTS)
    merged.update(options or {})
    extra = {key: value for key, value in merged.items() if key not in TASK_OPTION_KEYS}
    return Task(
        topic=topic,
        callback=callback,
        sort=merged["sort"],
        stop=merged["stop"],
        once=merged["once"],
        ctx=merged.get("ctx"),
        extra=extra,
    )
