"""Core task registry: one ordered task collection plus on/emit/construct."""

from __future__ import annotations

import sys
from collections import Counter
from typing import Any, Dict, List, Mapping, Optional, TextIO

from xtask.config import Settings
from xtask.kernel.debug_log import DebugLogWriter
from xtask.kernel.executor import add_task, execute, split_context
from xtask.kernel.instance import InstanceHandle, construct_instance
from xtask.kernel.ordering import default_filter
from xtask.kernel.types import Task, TaskCallback, TaskQueue
from xtask.ui.render import print_notice


class CoreRegistry:
    """Shared registry that both plain tasks and instance features live on.

    Create one and hand it to every collaborator; :mod:`xtask` keeps a
    default one for static use.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        debug_log: Optional[DebugLogWriter] = None,
        notice_stream: Optional[TextIO] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.debug_log = debug_log or DebugLogWriter(
            logs_dir=self.settings.logs_dir,
            enabled=self.settings.logs_enabled,
            max_file_bytes=self.settings.logs_max_file_bytes,
            max_files=self.settings.logs_max_files,
            redaction=self.settings.logs_redaction,
        )
        self._notice_stream = notice_stream
        self._queue: TaskQueue = []
        self._instances: Dict[str, InstanceHandle] = {}

    @property
    def queue(self) -> TaskQueue:
        return self._queue

    def on(
        self,
        topic: str,
        callback: TaskCallback,
        opts: Optional[Mapping[str, Any]] = None,
        **options: Any,
    ) -> Task:
        return add_task(self._queue, topic, callback, opts, **options)

    def emit(self, *args: Any, context: Any = None, **kwargs: Any) -> Any:
        """Run every task on a topic: ``emit([context,] topic, *args)``.

        Returns the last truthy callback result, or ``None``.
        """

        implicit_context, topic, rest = split_context(args)
        if context is None:
            context = implicit_context
        selected = default_filter(self._queue, topic)
        outcome = execute(selected, rest, kwargs=kwargs, context=context, owner=self._queue)

        if self.settings.trace_emits:
            self.debug_log.write_entry(
                level="debug",
                component="registry",
                kind="trace",
                topic=str(topic),
                message="emit.dispatched",
                data={
                    "matched": len(selected),
                    "executed": outcome.executed_count,
                    "stopped": outcome.stopped_by is not None,
                },
            )
        return outcome.result

    def construct(
        self,
        name: str,
        features: Optional[Mapping[str, TaskCallback]] = None,
    ) -> InstanceHandle:
        """Create the instance ``name``, or return it if it already exists.

        ``features`` is ignored when the instance already exists.
        """

        existing = self._instances.get(name)
        if existing is not None:
            self._notice("info", "Return existing instance '{0}'".format(name))
            self.debug_log.write_entry(
                level="info",
                component="registry",
                kind="diagnostic",
                instance=name,
                message="instance.reused",
                data={"ignored_features": sorted(str(key) for key in (features or {}))},
            )
            return existing

        handle = construct_instance(self, name, features)
        self._instances[name] = handle
        self.debug_log.write_entry(
            level="info",
            component="registry",
            kind="lifecycle",
            instance=name,
            message="instance.constructed",
            data={"features": list(handle.features)},
        )
        return handle

    def get_instance(self, name: str) -> Optional[InstanceHandle]:
        return self._instances.get(name)

    def instance_names(self) -> List[str]:
        return sorted(self._instances.keys())

    def snapshot(self) -> Dict[str, Any]:
        topics = Counter(task.topic for task in self._queue)
        return {
            "task_count": len(self._queue),
            "topics": dict(topics),
            "tasks": [task.as_dict() for task in self._queue],
            "instances": self.instance_names(),
        }

    def _notice(self, level: str, message: str) -> None:
        if not self.settings.notices:
            return
        print_notice(level, message, self._notice_stream or sys.stderr)
