"""Named sub-instances whose features run as core registry tasks.

Every feature of an instance is registered on the core registry under
``$<name>:<feature>``. Calling a feature through :class:`InstanceHandle`
emits that topic, so any task registered on it by other code (a hook)
takes part in the call. Hooks use ``sort`` to run before (negative) or
after (positive) the built-in, and ``stop`` to replace everything ordered
after them.
"""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Tuple

from xtask.kernel.executor import add_task, run_tasks, split_context
from xtask.kernel.ordering import default_filter
from xtask.kernel.types import Task, TaskCallback, TaskQueue

if TYPE_CHECKING:
    from xtask.kernel.registry import CoreRegistry

BUILTIN_FEATURES = ("filter", "queue", "on", "emit")


def instance_topic(name: str, feature: str) -> str:
    return "${0}:{1}".format(name, feature)


def filter_feature(context: Any, queue: TaskQueue, topic: str) -> List[Task]:
    return default_filter(queue, topic)


def build_feature_table(
    base: Mapping[str, TaskCallback],
    overrides: Mapping[str, TaskCallback],
    fixed: Mapping[str, TaskCallback],
) -> Dict[str, TaskCallback]:
    """Merge ``base`` <- ``overrides`` <- ``fixed``; later tables win."""

    table: Dict[str, TaskCallback] = dict(base)
    table.update(overrides)
    table.update(fixed)
    return table


class Instance:
    """Local task collection plus the built-in feature implementations."""

    def __init__(
        self,
        registry: "CoreRegistry",
        name: str,
        features: Optional[Mapping[str, TaskCallback]] = None,
    ) -> None:
        self.name = name
        self.queue: TaskQueue = []
        self._registry = registry
        self.features = build_feature_table(
            {"filter": filter_feature},
            dict(features or {}),
            {
                "queue": self.queue_feature,
                "on": self.on_feature,
                "emit": self.emit_feature,
            },
        )

    def queue_feature(self, context: Any) -> TaskQueue:
        return self.queue

    def on_feature(
        self,
        context: Any,
        topic: str,
        callback: TaskCallback,
        opts: Optional[Mapping[str, Any]] = None,
        **options: Any,
    ) -> Task:
        return add_task(self.queue, topic, callback, opts, **options)

    def emit_feature(self, context: Any, *args: Any, **kwargs: Any) -> Any:
        # ``context`` belongs to the $<name>:emit task; the local emit takes
        # its own optional context from the call arguments.
        local_context, topic, rest = split_context(args)
        selected = self._registry.emit(instance_topic(self.name, "filter"), self.queue, topic)
        return run_tasks(
            selected or [],
            rest,
            kwargs=kwargs,
            context=local_context,
            owner=self.queue,
        )

    def register(self) -> None:
        for feature, action in self.features.items():
            self._registry.on(instance_topic(self.name, feature), action)


class InstanceHandle:
    """Proxy over an :class:`Instance`.

    Attribute access returns an invoker that emits ``$<name>:<attr>`` on the
    core registry. Names that are not declared features fall back to the
    instance ``emit`` with the attribute name as topic, so ``user.saved(x)``
    is ``user.emit("saved", x)``. Underscore-prefixed names are not
    intercepted; use :meth:`invoke` for those.
    """

    def __init__(self, registry: "CoreRegistry", instance: Instance) -> None:
        self._registry = registry
        self._instance = instance

    @property
    def name(self) -> str:
        return self._instance.name

    @property
    def features(self) -> Tuple[str, ...]:
        return tuple(self._instance.features)

    def invoke(self, feature: str, *args: Any, **kwargs: Any) -> Any:
        if feature in self._instance.features:
            return self._registry.emit(instance_topic(self.name, feature), *args, **kwargs)
        return self.invoke("emit", feature, *args, **kwargs)

    def __getattr__(self, prop: str) -> Callable[..., Any]:
        if prop.startswith("_"):
            raise AttributeError(prop)
        return partial(self.invoke, prop)

    def __repr__(self) -> str:
        return "InstanceHandle(name={0!r}, features={1!r})".format(self.name, list(self.features))


def construct_instance(
    registry: "CoreRegistry",
    name: str,
    features: Optional[Mapping[str, TaskCallback]] = None,
) -> InstanceHandle:
    instance = Instance(registry, name, features)
    instance.register()
    return InstanceHandle(registry, instance)
