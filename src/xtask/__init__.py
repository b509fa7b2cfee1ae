"""Extendable pub/sub task dispatcher.

The module-level helpers work on one default registry::

    import xtask

    xtask.on("greet", lambda ctx, who: "hi " + who)
    xtask.emit("greet", "ada")            # -> "hi ada"

    user = xtask.construct("user")
    user.on("saved", lambda ctx, row: row["id"])
    user.emit("saved", {"id": 7})         # -> 7

    # hook the instance internals through the core registry
    xtask.on("$user:emit", lambda ctx, *args: print("user emit", args), sort=-1)
"""

from xtask.kernel.instance import InstanceHandle, instance_topic
from xtask.kernel.registry import CoreRegistry
from xtask.kernel.types import Task

__version__ = "0.1.0"

core = CoreRegistry()

on = core.on
emit = core.emit
construct = core.construct
queue = core.queue

__all__ = [
    "CoreRegistry",
    "InstanceHandle",
    "Task",
    "construct",
    "core",
    "emit",
    "instance_topic",
    "on",
    "queue",
]
