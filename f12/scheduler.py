from __future__ import annotations

from threading import Event
from typing import Protocol

from .runtime import TaskClass


class ScalingGate:
    """Two-state admission gate owned by a scheduler backend.

    Busy while a structural change is outstanding, ready otherwise.
    """

    def __init__(self) -> None:
        self._ready = Event()
        self._ready.set()

    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    def busy(self) -> None:
        self._ready.clear()

    def release(self) -> None:
        self._ready.set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._ready.wait(timeout)


class SchedulerGateway(Protocol):
    def init_scheduler(self, name: str) -> None:
        """Make sure the task class exists in the backend. Raises SchedulerInitFailed."""
        ...

    def count_all_tasks(self) -> tuple[int, int]:
        """Running counts in class order. Raises SchedulerCountFailed."""
        ...

    def stop_start_n_tasks(self, name: str, task: TaskClass) -> bool:
        """Move the backend toward task.demand and return the readiness flag.

        Raises SchedulerReconcileFailed.
        """
        ...

    def poll_ready(self) -> bool:
        """Whether the previously issued change has completed."""
        ...
