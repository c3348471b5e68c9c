from __future__ import annotations

from dataclasses import dataclass, field, replace
from threading import Lock

from .db import utc_now


@dataclass
class TaskClass:
    name: str
    family: str
    demand: int = 0
    requested: int = 0
    running: int = 0


@dataclass(frozen=True)
class ContextSnapshot:
    tasks: list[TaskClass]
    scaling_ready: bool
    pending: list[str]
    counts_stale: bool
    updated_at: str = field(default_factory=utc_now)


class ControlContext:
    """Mutable state of one control loop.

    The loop thread is the only writer. The lock exists so that readers on
    other threads (the status API) see a consistent snapshot.
    """

    def __init__(self, tasks: list[TaskClass]) -> None:
        if not tasks:
            raise ValueError("At least one task class is required.")
        names = [t.name for t in tasks]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate task class names: {names}")
        self.lock = Lock()
        self.order: list[str] = names
        self.tasks: dict[str, TaskClass] = {t.name: t for t in tasks}
        self.scaling_ready = True
        self.pending: set[str] = set()
        self.counts_stale = True
        self.updated_at = utc_now()

    def ordered(self) -> list[TaskClass]:
        return [self.tasks[n] for n in self.order]

    def staged(self, name: str) -> TaskClass:
        """Copy of a record for the scheduler to work on before it is committed."""
        return replace(self.tasks[name])

    def commit(self, task: TaskClass) -> None:
        with self.lock:
            self.tasks[task.name] = task
            self.updated_at = utc_now()

    def set_demand(self, demand: dict[str, int]) -> None:
        with self.lock:
            for name, value in demand.items():
                self.tasks[name].demand = value
            self.updated_at = utc_now()

    def set_counts(self, running: tuple[int, ...], *, seed_requested: bool) -> None:
        """Apply observed running counts in class order."""
        with self.lock:
            for name, count in zip(self.order, running):
                self.tasks[name].running = count
                if seed_requested:
                    self.tasks[name].requested = count
            self.updated_at = utc_now()

    def snapshot(self) -> ContextSnapshot:
        with self.lock:
            return ContextSnapshot(
                tasks=[replace(self.tasks[n]) for n in self.order],
                scaling_ready=self.scaling_ready,
                pending=[n for n in self.order if n in self.pending],
                counts_stale=self.counts_stale,
                updated_at=self.updated_at,
            )
