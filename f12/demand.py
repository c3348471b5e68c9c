from __future__ import annotations

from typing import Protocol

from .errors import DemandQueryFailed


class DemandSource(Protocol):
    def get_demand(self, name: str) -> int:
        """Return the currently desired instance count for a task class."""
        ...


class DemandTracker:
    """Holds the last sampled demand per task class and detects changes."""

    def __init__(self, source: DemandSource, order: list[str], start: dict[str, int]):
        self.source = source
        self.order = list(order)
        self.demand: dict[str, int] = {name: int(start.get(name, 0)) for name in self.order}

    def sample(self) -> bool:
        """Read fresh demand for every class.

        Returns True if any value differs from the stored one. On failure
        raises DemandQueryFailed and leaves the stored values untouched.
        """
        fresh: dict[str, int] = {}
        for name in self.order:
            try:
                value = int(self.source.get_demand(name))
            except DemandQueryFailed:
                raise
            except Exception as e:
                raise DemandQueryFailed(f"Failed to get demand for task {name}: {type(e).__name__}: {e}") from e
            if value < 0:
                raise DemandQueryFailed(f"Negative demand {value} for task {name}")
            fresh[name] = value

        changed = any(fresh[n] != self.demand[n] for n in self.order)
        self.demand = fresh
        return changed


def allocate(raw_demand: dict[str, int], capacity: int, order: list[str]) -> dict[str, int]:
    """Complementary fill: priority-1 is served first, priority-2 gets the rest.

    Only the first class's raw demand is consulted. p1 + p2 == capacity.
    """
    if len(order) != 2:
        raise ValueError(f"Complementary-fill allocation needs exactly two task classes, got {len(order)}.")
    capacity = max(0, int(capacity))
    p1_name, p2_name = order
    p1 = max(0, min(capacity, int(raw_demand.get(p1_name, 0))))
    return {p1_name: p1, p2_name: capacity - p1}
