from f12.demand import DemandTracker
from f12.errors import SchedulerCountFailed, SchedulerInitFailed, SchedulerReconcileFailed
from f12.reconciler import ControlLoop
from f12.runtime import ControlContext, TaskClass


class FakeSource:
    def __init__(self, values):
        self.values = dict(values)
        self.fail_on = set()
        self.queries = []

    def get_demand(self, name):
        self.queries.append(name)
        if name in self.fail_on:
            raise ConnectionError("demand backend down")
        return self.values[name]


class FakeScheduler:
    """Synchronous scheduler that records every scaling call as (name, delta)."""

    def __init__(self, order, running=None):
        self.order = list(order)
        self.running = dict(running or {n: 0 for n in self.order})
        self.calls = []
        self.inits = []
        self.fail_init = set()
        self.fail_on = set()
        self.count_fails = False
        self.ready_after_call = True
        self.ready = True

    def init_scheduler(self, name):
        if name in self.fail_init:
            raise SchedulerInitFailed(f"cannot create {name}")
        self.inits.append(name)

    def count_all_tasks(self):
        if self.count_fails:
            raise SchedulerCountFailed("count failed")
        return tuple(self.running[n] for n in self.order)

    def stop_start_n_tasks(self, name, task):
        if name in self.fail_on:
            raise SchedulerReconcileFailed(f"cannot scale {name}")
        self.calls.append((name, task.demand - self.running[name]))
        self.running[name] = task.demand
        task.requested = task.demand
        task.running = task.demand
        return self.ready_after_call

    def poll_ready(self):
        return self.ready


def make_loop(p1=5, p2=4, capacity=9, running=None, reporter=None, ticks_per_push=5):
    """A loop in steady state: demand p1/p2 already requested and running."""
    running = running or {"p1": p1, "p2": p2}
    tasks = [
        TaskClass("p1", "img/p1", demand=p1, requested=running["p1"], running=running["p1"]),
        TaskClass("p2", "img/p2", demand=p2, requested=running["p2"], running=running["p2"]),
    ]
    ctx = ControlContext(tasks)
    ctx.counts_stale = False
    source = FakeSource({"p1": p1, "p2": p2})
    scheduler = FakeScheduler(ctx.order, running)
    tracker = DemandTracker(source, ctx.order, {"p1": p1, "p2": p2})
    loop = ControlLoop(
        ctx,
        tracker,
        scheduler,
        capacity=capacity,
        tick_interval_s=0.001,
        reporter=reporter,
        ticks_per_push=ticks_per_push,
    )
    return loop, source, scheduler
