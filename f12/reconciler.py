from __future__ import annotations

from threading import Event, Thread

from . import db
from .demand import DemandTracker, allocate
from .errors import DemandQueryFailed, F12Error, SchedulerCountFailed, SchedulerReconcileFailed
from .reporter import StateReporter
from .runtime import ControlContext
from .scheduler import SchedulerGateway


class ControlLoop:
    """Samples demand on a fixed cadence and reconciles task counts.

    At most one structural scheduler change is outstanding at a time: while
    the scheduler reports busy, cycles are skipped rather than queued.
    """

    def __init__(
        self,
        ctx: ControlContext,
        tracker: DemandTracker,
        scheduler: SchedulerGateway,
        capacity: int,
        tick_interval_s: float = 0.1,
        reporter: StateReporter | None = None,
        ticks_per_push: int = 5,
    ):
        self.ctx = ctx
        self.tracker = tracker
        self.scheduler = scheduler
        self.capacity = capacity
        self.tick_interval_s = tick_interval_s
        self.reporter = reporter
        self.ticks_per_push = max(1, int(ticks_per_push))
        self.tick_count = 0
        self._stop = Event()
        self._thr: Thread | None = None

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._stop.clear()
        self._thr = Thread(target=self.run_forever, daemon=True, name="f12-control-loop")
        self._thr.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thr:
            self._thr.join(timeout)

    def run_forever(self) -> None:
        db.log_event("INFO", "Control loop started")
        while not self._stop.is_set():
            self.step()
            self._stop.wait(self.tick_interval_s)
        db.log_event("INFO", "Control loop stopped")

    def step(self) -> None:
        """One iteration of the run loop: a tick, then telemetry every Nth time.

        Nothing raised here may end the loop.
        """
        try:
            self.tick()
        except Exception as e:
            db.log_event("ERROR", f"Control loop tick failed: {type(e).__name__}: {e}")
        self.tick_count += 1
        if self.reporter is None or self.tick_count % self.ticks_per_push != 0:
            return
        try:
            self.reporter.report(self.ctx, self.tracker.demand[self.ctx.order[0]])
        except Exception as e:
            db.log_event("ERROR", f"Failed to send state. {type(e).__name__}: {e}")

    def tick(self) -> F12Error | None:
        """Run one sampling and reconciliation cycle.

        Returns the first error hit, for information only.
        """
        ctx = self.ctx
        old = dict(self.tracker.demand)
        try:
            changed = self.tracker.sample()
        except DemandQueryFailed as e:
            db.log_event("WARN", f"Failed to get new demand. {e}")
            return e

        if changed:
            moves = [
                f"{name} {old.get(name)} -> {self.tracker.demand[name]}"
                for name in ctx.order
                if old.get(name) != self.tracker.demand[name]
            ]
            db.log_event("INFO", "Demand changed: " + ", ".join(moves))
            ctx.set_demand(allocate(self.tracker.demand, self.capacity, ctx.order))
            ctx.pending = set(ctx.order)
            if ctx.counts_stale:
                self.recount()
        elif not ctx.pending:
            return None

        return self.reconcile(log_busy=changed)

    def recount(self) -> None:
        """Seed requested/running from what the scheduler actually runs."""
        try:
            counts = self.scheduler.count_all_tasks()
        except SchedulerCountFailed as e:
            self.ctx.counts_stale = True
            db.log_event("WARN", f"Failed to count tasks. {e}")
            return
        self.ctx.set_counts(counts, seed_requested=True)
        self.ctx.counts_stale = False

    def reconcile(self, log_busy: bool = True) -> F12Error | None:
        ctx = self.ctx
        for name in [n for n in ctx.order if n in ctx.pending]:
            if not ctx.scaling_ready:
                ctx.scaling_ready = self.scheduler.poll_ready()
            if not ctx.scaling_ready:
                # Back-pressure, not an error: retried once the scheduler is free.
                if log_busy:
                    db.log_event("INFO", "Scale change still outstanding - demand changing too fast to handle", task=name)
                return None

            staged = ctx.staged(name)
            try:
                ctx.scaling_ready = self.scheduler.stop_start_n_tasks(name, staged)
            except SchedulerReconcileFailed as e:
                db.log_event("ERROR", f"Failed to start {name} tasks. {e}", task=name)
                ctx.pending.clear()
                return e
            ctx.commit(staged)
            ctx.pending.discard(name)
        return None
