from __future__ import annotations

from . import db
from .demand import DemandSource, DemandTracker
from .docker_ops import DockerScheduler
from .marathon import MarathonScheduler
from .reconciler import ControlLoop
from .reporter import StateReporter
from .runtime import ControlContext, TaskClass
from .scheduler import SchedulerGateway
from .settings import Settings, settings as default_settings
from .sources import ConsulDemand, RandomWalkDemand


def build_demand_source(cfg: Settings) -> DemandSource:
    if cfg.demand_model == "CONSUL":
        db.log_event("INFO", "Getting demand metric from Consul")
        return ConsulDemand(cfg.consul_address, timeout_s=cfg.http_timeout_s)
    db.log_event("INFO", "Random demand generation")
    return RandomWalkDemand(maximum=cfg.rng_maximum, delta=cfg.rng_delta, complement=cfg.p2_task)


def build_scheduler(cfg: Settings) -> SchedulerGateway:
    families = {cfg.p1_task: cfg.p1_family, cfg.p2_task: cfg.p2_family}
    if cfg.scheduler in {"MARATHON", "MESOS"}:
        db.log_event("INFO", "Scheduling with Mesos / Marathon")
        return MarathonScheduler(families, cfg.marathon_address, timeout_s=cfg.http_timeout_s)
    db.log_event("INFO", "Scheduling with Docker")
    return DockerScheduler(families, network=cfg.docker_network, stop_pause_s=cfg.stop_pause_ms / 1000.0)


def build_loop(
    cfg: Settings | None = None,
    source: DemandSource | None = None,
    scheduler: SchedulerGateway | None = None,
) -> ControlLoop:
    """Wire up a control loop from settings.

    Raises SchedulerInitFailed if any task class cannot be initialised.
    """
    cfg = cfg or default_settings
    cfg.validate()
    db.set_db_path(cfg.db_path)
    db.init_db()

    source = source or build_demand_source(cfg)
    scheduler = scheduler or build_scheduler(cfg)

    tasks = [
        TaskClass(name=cfg.p1_task, family=cfg.p1_family, demand=cfg.p1_demand_start),
        TaskClass(name=cfg.p2_task, family=cfg.p2_family, demand=cfg.p2_demand_start),
    ]
    ctx = ControlContext(tasks)
    for t in tasks:
        scheduler.init_scheduler(t.name)

    tracker = DemandTracker(source, ctx.order, {t.name: t.demand for t in tasks})
    reporter = None
    if cfg.send_state:
        reporter = StateReporter(scheduler, cfg.api_address, cfg.account_id, timeout_s=cfg.http_timeout_s)

    loop = ControlLoop(
        ctx,
        tracker,
        scheduler,
        capacity=cfg.max_containers,
        tick_interval_s=cfg.tick_interval_ms / 1000.0,
        reporter=reporter,
        ticks_per_push=cfg.ticks_per_push,
    )
    loop.recount()
    # Drive the backend to the start-up demand on the first tick.
    ctx.pending = set(ctx.order)
    return loop
