from __future__ import annotations

from fastapi import FastAPI, HTTPException, Query

from . import db
from .api_models import EventOut, TaskClassOut, TasksResponse
from .bootstrap import build_loop
from .reconciler import ControlLoop

app = FastAPI(title="Force12 scheduler")

_loop: ControlLoop | None = None


def get_loop() -> ControlLoop:
    if _loop is None:
        raise HTTPException(status_code=503, detail="Control loop not running")
    return _loop


@app.on_event("startup")
def startup() -> None:
    global _loop
    _loop = build_loop()
    _loop.start()


@app.on_event("shutdown")
def shutdown() -> None:
    global _loop
    if _loop is not None:
        _loop.stop(timeout=2.0)
        _loop = None


@app.get("/health")
def health() -> dict:
    return {"status": "healthy"}


@app.get("/tasks", response_model=TasksResponse)
def tasks() -> TasksResponse:
    snap = get_loop().ctx.snapshot()
    return TasksResponse(
        tasks=[
            TaskClassOut(name=t.name, family=t.family, demand=t.demand, requested=t.requested, running=t.running)
            for t in snap.tasks
        ],
        scaling_ready=snap.scaling_ready,
        pending=snap.pending,
        counts_stale=snap.counts_stale,
        updated_at=snap.updated_at,
    )


@app.get("/events", response_model=list[EventOut])
def events(limit: int = Query(100, ge=1, le=1000), task: str | None = None) -> list[EventOut]:
    return [EventOut(**e) for e in db.latest_events(limit=limit, task=task)]
