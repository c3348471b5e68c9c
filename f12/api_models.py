from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class StatePayload(BaseModel):
    """Body of the telemetry PUT."""

    model_config = ConfigDict(populate_by_name=True)

    created_at: int = Field(..., alias="createdAt", description="Unix seconds")
    priority1_requested: int = Field(..., ge=0, alias="priority1Requested")
    priority1_running: int = Field(..., ge=0, alias="priority1Running")
    priority2_running: int = Field(..., ge=0, alias="priority2Running")


class TaskClassOut(BaseModel):
    name: str
    family: str
    demand: int = Field(..., ge=0)
    requested: int = Field(..., ge=0)
    running: int = Field(..., ge=0)


class TasksResponse(BaseModel):
    tasks: list[TaskClassOut]
    scaling_ready: bool
    pending: list[str]
    counts_stale: bool
    updated_at: str


class EventOut(BaseModel):
    id: int
    ts: str
    level: str
    task: str | None = None
    message: str
