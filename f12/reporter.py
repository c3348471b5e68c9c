from __future__ import annotations

import time

import httpx

from . import db
from .api_models import StatePayload
from .errors import F12Error, SchedulerCountFailed, TelemetryPushFailed
from .runtime import ControlContext
from .scheduler import SchedulerGateway


class StateReporter:
    """Best-effort push of cluster state to the remote collector."""

    def __init__(
        self,
        scheduler: SchedulerGateway,
        base_url: str,
        account_id: str,
        timeout_s: float = 5.0,
        client: httpx.Client | None = None,
    ):
        self.scheduler = scheduler
        self.url = f"{base_url.rstrip('/')}/metrics/{account_id}"
        self._client = client or httpx.Client(timeout=timeout_s, follow_redirects=False)

    def snapshot(self, ctx: ControlContext, p1_requested: int) -> StatePayload:
        """Build the payload. `p1_requested` is the sampled priority-1 demand, before clamping."""
        try:
            p1_running, p2_running = self.scheduler.count_all_tasks()
        except SchedulerCountFailed as e:
            raise TelemetryPushFailed(f"Failed to get state: {e}") from e
        ctx.set_counts((p1_running, p2_running), seed_requested=False)
        return StatePayload(
            created_at=int(time.time()),
            priority1_requested=p1_requested,
            priority1_running=p1_running,
            priority2_running=p2_running,
        )

    def push(self, payload: StatePayload) -> None:
        try:
            resp = self._client.put(
                self.url,
                content=payload.model_dump_json(by_alias=True),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise TelemetryPushFailed(f"API state err {type(e).__name__}: {e}") from e
        if resp.status_code > 204:
            raise TelemetryPushFailed(f"Error response from API: HTTP {resp.status_code}")

    def report(self, ctx: ControlContext, p1_requested: int) -> F12Error | None:
        """Snapshot and push; failures are logged and returned, never raised."""
        try:
            self.push(self.snapshot(ctx, p1_requested))
        except TelemetryPushFailed as e:
            db.log_event("WARN", f"Failed to send state. {e}")
            return e
        return None

    def close(self) -> None:
        self._client.close()
