from __future__ import annotations

import httpx

from . import db
from .errors import SchedulerCountFailed, SchedulerInitFailed, SchedulerReconcileFailed
from .runtime import TaskClass
from .scheduler import ScalingGate


class MarathonScheduler:
    """One Marathon app per task class on a Mesos cluster.

    A scale request returns a deployment id; the gate stays busy until
    Marathon no longer lists that deployment.
    """

    def __init__(
        self,
        families: dict[str, str],
        address: str,
        timeout_s: float = 5.0,
        client: httpx.Client | None = None,
    ):
        self.families = dict(families)
        self.order = list(families)
        self.gate = ScalingGate()
        self.deployment_id: str | None = None
        self._client = client or httpx.Client(base_url=address.rstrip("/"), timeout=timeout_s)

    def _app_path(self, name: str) -> str:
        return f"/v2/apps/{name}"

    def _app_definition(self, name: str) -> dict:
        return {
            "id": name,
            "instances": 0,
            "cpus": 0.1,
            "mem": 64,
            "labels": {"f12.task": name},
            "container": {
                "type": "DOCKER",
                "docker": {"image": self.families[name], "network": "BRIDGE", "forcePullImage": False},
            },
        }

    def init_scheduler(self, name: str) -> None:
        if not self.families.get(name):
            raise SchedulerInitFailed(f"No image configured for task {name}")
        try:
            resp = self._client.get(self._app_path(name))
            if resp.status_code == 200:
                return
            if resp.status_code != 404:
                raise SchedulerInitFailed(f"Marathon returned HTTP {resp.status_code} for app {name}")
            resp = self._client.post("/v2/apps", json=self._app_definition(name))
        except httpx.HTTPError as e:
            raise SchedulerInitFailed(f"Marathon request failed: {type(e).__name__}: {e}") from e
        if resp.status_code not in (200, 201):
            raise SchedulerInitFailed(f"Failed to create app {name}: HTTP {resp.status_code}")
        db.log_event("INFO", "Created Marathon app", task=name)

    def _tasks_running(self, name: str) -> int:
        resp = self._client.get(self._app_path(name))
        if resp.status_code != 200:
            raise SchedulerCountFailed(f"Marathon returned HTTP {resp.status_code} for app {name}")
        return int(resp.json()["app"].get("tasksRunning", 0))

    def count_all_tasks(self) -> tuple[int, int]:
        try:
            counts = [self._tasks_running(name) for name in self.order]
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            raise SchedulerCountFailed(f"Failed to count tasks: {type(e).__name__}: {e}") from e
        return tuple(counts)  # type: ignore[return-value]

    def stop_start_n_tasks(self, name: str, task: TaskClass) -> bool:
        if name not in self.families:
            raise SchedulerReconcileFailed(f"Unknown task {name}")
        try:
            resp = self._client.put(self._app_path(name), json={"instances": task.demand})
        except httpx.HTTPError as e:
            raise SchedulerReconcileFailed(f"Marathon request failed: {type(e).__name__}: {e}") from e
        if resp.status_code not in (200, 201):
            raise SchedulerReconcileFailed(f"Failed to scale {name}: HTTP {resp.status_code}")

        try:
            deployment_id = resp.json().get("deploymentId")
        except (ValueError, AttributeError) as e:
            raise SchedulerReconcileFailed(f"Unreadable scale response for {name}: {type(e).__name__}: {e}") from e

        task.requested = task.demand
        if deployment_id:
            self.deployment_id = deployment_id
            self.gate.busy()
        return self.gate.ready

    def poll_ready(self) -> bool:
        if self.gate.ready:
            return True
        try:
            resp = self._client.get("/v2/deployments")
            resp.raise_for_status()
            ids = {d.get("id") for d in resp.json()}
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            db.log_event("WARN", f"Failed to poll deployments: {type(e).__name__}: {e}")
            return False
        if self.deployment_id not in ids:
            self.deployment_id = None
            self.gate.release()
        return self.gate.ready

    def close(self) -> None:
        self._client.close()
