from __future__ import annotations

import re
import secrets
import time
from dataclasses import dataclass
from threading import Thread
from typing import Any

import docker
import requests
from docker.errors import DockerException, ImageNotFound, NotFound

from . import db
from .errors import SchedulerCountFailed, SchedulerInitFailed, SchedulerReconcileFailed
from .runtime import TaskClass
from .scheduler import ScalingGate


# docker-py only wraps HTTP errors; a daemon that went away surfaces as a raw requests error.
BACKEND_ERRORS = (DockerException, requests.exceptions.RequestException)

TASK_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9\-_.]{0,62}$")
TASK_LABEL = "f12.task"
FAMILY_LABEL = "f12.family"


def validate_task_name(name: str) -> None:
    if not TASK_NAME_RE.match(name):
        raise ValueError(
            "Invalid task name. Use lowercase letters/numbers and -._, starting with a letter or digit (max 63 chars)."
        )


@dataclass(frozen=True)
class ContainerRef:
    id: str
    name: str


class DockerScheduler:
    """Runs each task class as a set of labelled containers on the local daemon.

    Scaling happens on a worker thread; the gate stays busy until it is done.
    """

    def __init__(
        self,
        families: dict[str, str],
        network: str = "f12",
        stop_pause_s: float = 0.25,
        client: Any | None = None,
    ):
        for name in families:
            validate_task_name(name)
        self.families = dict(families)
        self.order = list(families)
        self.network = network
        self.stop_pause_s = max(0.0, stop_pause_s)
        self.gate = ScalingGate()
        self._client = client
        self._worker: Thread | None = None

    def client(self) -> Any:
        if self._client is None:
            self._client = docker.from_env()
        return self._client

    def docker_available(self) -> bool:
        try:
            self.client().ping()
            return True
        except BACKEND_ERRORS:
            return False

    def ensure_network(self) -> None:
        c = self.client()
        try:
            c.networks.get(self.network)
        except NotFound:
            c.networks.create(self.network, driver="bridge")
            db.log_event("INFO", f"Created docker network '{self.network}'.")

    def ensure_image(self, image: str) -> None:
        c = self.client()
        try:
            c.images.get(image)
        except ImageNotFound:
            c.images.pull(image)
            db.log_event("INFO", f"Pulled image {image}")

    def init_scheduler(self, name: str) -> None:
        family = self.families.get(name)
        if not family:
            raise SchedulerInitFailed(f"No image configured for task {name}")
        if not self.docker_available():
            raise SchedulerInitFailed("Docker is not available. Start the docker daemon and try again.")
        try:
            self.ensure_network()
            self.ensure_image(family)
        except BACKEND_ERRORS as e:
            raise SchedulerInitFailed(f"Failed to prepare task {name}: {type(e).__name__}: {e}") from e

    def list_task_containers(self, name: str) -> list[ContainerRef]:
        filters: dict[str, Any] = {"label": [f"{TASK_LABEL}={name}"], "status": "running"}
        containers = self.client().containers.list(filters=filters)
        return [ContainerRef(id=x.id, name=x.name) for x in containers]

    def count_all_tasks(self) -> tuple[int, int]:
        try:
            counts = [len(self.list_task_containers(name)) for name in self.order]
        except BACKEND_ERRORS as e:
            raise SchedulerCountFailed(f"Failed to count tasks: {type(e).__name__}: {e}") from e
        return tuple(counts)  # type: ignore[return-value]

    def create_task_container(self, name: str) -> ContainerRef:
        family = self.families[name]
        container_name = f"f12-{name}-{secrets.token_hex(3)}"
        container = self.client().containers.run(
            family,
            detach=True,
            name=container_name,
            network=self.network,
            labels={TASK_LABEL: name, FAMILY_LABEL: family},
            # Scaling is ours; keep Docker's restart policy out of the picture.
            restart_policy={"Name": "no"},
        )
        return ContainerRef(id=container.id, name=container_name)

    def remove_container(self, container_id: str) -> None:
        try:
            self.client().containers.get(container_id).remove(force=True)
        except NotFound:
            return

    def stop_start_n_tasks(self, name: str, task: TaskClass) -> bool:
        if name not in self.families:
            raise SchedulerReconcileFailed(f"Unknown task {name}")
        try:
            running = self.list_task_containers(name)
        except BACKEND_ERRORS as e:
            raise SchedulerReconcileFailed(f"Failed to list containers for {name}: {type(e).__name__}: {e}") from e

        task.running = len(running)
        task.requested = task.demand
        if len(running) == task.demand:
            return self.gate.ready

        self.gate.busy()
        self._worker = Thread(target=self._scale, args=(name, running, task.demand), daemon=True)
        self._worker.start()
        return self.gate.ready

    def _scale(self, name: str, running: list[ContainerRef], target: int) -> None:
        try:
            extra = len(running) - target
            if extra > 0:
                # Docker lists newest first; those go first.
                for ref in running[:extra]:
                    self.remove_container(ref.id)
                db.log_event("INFO", f"Stopped {extra} containers", task=name)
                time.sleep(self.stop_pause_s)

            missing = target - len(running)
            for _ in range(max(0, missing)):
                self.create_task_container(name)
            if missing > 0:
                db.log_event("INFO", f"Started {missing} containers", task=name)
        except BACKEND_ERRORS as e:
            db.log_event("ERROR", f"Scaling to {target} failed: {type(e).__name__}: {e}", task=name)
        finally:
            self.gate.release()

    def poll_ready(self) -> bool:
        return self.gate.ready
