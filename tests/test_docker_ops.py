import pytest
import requests
from docker.errors import APIError, ImageNotFound, NotFound

from f12 import db
from f12.docker_ops import DockerScheduler, validate_task_name
from f12.errors import SchedulerCountFailed, SchedulerInitFailed, SchedulerReconcileFailed
from f12.runtime import TaskClass


class _Container:
    def __init__(self, cid, name, labels):
        self.id = cid
        self.name = name
        self.labels = labels
        self.owner = None

    def remove(self, force=False):
        self.owner.pop(self.id, None)


class _Containers:
    def __init__(self):
        self.store = {}
        self.fail_run = False
        self.daemon_gone = False

    def run(self, image, detach, name, network, labels, restart_policy):
        if self.fail_run:
            raise APIError("no space left")
        c = _Container(f"id-{len(self.store)}-{name}", name, labels)
        c.owner = self.store
        self.store[c.id] = c
        return c

    def list(self, filters=None):
        if self.daemon_gone:
            raise requests.exceptions.ConnectionError("daemon gone")
        # Like the daemon: newest first.
        wanted = [lbl.split("=", 1) for lbl in (filters or {}).get("label", [])]
        return [c for c in reversed(list(self.store.values())) if all(c.labels.get(k) == v for k, v in wanted)]

    def get(self, cid):
        if cid not in self.store:
            raise NotFound(f"No such container: {cid}")
        return self.store[cid]


class _Networks:
    def __init__(self):
        self.names = set()

    def get(self, name):
        if name not in self.names:
            raise NotFound(f"network {name} not found")

    def create(self, name, driver):
        self.names.add(name)


class _Images:
    def __init__(self):
        self.present = set()

    def get(self, image):
        if image not in self.present:
            raise ImageNotFound(f"No such image: {image}")

    def pull(self, image):
        self.present.add(image)


class FakeDocker:
    def __init__(self, available=True):
        self.available = available
        self.containers = _Containers()
        self.networks = _Networks()
        self.images = _Images()

    def ping(self):
        if not self.available:
            raise APIError("daemon not running")
        return True


def _scheduler(client):
    return DockerScheduler({"p1": "img/p1", "p2": "img/p2"}, network="f12", stop_pause_s=0, client=client)


def _scale(sched, name, demand):
    task = TaskClass(name, sched.families[name], demand=demand)
    sched.stop_start_n_tasks(name, task)
    assert sched.gate.wait(2.0)
    return task


def test_init_creates_network_and_pulls_image():
    client = FakeDocker()
    sched = _scheduler(client)

    sched.init_scheduler("p1")
    sched.init_scheduler("p1")

    assert client.networks.names == {"f12"}
    assert client.images.present == {"img/p1"}


def test_init_fails_without_docker():
    with pytest.raises(SchedulerInitFailed):
        _scheduler(FakeDocker(available=False)).init_scheduler("p1")


def test_scale_up_and_down_per_class():
    client = FakeDocker()
    sched = _scheduler(client)

    task = _scale(sched, "p1", 3)
    assert task.requested == 3
    _scale(sched, "p2", 2)
    assert sched.poll_ready() is True
    assert sched.count_all_tasks() == (3, 2)

    newest_first = [c.id for c in client.containers.list({"label": ["f12.task=p1"]})]
    _scale(sched, "p1", 1)
    after = [c.id for c in client.containers.list({"label": ["f12.task=p1"]})]
    # The oldest container survives a scale-down.
    assert after == newest_first[-1:]
    assert sched.count_all_tasks() == (1, 2)


def test_no_change_returns_ready_immediately():
    sched = _scheduler(FakeDocker())
    task = TaskClass("p1", "img/p1", demand=0)
    assert sched.stop_start_n_tasks("p1", task) is True


def test_failed_start_releases_gate_and_is_logged():
    client = FakeDocker()
    client.containers.fail_run = True
    sched = _scheduler(client)

    _scale(sched, "p1", 2)

    assert sched.poll_ready() is True
    assert any("Scaling to 2 failed" in e["message"] for e in db.latest_events(task="p1"))


def test_task_names_are_validated():
    validate_task_name("priority1-demand")
    with pytest.raises(ValueError):
        validate_task_name("Bad Name!")


def test_lost_daemon_maps_to_scheduler_errors():
    client = FakeDocker()
    sched = _scheduler(client)
    client.containers.daemon_gone = True

    with pytest.raises(SchedulerCountFailed):
        sched.count_all_tasks()
    with pytest.raises(SchedulerReconcileFailed):
        sched.stop_start_n_tasks("p1", TaskClass("p1", "img/p1", demand=2))
    assert sched.poll_ready() is True
