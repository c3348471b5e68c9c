from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


DEMAND_MODELS = {"RNG", "CONSUL"}
SCHEDULERS = {"DOCKER", "COMPOSE", "MARATHON", "MESOS"}


@dataclass(frozen=True)
class Settings:
    # Collaborator selection
    demand_model: str = os.getenv("F12_DEMAND_MODEL", "RNG").upper()
    scheduler: str = os.getenv("F12_SCHEDULER", "DOCKER").upper()
    send_state: bool = _env_bool("F12_SEND_STATE_TO_API", True)

    # Task classes
    p1_task: str = os.getenv("F12_PRIORITY1_TASK", "priority1-demand")
    p2_task: str = os.getenv("F12_PRIORITY2_TASK", "priority2-demand")
    p1_family: str = os.getenv("F12_PRIORITY1_FAMILY", "force12io/priority-1")
    p2_family: str = os.getenv("F12_PRIORITY2_FAMILY", "force12io/priority-2")

    # Policy
    tick_interval_ms: int = _env_int("F12_TICK_INTERVAL_MS", 100)
    ticks_per_push: int = _env_int("F12_TICKS_PER_PUSH", 5)
    max_containers: int = _env_int("F12_MAX_CONTAINERS", 9)
    p1_demand_start: int = _env_int("F12_P1_DEMAND_START", 5)
    p2_demand_start: int = _env_int("F12_P2_DEMAND_START", 4)
    stop_pause_ms: int = _env_int("F12_STOP_PAUSE_MS", 250)

    # Random-walk demand
    rng_maximum: int = _env_int("F12_RNG_MAXIMUM", 9)
    rng_delta: int = _env_int("F12_RNG_DELTA", 3)

    # Remote endpoints
    api_address: str = os.getenv("API_ADDRESS", "https://force12-windtunnel.herokuapp.com")
    account_id: str = os.getenv("F12_ACCOUNT_ID", "5k5gk")
    consul_address: str = os.getenv("CONSUL_ADDRESS", "http://localhost:8500")
    marathon_address: str = os.getenv("MARATHON_ADDRESS", "http://localhost:8080")
    docker_network: str = os.getenv("F12_DOCKER_NETWORK", "f12")
    http_timeout_s: int = _env_int("F12_HTTP_TIMEOUT_S", 5)

    # Event log
    db_path: str = os.getenv("F12_DB_PATH", "f12.db")

    def validate(self) -> None:
        if self.demand_model not in DEMAND_MODELS:
            raise ValueError(f"Bad value for F12_DEMAND_MODEL: {self.demand_model}")
        if self.scheduler not in SCHEDULERS:
            raise ValueError(f"Bad value for F12_SCHEDULER: {self.scheduler}")
        if self.max_containers < 0:
            raise ValueError("F12_MAX_CONTAINERS must be >= 0.")
        if self.tick_interval_ms <= 0 or self.ticks_per_push <= 0:
            raise ValueError("Tick interval and ticks per push must be positive.")


settings = Settings()
