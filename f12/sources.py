from __future__ import annotations

import random

import httpx

from .errors import DemandQueryFailed


class RandomWalkDemand:
    """Random demand for priority-1 that drifts by at most `delta` per query.

    Asking for the complement class returns whatever capacity priority-1
    leaves, without moving the walk.
    """

    def __init__(
        self,
        maximum: int = 9,
        delta: int = 3,
        complement: str | None = None,
        start: int | None = None,
        rng: random.Random | None = None,
    ):
        if maximum < 0 or delta < 0:
            raise ValueError("maximum and delta must be >= 0")
        self.maximum = maximum
        self.delta = delta
        self.complement = complement
        self.current_demand = maximum // 2 if start is None else max(0, min(maximum, start))
        self._rng = rng or random.Random()

    def get_demand(self, name: str) -> int:
        if name == self.complement:
            return self.maximum - self.current_demand
        step = self._rng.randint(-self.delta, self.delta)
        self.current_demand = max(0, min(self.maximum, self.current_demand + step))
        return self.current_demand


class ConsulDemand:
    """Reads demand from the Consul KV store, one key per task class."""

    def __init__(self, address: str, timeout_s: float = 5.0, client: httpx.Client | None = None):
        self.address = address.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout_s, follow_redirects=False)

    def get_demand(self, name: str) -> int:
        url = f"{self.address}/v1/kv/{name}"
        try:
            resp = self._client.get(url, params={"raw": ""})
        except httpx.HTTPError as e:
            raise DemandQueryFailed(f"Consul request failed: {type(e).__name__}: {e}") from e

        # A key nobody has written yet means no demand.
        if resp.status_code == 404:
            return 0
        if resp.status_code != 200:
            raise DemandQueryFailed(f"Consul returned HTTP {resp.status_code} for {name}")
        try:
            value = int(resp.text.strip())
        except ValueError:
            raise DemandQueryFailed(f"Consul value for {name} is not an integer: {resp.text!r}") from None
        if value < 0:
            raise DemandQueryFailed(f"Consul value for {name} is negative: {value}")
        return value

    def close(self) -> None:
        self._client.close()
