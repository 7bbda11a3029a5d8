from __future__ import annotations

from dataclasses import dataclass
from threading import Lock


@dataclass
class RequestCounter:
    total_requests: int = 0
    total_duration_ms: float = 0.0
    error_count: int = 0
    rewritten: int = 0

    def record(self, status_code: int, duration_ms: float, rewritten: bool) -> None:
        self.total_requests += 1
        self.total_duration_ms += duration_ms
        if status_code >= 400:
            self.error_count += 1
        if rewritten:
            self.rewritten += 1

    def as_dict(self) -> dict[str, float | int]:
        avg = self.total_duration_ms / self.total_requests if self.total_requests else 0.0
        return {
            "total_requests": self.total_requests,
            "error_count": self.error_count,
            "rewritten_requests": self.rewritten,
            "avg_duration_ms": round(avg, 2),
        }


class InMemoryRequestMetrics:
    """Request counters per endpoint and per edge-resolved tenant slug."""

    def __init__(self) -> None:
        self._endpoints: dict[tuple[str, str], RequestCounter] = {}
        self._tenants: dict[str, RequestCounter] = {}
        self._lock = Lock()

    def observe(
        self,
        *,
        endpoint: str,
        method: str,
        status_code: int,
        duration_ms: float,
        tenant_slug: str | None = None,
        rewritten: bool = False,
    ) -> None:
        with self._lock:
            counter = self._endpoints.setdefault((endpoint, method), RequestCounter())
            counter.record(status_code, duration_ms, rewritten)
            if tenant_slug:
                tenant_counter = self._tenants.setdefault(tenant_slug, RequestCounter())
                tenant_counter.record(status_code, duration_ms, rewritten)

    def snapshot(self) -> dict[str, dict[str, float | int]]:
        with self._lock:
            return {f"{method} {endpoint}": counter.as_dict() for (endpoint, method), counter in self._endpoints.items()}

    def snapshot_tenant(self, tenant_slug: str) -> dict[str, float | int]:
        with self._lock:
            counter = self._tenants.get(tenant_slug)
            return counter.as_dict() if counter else RequestCounter().as_dict()

    def reset(self) -> None:
        with self._lock:
            self._endpoints.clear()
            self._tenants.clear()


request_metrics = InMemoryRequestMetrics()
