"""In-process request metrics, one entry per route template.

Chaves usam o template da rota (`GET /api/plans/{plan_id}/reviews/{review_id}`),
nunca o caminho real, para que ids de plano e de revisão não criem uma
entrada nova a cada requisição.
"""

from __future__ import annotations

import math
import threading
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Deque

UNMATCHED_ROUTE = "<unmatched>"


@dataclass
class RouteStats:
    latencies_ms: Deque[float]
    count: int = 0
    status_classes: Counter = field(default_factory=Counter)


def status_class(status_code: int) -> str:
    return f"{status_code // 100}xx"


class MetricsRegistry:
    def __init__(self, window_size: int = 200) -> None:
        self._window_size = window_size
        self._lock = threading.Lock()
        self._routes: dict[str, RouteStats] = {}

    def record(self, method: str, route: str, status_code: int, latency_ms: float) -> None:
        key = f"{method} {route}"
        with self._lock:
            stats = self._routes.get(key)
            if stats is None:
                stats = RouteStats(latencies_ms=deque(maxlen=self._window_size))
                self._routes[key] = stats
            stats.latencies_ms.append(latency_ms)
            stats.count += 1
            stats.status_classes[status_class(status_code)] += 1

    def snapshot(self) -> dict[str, dict[str, object]]:
        """Per-route count, p95 latency, status-class counts and 5xx errors."""

        with self._lock:
            return {
                key: {
                    "count": stats.count,
                    "p95_ms": round(percentile(stats.latencies_ms, 95), 2),
                    "status": dict(stats.status_classes),
                    "errors": stats.status_classes.get("5xx", 0),
                }
                for key, stats in self._routes.items()
            }

    def reset(self) -> None:
        with self._lock:
            self._routes.clear()


def percentile(values, pct: float) -> float:
    """Nearest-rank percentile; 0.0 for an empty window."""

    ordered = sorted(values)
    if not ordered:
        return 0.0
    rank = max(1, math.ceil(pct / 100 * len(ordered)))
    return ordered[rank - 1]


registry = MetricsRegistry()
