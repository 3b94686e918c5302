"""
Reclamation sweep metrics.

Simple in-memory counters exposed by GET /scheduler/status.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime

logger = logging.getLogger(__name__)


@dataclass
class SweepMetrics:
    """In-memory metrics for the reclamation scheduler."""

    sweeps_total: int = 0
    orders_reclaimed_total: int = 0
    order_failures_total: int = 0
    sweep_errors: int = 0
    last_sweep_at: datetime | None = None
    last_sweep_reclaimed: int = 0
    last_sweep_duration_ms: float = 0.0
    last_schedule: str | None = None
    last_heartbeat: float = field(default_factory=time.monotonic)

    def record_sweep(self, *, reclaimed: int, failures: int, duration_ms: float, schedule: str) -> None:
        self.sweeps_total += 1
        self.orders_reclaimed_total += reclaimed
        self.order_failures_total += failures
        self.last_sweep_at = datetime.utcnow()
        self.last_sweep_reclaimed = reclaimed
        self.last_sweep_duration_ms = duration_ms
        self.last_schedule = schedule

    def record_sweep_error(self) -> None:
        self.sweep_errors += 1

    def heartbeat(self) -> None:
        self.last_heartbeat = time.monotonic()

    def to_dict(self) -> dict:
        return {
            "sweeps_total": self.sweeps_total,
            "orders_reclaimed_total": self.orders_reclaimed_total,
            "order_failures_total": self.order_failures_total,
            "sweep_errors": self.sweep_errors,
            "last_sweep_at": self.last_sweep_at.isoformat() if self.last_sweep_at else None,
            "last_sweep_reclaimed": self.last_sweep_reclaimed,
            "last_sweep_duration_ms": round(self.last_sweep_duration_ms, 1),
            "last_schedule": self.last_schedule,
            "heartbeat_age_seconds": round(time.monotonic() - self.last_heartbeat, 1),
        }


# Singleton metrics instance
_metrics: SweepMetrics | None = None


def get_sweep_metrics() -> SweepMetrics:
    global _metrics
    if _metrics is None:
        _metrics = SweepMetrics()
    return _metrics


def reset_sweep_metrics() -> SweepMetrics:
    """Fresh counters (used by tests)."""
    global _metrics
    _metrics = SweepMetrics()
    return _metrics
