"""
Health monitor - compares stage occupancy against the number of known clients.
Occupancy above the client total is a bookkeeping bug; it is reported, never corrected.
"""

from typing import Optional

from . import heartbeat
from .config import get_health_check_interval
from .schema import HEALTH_HEALTHY, HEALTH_ATTENTION, HealthState

HEALTH_TASK_NAME = "health_check"


def evaluate_health(stage_occupancy: int, total_clients: int) -> str:
    """healthy when occupancy <= total clients, attention-needed otherwise."""
    if stage_occupancy <= total_clients:
        return HEALTH_HEALTHY
    return HEALTH_ATTENTION


class HealthMonitor:
    """Runs the engine's health check on the heartbeat loop."""

    def __init__(self, engine, interval_sec: Optional[int] = None):
        self.engine = engine
        self.interval_sec = interval_sec or get_health_check_interval()
        self.last_result: Optional[HealthState] = None

    def check(self) -> HealthState:
        self.last_result = self.engine.check_health()
        return self.last_result

    def register(self):
        """Register the periodic check with the heartbeat scheduler."""
        heartbeat.register_task(HEALTH_TASK_NAME, self.interval_sec, self.check)

    def unregister(self):
        heartbeat.unregister_task(HEALTH_TASK_NAME)
