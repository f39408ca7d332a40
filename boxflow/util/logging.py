"""
Structured operation logging for the workflow engine.
Transitions, follow-ups, collections, rejections and health checks share one line format.
"""

import logging
from typing import Any, Dict


def _truncate(value: str, limit: int = 50) -> str:
    return value[:limit] + "..." if len(value) > limit else value


class StructuredLogger:
    """Structured logger for workflow operations including heartbeat and health checks."""

    def __init__(self, name: str = "boxflow"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_transition(self, client_id: str, from_box: str, to_box: str, outcome: str,
                       user_name: str, remark: str = None):
        """Log one applied transition."""
        details = {
            "client_id": client_id,
            "from_box": from_box,
            "to_box": to_box,
            "outcome": outcome,
            "user": user_name,
        }
        if remark:
            details["remark"] = _truncate(remark)

        status = "stayed" if from_box == to_box else "moved"
        self.log_operation("workflow.transition", status, details)

    def log_follow_up(self, task_id: str, client_id: str, task_type: str, priority: str):
        """Log follow-up task creation."""
        self.log_operation("workflow.follow_up", "created", {
            "task_id": task_id,
            "client_id": client_id,
            "task_type": task_type,
            "priority": priority,
        })

    def log_collection(self, client_id: str, amount: float, current_pending: float):
        """Log a collection update."""
        self.log_operation("workflow.collection", "recorded", {
            "client_id": client_id,
            "amount": amount,
            "current_pending": current_pending,
        })

    def log_rejection(self, operation: str, reason: str, details: Dict[str, Any] = None):
        """Log a rejected command. Nothing was mutated."""
        log_details = {"reason": _truncate(reason, 100)}
        if details:
            log_details.update(details)

        self.log_operation(operation, "rejected", log_details, level=logging.WARNING)

    def log_simulation(self, stage_id: str, client_id: str, outcome: str):
        """Log a simulated action picked in demo mode."""
        self.log_operation("workflow.simulate", "picked", {
            "stage_id": stage_id,
            "client_id": client_id,
            "outcome": outcome,
        })

    def log_health_check(self, status: str, stage_occupancy: int, total_clients: int):
        """Log health check outcome. Degraded results are warnings."""
        level = logging.INFO if status == "healthy" else logging.WARNING
        self.log_operation("health.check", status, {
            "stage_occupancy": stage_occupancy,
            "total_clients": total_clients,
        }, level=level)

    def log_heartbeat_task(self, task_name: str, start_time: float, end_time: float, status: str = "success", details: Dict[str, Any] = None):
        """Log heartbeat task execution."""
        duration_ms = round((end_time - start_time) * 1000, 2)
        log_details = {"duration_ms": duration_ms}
        if details:
            log_details.update(details)
        elif status == "success":
            log_details["message"] = f"Heartbeat task '{task_name}' completed in {duration_ms}ms"
        elif status == "failed":
            log_details["message"] = f"Heartbeat task '{task_name}' failed after {duration_ms}ms"

        self.log_operation(f"heartbeat.{task_name}", status, log_details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()
