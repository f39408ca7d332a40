"""
Heartbeat scheduler - runs registered periodic tasks on a cooperative loop.
The health monitor registers here; tasks only read engine state.
"""

import time
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .config import is_heartbeat_enabled, validate_heartbeat_config
from ..util.logging import logger

MAX_CYCLE_SEC = 10.0
POLL_SEC = 0.1


@dataclass
class ScheduledTask:
    name: str
    interval: int
    func: Callable[[], None]
    last_run: Optional[float] = None  # time.monotonic() of the last successful run

    def is_due(self, now: float) -> bool:
        return self.last_run is None or now - self.last_run >= self.interval


tasks: Dict[str, ScheduledTask] = {}
running = False
shutdown_event: Optional[threading.Event] = None
_thread: Optional[threading.Thread] = None


def register_task(name: str, interval_sec: int, func: Callable[[], None]) -> ScheduledTask:
    """
    Register a task to be executed periodically. An existing task with the
    same name is replaced.

    Args:
        name: Unique task identifier
        interval_sec: How often to run this task in seconds
        func: Function to call (should be fast and not block)
    """
    if not callable(func):
        raise ValueError(f"Task function must be callable: {func}")

    if interval_sec < 1:
        raise ValueError(f"Interval must be >= 1 second: {interval_sec}")

    issues = validate_heartbeat_config()
    if issues:
        raise ValueError(f"Heartbeat configuration invalid: {issues}")

    task = ScheduledTask(name=name, interval=interval_sec, func=func)
    tasks[name] = task
    logger.info(f"Registered heartbeat task '{name}' (every {interval_sec}s)")
    return task


def unregister_task(name: str):
    if tasks.pop(name, None) is not None:
        logger.info(f"Unregistered heartbeat task '{name}'")


def run_task(task: ScheduledTask):
    """Execute one task; last_run only advances on success."""
    started = time.monotonic()

    try:
        task.func()
    except Exception as e:
        finished = time.monotonic()
        logger.log_heartbeat_task(task.name, started, finished, status="failed")
        raise RuntimeError(f"Task '{task.name}' failed after {finished - started:.2f}s: {e}") from e

    finished = time.monotonic()
    task.last_run = finished
    logger.log_heartbeat_task(task.name, started, finished)


def run_due_tasks(now: Optional[float] = None) -> int:
    """Run every due task once. A failing task is logged and the rest still run."""
    now = time.monotonic() if now is None else now
    ran = 0
    for task in list(tasks.values()):
        if not task.is_due(now):
            continue
        ran += 1
        try:
            run_task(task)
        except RuntimeError as e:
            logger.error(f"Heartbeat task '{task.name}' failed: {e}")
    return ran


def start():
    """Run the heartbeat loop on the calling thread until stop() is called."""
    global running, shutdown_event

    if not is_heartbeat_enabled():
        logger.info("Heartbeat disabled (HEARTBEAT_ENABLED=false). Skipping start.")
        return

    if running:
        raise RuntimeError("Heartbeat already running")

    issues = validate_heartbeat_config()
    if issues:
        raise ValueError(f"Heartbeat configuration invalid: {issues}")

    running = True
    shutdown_event = threading.Event()
    logger.info(f"Starting heartbeat loop with tasks: {sorted(tasks)}")

    try:
        while running and not shutdown_event.is_set():
            cycle_start = time.monotonic()
            run_due_tasks(cycle_start)

            elapsed = time.monotonic() - cycle_start
            if elapsed > MAX_CYCLE_SEC:
                logger.warning(f"Heartbeat cycle too slow ({elapsed:.1f}s). Exiting.")
                break

            shutdown_event.wait(POLL_SEC)
    except KeyboardInterrupt:
        logger.info("Heartbeat interrupted by user")
    finally:
        running = False
        logger.info("Heartbeat loop stopped")


def start_in_background() -> Optional[threading.Thread]:
    """Run start() on a daemon thread. Returns None when the heartbeat is disabled."""
    global _thread

    if not is_heartbeat_enabled():
        logger.info("Heartbeat disabled (HEARTBEAT_ENABLED=false). Skipping start.")
        return None

    if _thread is not None and _thread.is_alive():
        raise RuntimeError("Heartbeat already running")

    _thread = threading.Thread(target=start, name="heartbeat", daemon=True)
    _thread.start()
    return _thread


def stop():
    """Signal the loop to exit and wait briefly for the background thread."""
    global running, _thread

    if not running:
        logger.info("Heartbeat not running")
        return

    logger.info("Stopping heartbeat loop...")
    running = False
    if shutdown_event is not None:
        shutdown_event.set()

    if _thread is not None and _thread is not threading.current_thread():
        _thread.join(timeout=1.0)
        _thread = None
