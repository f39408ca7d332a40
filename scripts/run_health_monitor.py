#!/usr/bin/env python3
"""
Standalone health monitor - loads the seed clients and runs the periodic health check.
Optionally drives demo traffic so the check has something to watch.
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from boxflow.core import heartbeat
from boxflow.core.config import get_health_check_interval, is_heartbeat_enabled
from boxflow.core.errors import ConfigurationError
from boxflow.core.health import HealthMonitor
from boxflow.core.seed import build_engine
from boxflow.util.logging import logger


def simulation_task(engine):
    """Apply one simulated action to every non-empty stage."""
    def run():
        for stage in engine.list_stages():
            if stage["count"]:
                engine.simulate(stage["id"])
    return run


def main():
    parser = argparse.ArgumentParser(description="Run the workflow health monitor")
    parser.add_argument("--seed", type=Path, default=None, help="Client seed JSON (defaults to CLIENT_SEED_PATH)")
    parser.add_argument("--simulate-every", type=int, default=0,
                        help="Seconds between simulated rounds (0 disables simulation)")
    args = parser.parse_args()

    if not is_heartbeat_enabled():
        logger.error("Health monitor requires HEARTBEAT_ENABLED=true")
        sys.exit(1)

    try:
        engine = build_engine(args.seed, demo_mode=args.simulate_every > 0)

        monitor = HealthMonitor(engine)
        monitor.register()
        logger.info(f"Health check scheduled every {get_health_check_interval()} seconds")

        if args.simulate_every > 0:
            heartbeat.register_task("demo_simulation", args.simulate_every, simulation_task(engine))

        heartbeat.start()

    except KeyboardInterrupt:
        logger.info("Shutting down")
        heartbeat.stop()
    except ConfigurationError as e:
        logger.error(f"Cannot start: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
