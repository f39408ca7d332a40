"""
Engine configuration - environment driven, read once at import.
Getter functions re-read values that tests and operators toggle at runtime.
"""

import os
from pathlib import Path

# Debug flag gates API docs and the verification endpoint
DEBUG = os.getenv("DEBUG", "true").lower() == "true"

# Audit trail and follow-up bookkeeping
AUDIT_LOG_LIMIT = int(os.getenv("AUDIT_LOG_LIMIT", "100"))
FOLLOW_UP_DUE_HOURS = int(os.getenv("FOLLOW_UP_DUE_HOURS", "24"))
DEFAULT_ACTING_USER = os.getenv("DEFAULT_ACTING_USER", "Field Officer")

# Health monitor (default disabled loop, on-demand checks always work)
HEARTBEAT_ENABLED = os.getenv("HEARTBEAT_ENABLED", "false").lower() == "true"
HEALTH_CHECK_INTERVAL_SEC = int(os.getenv("HEALTH_CHECK_INTERVAL_SEC", "60"))

# Demo / simulation mode
DEMO_MODE = os.getenv("DEMO_MODE", "false").lower() == "true"
SIMULATION_WEIGHTS = os.getenv("SIMULATION_WEIGHTS", "0.4,0.4,0.2")  # done,follow-up,pending

# Initial client list supplied by the configuration layer
CLIENT_SEED_PATH = os.getenv("CLIENT_SEED_PATH", "./data/clients.json")

# Opening baseline for the pending summary
OPENING_CURRENT_PENDING = float(os.getenv("OPENING_CURRENT_PENDING", "200000"))
OPENING_PREVIOUS_PENDING = float(os.getenv("OPENING_PREVIOUS_PENDING", "15500"))
OPENING_COLLECTION_COUNT = int(os.getenv("OPENING_COLLECTION_COUNT", "3"))
OPENING_COLLECTION_AMOUNT = float(os.getenv("OPENING_COLLECTION_AMOUNT", "12500"))
OPENING_FOLLOW_UPS_COMPLETED = int(os.getenv("OPENING_FOLLOW_UPS_COMPLETED", "43"))
OPENING_FOLLOW_UPS_TOTAL = int(os.getenv("OPENING_FOLLOW_UPS_TOTAL", "45"))

# Version string
VERSION = "1.0.0"


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "true").lower() == "true"


def is_heartbeat_enabled():
    """Check if the periodic health loop is enabled."""
    return HEARTBEAT_ENABLED


def get_health_check_interval():
    """Get health check interval in seconds."""
    return HEALTH_CHECK_INTERVAL_SEC


def get_audit_log_limit():
    return AUDIT_LOG_LIMIT


def get_follow_up_due_hours():
    return FOLLOW_UP_DUE_HOURS


def is_demo_mode_enabled():
    """Check if simulation is allowed at startup."""
    return DEMO_MODE


def get_client_seed_path():
    return Path(CLIENT_SEED_PATH)


def check_simulation_weights(weights):
    """
    Validate a (done, follow-up, pending) weight triple and return it as floats.

    Raises ValueError when there are not three non-negative numbers
    with a positive sum.
    """
    weights = tuple(float(w) for w in weights)
    if len(weights) != 3:
        raise ValueError(f"Simulation weights need 3 values, got {len(weights)}: {weights}")
    if any(w < 0 for w in weights):
        raise ValueError(f"Simulation weights must be non-negative: {weights}")
    if sum(weights) <= 0:
        raise ValueError(f"Simulation weights must not all be zero: {weights}")

    return weights


def parse_simulation_weights(raw: str = None):
    """Parse SIMULATION_WEIGHTS ("done,follow-up,pending") into a weight tuple."""
    raw = SIMULATION_WEIGHTS if raw is None else raw
    return check_simulation_weights(p.strip() for p in raw.split(","))


def get_opening_summary():
    """Opening baseline the pending summary starts from."""
    return {
        "current_pending": OPENING_CURRENT_PENDING,
        "previous_pending": OPENING_PREVIOUS_PENDING,
        "collection_count": OPENING_COLLECTION_COUNT,
        "collection_amount": OPENING_COLLECTION_AMOUNT,
        "follow_ups_completed": OPENING_FOLLOW_UPS_COMPLETED,
        "follow_ups_total": OPENING_FOLLOW_UPS_TOTAL,
    }


def validate_engine_config(audit_log_limit=None, follow_up_due_hours=None,
                           simulation_weights=None, baseline=None):
    """
    Validate the settings an engine will run with and return any issues.

    Arguments left as None fall back to the environment values.
    """
    issues = []

    audit_log_limit = AUDIT_LOG_LIMIT if audit_log_limit is None else audit_log_limit
    if audit_log_limit < 1:
        issues.append(f"Audit log limit must be >= 1, got {audit_log_limit}")

    follow_up_due_hours = FOLLOW_UP_DUE_HOURS if follow_up_due_hours is None else follow_up_due_hours
    if follow_up_due_hours < 0:
        issues.append(f"Follow-up due hours must be >= 0, got {follow_up_due_hours}")

    try:
        if simulation_weights is None:
            parse_simulation_weights()
        else:
            check_simulation_weights(simulation_weights)
    except ValueError as e:
        source = "SIMULATION_WEIGHTS" if simulation_weights is None else "simulation_weights"
        issues.append(f"Invalid {source}: {e}")

    baseline = get_opening_summary() if baseline is None else baseline
    if baseline["current_pending"] < 0:
        issues.append("Opening current_pending must be >= 0")

    if baseline["follow_ups_completed"] > baseline["follow_ups_total"]:
        issues.append("Opening follow_ups_completed cannot exceed follow_ups_total")

    return issues


def validate_heartbeat_config():
    """Validate heartbeat configuration and return any issues."""
    issues = []

    if HEALTH_CHECK_INTERVAL_SEC < 1:
        issues.append("HEALTH_CHECK_INTERVAL_SEC must be >= 1")

    return issues
