"""
Shared fixtures for workflow engine tests.
"""

import random
from datetime import datetime

import pytest

from boxflow.core.engine import WorkflowEngine
from boxflow.core.schema import ClientRecord, PendingSummary

FIXED_NOW = datetime(2025, 3, 14, 10, 30, 0)


def make_client(client_id, box, attempt_count=0, pending_amount=1000.0, status="active",
                assigned_officer=None):
    return ClientRecord(
        id=client_id,
        name=f"Client {client_id}",
        unit=f"U-{client_id}",
        phone="9876500000",
        area="Zone A",
        status=status,
        current_box=box,
        pending_amount=pending_amount,
        start_date=FIXED_NOW,
        last_action_date=FIXED_NOW,
        attempt_count=attempt_count,
        assigned_officer=assigned_officer,
    )


def make_baseline(current_pending=10000.0):
    return PendingSummary(
        current_pending=current_pending,
        previous_pending=500.0,
        collection_count=0,
        collection_amount=0.0,
        follow_ups_completed=0,
        follow_ups_total=0,
    )


@pytest.fixture
def clients():
    return [
        make_client("c-trial", "trial-visit", status="new"),
        make_client("c-pay", "payment-visit", pending_amount=4000.0),
        make_client("c-unsub", "unsubscriber-visit"),
        make_client("c-gst", "gst-visit-1", attempt_count=1),
        make_client("c-call", "user-payment-call", attempt_count=2, assigned_officer="Rajesh Kumar"),
    ]


@pytest.fixture
def engine(clients):
    """Engine over a handful of clients with a fixed clock and seeded RNG."""
    return WorkflowEngine(
        clients,
        baseline=make_baseline(),
        audit_log_limit=100,
        follow_up_due_hours=24,
        demo_mode=False,
        rng=random.Random(7),
        clock=lambda: FIXED_NOW,
    )
