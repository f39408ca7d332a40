"""
Aggregate tests - priority, collection clamp, completion ratio and full-scan verification.
"""

from datetime import datetime

import pytest

from boxflow.core.aggregates import (
    apply_collection, calculate_priority, completion_ratio,
    recompute_summary, scan_stage_counts, verify,
)
from boxflow.core.schema import ActingUser, CollectionRecord, PendingSummary

from conftest import make_baseline, make_client

USER = ActingUser(id="1", name="Tester")


@pytest.mark.parametrize("attempts, priority", [
    (0, "low"), (1, "low"), (2, "medium"), (3, "high"), (10, "high"),
])
def test_calculate_priority(attempts, priority):
    assert calculate_priority(attempts) == priority


class TestPendingSummary:
    """Incremental summary updates."""

    def test_apply_collection(self):
        summary = make_baseline(current_pending=5000.0)

        apply_collection(summary, 1200.0)

        assert summary.current_pending == 3800.0
        assert summary.collection_count == 1
        assert summary.collection_amount == 1200.0

    def test_apply_collection_clamps_at_zero(self):
        summary = make_baseline(current_pending=100.0)

        apply_collection(summary, 250.0)
        apply_collection(summary, 250.0)

        assert summary.current_pending == 0.0
        assert summary.collection_amount == 500.0

    def test_completion_ratio(self):
        summary = PendingSummary(0, 0, 0, 0, follow_ups_completed=43, follow_ups_total=45)
        assert completion_ratio(summary) == pytest.approx(43 / 45)

    def test_completion_ratio_without_follow_ups(self):
        assert completion_ratio(make_baseline()) == 0.0


class TestFullScan:
    """Rebuilding aggregates from scratch."""

    def test_scan_stage_counts(self):
        clients = [make_client("a", "trial-visit"), make_client("b", "trial-visit"),
                   make_client("c", "payment-visit")]

        counts = scan_stage_counts(clients, ["trial-visit", "payment-visit", "gst-visit-1"])

        assert counts == {"trial-visit": 2, "payment-visit": 1, "gst-visit-1": 0}

    def test_recompute_replays_clamp_in_order(self):
        baseline = make_baseline(current_pending=1000.0)
        ledger = [
            CollectionRecord("a", 800.0, datetime.now()),
            CollectionRecord("b", 800.0, datetime.now()),
            CollectionRecord("c", 100.0, datetime.now()),
        ]

        summary = recompute_summary(baseline, ledger, [])

        assert summary.current_pending == 0.0
        assert summary.collection_count == 3
        assert summary.collection_amount == 1700.0
        assert baseline.current_pending == 1000.0  # baseline untouched

    def test_recompute_matches_engine(self, engine):
        engine.record_outcome("c-pay", "payment-visit", "done", "", USER)
        engine.record_outcome("c-trial", "trial-visit", "follow-up", "", USER)
        engine.record_outcome("c-call", "user-payment-call", "follow-up", "", USER)

        snapshot = engine.snapshot()
        rebuilt = recompute_summary(snapshot.baseline, snapshot.collections, snapshot.follow_ups)

        assert rebuilt == snapshot.summary
        assert rebuilt.follow_ups_total == 2

    def test_verify_clean_state(self, engine):
        assert verify(engine.snapshot()) == []

    def test_verify_detects_summary_drift(self, engine):
        snapshot = engine.snapshot()
        snapshot.summary.current_pending -= 1

        issues = verify(snapshot)

        assert len(issues) == 1
        assert "current_pending" in issues[0]

    def test_verify_detects_stage_drift(self, engine):
        snapshot = engine.snapshot()
        snapshot.stages["gst-visit-2"].clients.append("c-trial")

        issues = verify(snapshot)

        assert any("gst-visit-2" in issue for issue in issues)
        assert any("listed in both" in issue for issue in issues)

    def test_verify_detects_unknown_client(self, engine):
        snapshot = engine.snapshot()
        snapshot.stages["gst-visit-2"].clients.append("ghost")

        issues = verify(snapshot)

        assert any("unknown client ghost" in issue for issue in issues)
