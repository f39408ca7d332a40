"""
Aggregate views over workflow state.

The engine updates the pending summary incrementally on every transition.
The scan functions here rebuild the same numbers from scratch so the
incremental values can be verified or repaired.
"""

from typing import Dict, Iterable, List

from .schema import (
    ClientRecord, CollectionRecord, EngineSnapshot, FollowUpTask, PendingSummary,
)


def calculate_priority(attempt_count: int) -> str:
    """Follow-up priority from a client's retry counter."""
    if attempt_count >= 3:
        return "high"
    if attempt_count >= 2:
        return "medium"
    return "low"


def apply_collection(summary: PendingSummary, amount: float) -> None:
    """Book a collection: today's totals go up, current pending goes down but never below zero."""
    summary.collection_count += 1
    summary.collection_amount += amount
    summary.current_pending = max(0.0, summary.current_pending - amount)


def register_follow_up(summary: PendingSummary) -> None:
    summary.follow_ups_total += 1


def completion_ratio(summary: PendingSummary) -> float:
    """Completed follow-ups over total follow-ups; 0.0 when none exist."""
    if summary.follow_ups_total == 0:
        return 0.0
    return summary.follow_ups_completed / summary.follow_ups_total


def scan_stage_counts(clients: Iterable[ClientRecord], stage_ids: Iterable[str]) -> Dict[str, int]:
    """Per-stage occupancy computed from each client's current_box."""
    counts = {stage_id: 0 for stage_id in stage_ids}
    for client in clients:
        counts[client.current_box] = counts.get(client.current_box, 0) + 1
    return counts


def recompute_summary(baseline: PendingSummary, collections: Iterable[CollectionRecord],
                      follow_ups: Iterable[FollowUpTask]) -> PendingSummary:
    """
    Rebuild the pending summary from its opening baseline.

    The collection ledger is replayed in order with the same zero clamp the
    incremental path applies, so the result matches exactly.
    """
    summary = PendingSummary.from_dict(baseline.to_dict())

    for record in collections:
        apply_collection(summary, record.amount)

    for task in follow_ups:
        register_follow_up(summary)
        if task.status == "completed":
            summary.follow_ups_completed += 1

    return summary


def total_occupancy(snapshot: EngineSnapshot) -> int:
    return sum(stage.count for stage in snapshot.stages.values())


def verify(snapshot: EngineSnapshot) -> List[str]:
    """
    Compare incrementally maintained state against a full scan.

    Returns:
        List of human-readable issues; empty when everything agrees.
    """
    issues = []

    # Stage lists vs client records
    scanned = scan_stage_counts(snapshot.clients.values(), snapshot.stages.keys())
    for stage_id, stage in snapshot.stages.items():
        if stage.count != scanned.get(stage_id, 0):
            issues.append(
                f"Stage '{stage_id}' lists {stage.count} clients, scan finds {scanned.get(stage_id, 0)}"
            )

    unknown = set(scanned) - set(snapshot.stages)
    for stage_id in sorted(unknown):
        issues.append(f"Clients reference unknown stage '{stage_id}'")

    # Membership: each client exactly once, in the stage it claims
    seen: Dict[str, str] = {}
    for stage_id, stage in snapshot.stages.items():
        for client_id in stage.clients:
            if client_id in seen:
                issues.append(f"Client {client_id} listed in both '{seen[client_id]}' and '{stage_id}'")
                continue
            seen[client_id] = stage_id

            client = snapshot.clients.get(client_id)
            if client is None:
                issues.append(f"Stage '{stage_id}' lists unknown client {client_id}")
            elif client.current_box != stage_id:
                issues.append(
                    f"Client {client_id} listed in '{stage_id}' but current_box is '{client.current_box}'"
                )

    # Pending summary vs replay
    expected = recompute_summary(snapshot.baseline, snapshot.collections, snapshot.follow_ups)
    for name, value in expected.to_dict().items():
        actual = getattr(snapshot.summary, name)
        if actual != value:
            issues.append(f"Summary field '{name}' is {actual}, recompute gives {value}")

    return issues
