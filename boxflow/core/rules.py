"""
Movement rules - the static (stage, outcome) table and its resolver.
Also carries the stage catalog and the per-stage outcome choices offered to action forms.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from .errors import ConfigurationError
from .schema import (
    MovementRule, StageInfo, OUTCOMES, STATUS_CHANGES,
    OUTCOME_DONE, OUTCOME_FOLLOW_UP, OUTCOME_PENDING,
)


STAGES: List[StageInfo] = [
    # Officer boxes
    StageInfo("payment-visit", "Payment Visit", "payment", "visit"),
    StageInfo("trial-visit", "Trial Visit", "trial", "visit"),
    StageInfo("gst-visit-1", "GST Visit", "gst", "visit"),
    StageInfo("gst-visit-2", "GST Visit", "gst", "visit"),
    StageInfo("complaint-visit", "Complaint Visit", "complaint", "visit"),
    StageInfo("unsubscriber-visit", "Unsubscriber Visit", "unsubscriber", "visit"),
    StageInfo("payment-call", "Payment Call", "payment", "call"),
    StageInfo("trial-call", "Trial Call", "trial", "call"),
    # User boxes
    StageInfo("user-payment-call", "Payment Call", "payment", "call"),
    StageInfo("user-trial-call", "Trial Call", "trial", "call"),
    StageInfo("user-gst-call", "GST Call", "gst", "call"),
    StageInfo("user-complaint-call", "Complaint Call", "complaint", "call"),
    StageInfo("user-unsubscriber-call", "Unsubscriber Call", "unsubscriber", "call"),
    StageInfo("user-bill-making", "Bill Making", "bill", "bill"),
    StageInfo("user-bill-distributing", "Bill Distributing", "bill", "bill"),
    StageInfo("user-bill-whatsapp", "Bill WhatsApp", "bill", "bill"),
]

# Initial occupancy used when distributing a seed client list over stages
INITIAL_STAGE_COUNTS: Dict[str, int] = {
    "payment-visit": 6,
    "trial-visit": 4,
    "gst-visit-1": 3,
    "gst-visit-2": 3,
    "complaint-visit": 5,
    "user-payment-call": 3,
    "user-trial-call": 2,
    "user-complaint-call": 4,
    "user-bill-whatsapp": 5,
}

_R = MovementRule

DEFAULT_RULES: List[MovementRule] = [
    # Trial visit
    _R("trial-visit", OUTCOME_DONE, "payment-visit", status_change="active", create_follow_up=True),
    _R("trial-visit", OUTCOME_FOLLOW_UP, None, create_follow_up=True),
    _R("trial-visit", OUTCOME_PENDING, None),

    # Payment visit
    _R("payment-visit", OUTCOME_DONE, "user-bill-making", update_collection=True),
    _R("payment-visit", OUTCOME_FOLLOW_UP, "user-payment-call", create_follow_up=True),
    _R("payment-visit", OUTCOME_PENDING, "user-payment-call"),

    # GST visits
    _R("gst-visit-1", OUTCOME_DONE, None),
    _R("gst-visit-1", OUTCOME_FOLLOW_UP, "user-gst-call", create_follow_up=True),
    _R("gst-visit-2", OUTCOME_DONE, None),
    _R("gst-visit-2", OUTCOME_FOLLOW_UP, "user-gst-call", create_follow_up=True),

    # Complaint visit
    _R("complaint-visit", OUTCOME_DONE, None),
    _R("complaint-visit", OUTCOME_FOLLOW_UP, "user-complaint-call", create_follow_up=True),
    _R("complaint-visit", OUTCOME_PENDING, "user-complaint-call"),

    # Unsubscriber visit (terminal: closes the unit in place)
    _R("unsubscriber-visit", OUTCOME_DONE, None, status_change="closed"),
    _R("unsubscriber-visit", OUTCOME_FOLLOW_UP, "user-unsubscriber-call", create_follow_up=True),

    # User calls
    _R("user-payment-call", OUTCOME_DONE, "payment-visit"),
    _R("user-payment-call", OUTCOME_FOLLOW_UP, None, create_follow_up=True),
    _R("user-trial-call", OUTCOME_DONE, "trial-visit"),
    _R("user-trial-call", OUTCOME_FOLLOW_UP, None, create_follow_up=True),
    _R("user-gst-call", OUTCOME_DONE, "gst-visit-1"),
    _R("user-gst-call", OUTCOME_FOLLOW_UP, None, create_follow_up=True),
    _R("user-complaint-call", OUTCOME_DONE, None),
    _R("user-complaint-call", OUTCOME_FOLLOW_UP, "complaint-visit", create_follow_up=True),
    _R("user-unsubscriber-call", OUTCOME_DONE, None, status_change="closed"),
    _R("user-unsubscriber-call", OUTCOME_FOLLOW_UP, "unsubscriber-visit", create_follow_up=True),

    # Bill flow
    _R("user-bill-making", OUTCOME_DONE, "user-bill-distributing"),
    _R("user-bill-distributing", OUTCOME_DONE, "user-bill-whatsapp"),
    _R("user-bill-whatsapp", OUTCOME_DONE, None),
]


class RuleTable:
    """
    Immutable (from_box, outcome) -> MovementRule lookup.

    Built once at startup; construction fails with ConfigurationError on
    duplicate keys or on rules that reference unknown stages, outcomes or
    status changes.
    """

    def __init__(self, rules: Iterable[MovementRule], stage_ids: Iterable[str]):
        self._stage_ids = frozenset(stage_ids)
        self._rules: Dict[Tuple[str, str], MovementRule] = {}

        issues = []
        for rule in rules:
            issues.extend(_rule_issues(rule, self._stage_ids))
            if rule.key in self._rules:
                issues.append(f"Duplicate rule for {rule.key}")
                continue
            self._rules[rule.key] = rule

        if issues:
            raise ConfigurationError(f"Rule table invalid: {issues}")

    def resolve(self, from_box: str, outcome: str) -> Optional[MovementRule]:
        """Return the rule for (from_box, outcome), or None when no transition is defined."""
        return self._rules.get((from_box, outcome))

    def rules_for(self, from_box: str) -> List[MovementRule]:
        return [rule for key, rule in self._rules.items() if key[0] == from_box]

    @property
    def stage_ids(self) -> frozenset:
        return self._stage_ids

    def __len__(self):
        return len(self._rules)

    def __iter__(self):
        return iter(self._rules.values())


def _rule_issues(rule: MovementRule, stage_ids: frozenset) -> List[str]:
    issues = []

    if rule.from_box not in stage_ids:
        issues.append(f"Rule {rule.key} starts from unknown stage '{rule.from_box}'")

    if rule.to_box is not None and rule.to_box not in stage_ids:
        issues.append(f"Rule {rule.key} targets unknown stage '{rule.to_box}'")

    if rule.outcome not in OUTCOMES:
        issues.append(f"Rule {rule.key} uses unknown outcome '{rule.outcome}'")

    if rule.status_change is not None and rule.status_change not in STATUS_CHANGES:
        issues.append(f"Rule {rule.key} uses unknown status change '{rule.status_change}'")

    return issues


def build_default_table() -> RuleTable:
    """Rule table for the standard stage catalog."""
    return RuleTable(DEFAULT_RULES, [stage.id for stage in STAGES])


_DISPLAY_NAMES = {stage.id: stage.label for stage in STAGES}


def display_name(stage_id: str) -> str:
    """Human label for a stage, falling back to its id."""
    return _DISPLAY_NAMES.get(stage_id, stage_id)


def result_options(stage_id: str) -> List[Dict[str, str]]:
    """
    Outcome choices an action form offers for a stage.

    Trial, payment, unsubscriber and bill stages get tailored labels;
    everything else gets the three base options.
    """
    if "trial" in stage_id:
        return [
            {"value": OUTCOME_DONE, "label": "Done - Client Agreed", "description": "Move to Payment Visit"},
            {"value": OUTCOME_FOLLOW_UP, "label": "Follow-Up - Second Visit", "description": "Schedule another visit"},
            {"value": OUTCOME_PENDING, "label": "Pending - Not Available", "description": "Reschedule"},
        ]

    if "payment" in stage_id:
        return [
            {"value": OUTCOME_DONE, "label": "Done - Payment Collected", "description": "Move to Bill Making"},
            {"value": OUTCOME_FOLLOW_UP, "label": "Follow-Up - Promised", "description": "Schedule reminder"},
            {"value": OUTCOME_PENDING, "label": "Pending - Unavailable", "description": "Move to Payment Call"},
        ]

    if "unsubscriber" in stage_id:
        return [
            {"value": OUTCOME_DONE, "label": "Done - Settlement Complete", "description": "Close unit"},
            {"value": OUTCOME_FOLLOW_UP, "label": "Follow-Up - Retention", "description": "Attempt retention"},
        ]

    if "bill" in stage_id:
        return [
            {"value": OUTCOME_DONE, "label": "Done", "description": "Move to next step"},
        ]

    return [
        {"value": OUTCOME_DONE, "label": "Done", "description": "Task completed successfully"},
        {"value": OUTCOME_FOLLOW_UP, "label": "Follow-Up", "description": "Needs another attempt"},
        {"value": OUTCOME_PENDING, "label": "Pending", "description": "Client not available"},
    ]


def describe_transition(from_box: str, to_box: str) -> str:
    """Audit display text: 'A → B' for a move, 'Stayed in A' otherwise."""
    if from_box == to_box:
        return f"Stayed in {display_name(from_box)}"
    return f"{display_name(from_box)} → {display_name(to_box)}"
