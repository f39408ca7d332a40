"""
Workflow records - clients, stages, rules, audit entries, follow-ups and summaries.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Dict, List, Optional

OUTCOME_DONE = "done"
OUTCOME_FOLLOW_UP = "follow-up"
OUTCOME_PENDING = "pending"
OUTCOMES = (OUTCOME_DONE, OUTCOME_FOLLOW_UP, OUTCOME_PENDING)

CLIENT_STATUSES = ("new", "active", "inactive", "closed")
STATUS_CHANGES = ("active", "inactive", "closed")
PRIORITIES = ("low", "medium", "high")
FOLLOW_UP_STATUSES = ("pending", "completed", "overdue")

HEALTH_HEALTHY = "healthy"
HEALTH_SYNCING = "syncing"
HEALTH_ATTENTION = "attention-needed"
HEALTH_STATES = (HEALTH_HEALTHY, HEALTH_SYNCING, HEALTH_ATTENTION)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class ClientRecord:
    id: str
    name: str
    unit: str
    phone: str
    area: str
    status: str  # new, active, inactive, closed
    current_box: str
    pending_amount: float
    start_date: datetime
    last_action_date: datetime
    attempt_count: int = 0
    service_type: str = "Standard"
    end_date: Optional[datetime] = None
    next_action_due: Optional[datetime] = None
    assigned_officer: Optional[str] = None

    def to_dict(self) -> Dict:
        data = asdict(self)
        for key in ("start_date", "last_action_date", "end_date", "next_action_due"):
            data[key] = _iso(data[key])
        return data


@dataclass(frozen=True)
class StageInfo:
    """Catalog entry for a stage ("box")."""
    id: str
    label: str
    category: str  # payment, trial, gst, complaint, unsubscriber, bill
    type: str  # visit, call, bill


@dataclass
class StageState:
    """Occupancy of one stage. The count is always the length of the list."""
    id: str
    clients: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.clients)


@dataclass(frozen=True)
class MovementRule:
    from_box: str
    outcome: str
    to_box: Optional[str] = None  # None means stay in from_box
    status_change: Optional[str] = None
    create_follow_up: bool = False
    update_collection: bool = False

    @property
    def key(self):
        return (self.from_box, self.outcome)


@dataclass(frozen=True)
class ActingUser:
    id: str
    name: str


@dataclass(frozen=True)
class AuditEntry:
    id: str
    timestamp: datetime
    user_id: str
    user_name: str
    action: str
    result: str
    client_id: str
    client_name: str
    from_box: str
    to_box: str
    remark: str

    @property
    def stayed(self) -> bool:
        return self.from_box == self.to_box

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        data["stayed"] = self.stayed
        return data


@dataclass
class FollowUpTask:
    id: str
    client_id: str
    client_name: str
    task_type: str
    due_date: datetime
    priority: str  # low, medium, high
    assigned_officer: str
    status: str  # pending, completed, overdue
    created_at: datetime

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["due_date"] = self.due_date.isoformat()
        data["created_at"] = self.created_at.isoformat()
        return data


@dataclass(frozen=True)
class CollectionRecord:
    """One collection update, kept so the pending summary can be replayed."""
    client_id: str
    amount: float
    timestamp: datetime


@dataclass
class PendingSummary:
    current_pending: float
    previous_pending: float
    collection_count: int
    collection_amount: float
    follow_ups_completed: int
    follow_ups_total: int

    @classmethod
    def from_dict(cls, data: Dict) -> 'PendingSummary':
        return cls(**data)

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class HealthState:
    status: str  # healthy, syncing, attention-needed
    checked_at: datetime
    total_clients: int
    stage_occupancy: int

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["checked_at"] = self.checked_at.isoformat()
        return data


@dataclass(frozen=True)
class TransitionResult:
    client_id: str
    from_box: str
    to_box: str
    outcome: str
    moved: bool
    status: str
    audit_id: str
    follow_up: Optional[FollowUpTask] = None

    @property
    def follow_up_created(self) -> bool:
        return self.follow_up is not None


@dataclass
class EngineSnapshot:
    """Consistent copy of the whole engine state, taken under the engine lock."""
    clients: Dict[str, ClientRecord]
    stages: Dict[str, StageState]
    audit_log: List[AuditEntry]
    follow_ups: List[FollowUpTask]
    collections: List[CollectionRecord]
    summary: PendingSummary
    baseline: PendingSummary
    system_health: str
    last_health_check: Optional[datetime]
    demo_mode: bool
