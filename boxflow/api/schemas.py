"""
Request and response models for the workflow HTTP adapter.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, field_validator

Outcome = Literal["done", "follow-up", "pending"]


class OutcomeRequest(BaseModel):
    from_box: str
    outcome: Outcome
    remark: str = ""
    user_id: Optional[str] = None
    user_name: Optional[str] = None

    @field_validator('from_box')
    @classmethod
    def from_box_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('from_box cannot be empty')
        return v

    @field_validator('remark')
    @classmethod
    def remark_length(cls, v):
        if len(v) > 500:
            raise ValueError('remark cannot exceed 500 characters')
        return v


class DemoModeRequest(BaseModel):
    enabled: bool


class ClientResponse(BaseModel):
    id: str
    name: str
    unit: str
    phone: str
    area: str
    status: str
    current_box: str
    service_type: str
    pending_amount: float
    attempt_count: int
    start_date: datetime
    last_action_date: datetime
    end_date: Optional[datetime] = None
    next_action_due: Optional[datetime] = None
    assigned_officer: Optional[str] = None


class FollowUpResponse(BaseModel):
    id: str
    client_id: str
    client_name: str
    task_type: str
    due_date: datetime
    priority: str
    assigned_officer: str
    status: str
    created_at: datetime


class TransitionResponse(BaseModel):
    client_id: str
    from_box: str
    to_box: str
    outcome: str
    moved: bool
    status: str
    audit_id: str
    follow_up_created: bool
    follow_up: Optional[FollowUpResponse] = None


class AuditEntryResponse(BaseModel):
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
    stayed: bool
    description: str


class ActivityResponse(BaseModel):
    entries: List[AuditEntryResponse]


class StageResponse(BaseModel):
    id: str
    label: str
    category: str
    type: str
    count: int


class StageCountResponse(BaseModel):
    stage_id: str
    count: int


class OutcomeOption(BaseModel):
    value: str
    label: str
    description: str


class SimulationResponse(BaseModel):
    simulated: bool
    transition: Optional[TransitionResponse] = None


class SummaryResponse(BaseModel):
    current_pending: float
    previous_pending: float
    collection_count: int
    collection_amount: float
    follow_ups_completed: int
    follow_ups_total: int
    completion_ratio: float


class HealthStateResponse(BaseModel):
    status: str
    checked_at: datetime
    total_clients: int
    stage_occupancy: int


class HealthResponse(BaseModel):
    status: str
    version: str
    system_health: str
    last_health_check: Optional[datetime] = None
    total_clients: int
    demo_mode: bool


class VerifyResponse(BaseModel):
    consistent: bool
    issues: List[str]
