"""
Seed loading - turns an external client list into placed ClientRecords.
Clients without an explicit stage are spread over stages by the initial per-stage counts.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, TypeAdapter, ValidationError, field_validator

from .config import get_client_seed_path
from .errors import ConfigurationError
from .rules import INITIAL_STAGE_COUNTS, STAGES
from .schema import CLIENT_STATUSES, ClientRecord
from ..util.logging import logger


class ClientSeed(BaseModel):
    id: str
    name: str
    unit: str
    phone: str
    area: str
    pending_amount: float = 0.0
    status: str = "active"
    current_box: Optional[str] = None
    attempt_count: int = 0
    service_type: str = "Standard"
    start_date: Optional[datetime] = None
    last_action_date: Optional[datetime] = None
    assigned_officer: Optional[str] = None

    @field_validator('id', 'name')
    @classmethod
    def must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('must not be empty')
        return v

    @field_validator('pending_amount')
    @classmethod
    def amount_must_not_be_negative(cls, v):
        if v < 0:
            raise ValueError('pending_amount cannot be negative')
        return v

    @field_validator('status')
    @classmethod
    def status_must_be_valid(cls, v):
        if v not in CLIENT_STATUSES:
            raise ValueError(f'status must be one of: {list(CLIENT_STATUSES)}')
        return v

    @field_validator('attempt_count')
    @classmethod
    def attempts_must_not_be_negative(cls, v):
        if v < 0:
            raise ValueError('attempt_count cannot be negative')
        return v


_seed_list = TypeAdapter(List[ClientSeed])


def parse_seed(data) -> List[ClientSeed]:
    """Validate raw JSON data (a list of client objects)."""
    try:
        return _seed_list.validate_python(data)
    except ValidationError as e:
        raise ConfigurationError(f"Client seed data invalid: {e}") from e


def load_seed_file(path: Optional[Path] = None) -> List[ClientSeed]:
    path = Path(path) if path else get_client_seed_path()
    if not path.exists():
        raise ConfigurationError(f"Client seed file not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Client seed file is not valid JSON: {path}: {e}") from e

    return parse_seed(data)


def place_clients(seeds: List[ClientSeed], stage_counts: Optional[Dict[str, int]] = None,
                  now: Optional[datetime] = None) -> List[ClientRecord]:
    """
    Build ClientRecords, filling stages in catalog order up to their initial counts.

    Seeds that name a current_box keep it. Seeds left over once every
    stage is full are not placed and are reported in the log.
    """
    stage_counts = INITIAL_STAGE_COUNTS if stage_counts is None else stage_counts
    now = now or datetime.now()

    slots: List[str] = []
    for stage in STAGES:
        slots.extend([stage.id] * stage_counts.get(stage.id, 0))
    for stage_id in stage_counts:
        if stage_id not in {s.id for s in STAGES}:
            raise ConfigurationError(f"Initial count given for unknown stage '{stage_id}'")

    records = []
    skipped = []
    next_slot = 0
    for seed in seeds:
        box = seed.current_box
        if box is None:
            if next_slot >= len(slots):
                skipped.append(seed.id)
                continue
            box = slots[next_slot]
            next_slot += 1

        records.append(ClientRecord(
            id=seed.id,
            name=seed.name,
            unit=seed.unit,
            phone=seed.phone,
            area=seed.area,
            status=seed.status,
            current_box=box,
            pending_amount=seed.pending_amount,
            start_date=seed.start_date or now,
            last_action_date=seed.last_action_date or now,
            attempt_count=seed.attempt_count,
            service_type=seed.service_type,
            assigned_officer=seed.assigned_officer,
        ))

    if skipped:
        logger.warning(f"No stage capacity left for {len(skipped)} seed clients: {skipped}")

    return records


def build_engine(path: Optional[Path] = None, **engine_kwargs):
    """Load the seed file and construct a WorkflowEngine from it."""
    from .engine import WorkflowEngine

    records = place_clients(load_seed_file(path))
    return WorkflowEngine(records, **engine_kwargs)
