"""
Workflow engine - owns client placement, stage occupancy, the audit trail and the pending summary.

All mutations and full-state reads go through one re-entrant lock, so every
transition is applied as a unit and readers never see one half-applied.
Preconditions are checked before anything is touched; a rejected command
leaves the engine exactly as it was.
"""

import copy
import random
import threading
import uuid
from collections import deque
from dataclasses import replace
from datetime import datetime, timedelta
from itertools import islice
from typing import Callable, Dict, Iterable, List, Optional

from .aggregates import (
    apply_collection, calculate_priority, completion_ratio, recompute_summary,
    register_follow_up, scan_stage_counts, verify,
)
from .config import (
    DEFAULT_ACTING_USER, check_simulation_weights, get_audit_log_limit, get_follow_up_due_hours,
    get_opening_summary, is_demo_mode_enabled, parse_simulation_weights, validate_engine_config,
)
from .errors import ConfigurationError, NotFound, SimulationDisabled, StateMismatch
from .health import evaluate_health
from .rules import STAGES, RuleTable, build_default_table
from .schema import (
    HEALTH_HEALTHY, HEALTH_STATES, OUTCOME_DONE, OUTCOMES,
    ActingUser, AuditEntry, ClientRecord, CollectionRecord, EngineSnapshot,
    FollowUpTask, HealthState, PendingSummary, StageInfo, StageState, TransitionResult,
)
from ..util.logging import logger

DEMO_USER = ActingUser(id="demo", name="Demo Mode")


class WorkflowEngine:
    """
    In-memory workflow state with a command/query interface.

    Callers hold a handle to one engine instance; there is no global state.
    """

    def __init__(self, clients: Iterable[ClientRecord],
                 rule_table: Optional[RuleTable] = None,
                 stages: Optional[List[StageInfo]] = None,
                 baseline: Optional[PendingSummary] = None,
                 audit_log_limit: Optional[int] = None,
                 follow_up_due_hours: Optional[int] = None,
                 simulation_weights=None,
                 demo_mode: Optional[bool] = None,
                 rng: Optional[random.Random] = None,
                 clock: Callable[[], datetime] = datetime.now):
        limit = audit_log_limit if audit_log_limit is not None else get_audit_log_limit()
        due_hours = follow_up_due_hours if follow_up_due_hours is not None else get_follow_up_due_hours()
        baseline = baseline or PendingSummary.from_dict(get_opening_summary())

        issues = validate_engine_config(audit_log_limit=limit, follow_up_due_hours=due_hours,
                                        simulation_weights=simulation_weights, baseline=baseline.to_dict())
        if issues:
            raise ConfigurationError(f"Engine configuration invalid: {issues}")

        self._catalog: Dict[str, StageInfo] = {s.id: s for s in (stages or STAGES)}
        self._rules = rule_table or build_default_table()

        unknown_stages = self._rules.stage_ids - set(self._catalog)
        if unknown_stages:
            raise ConfigurationError(f"Rule table references stages missing from catalog: {sorted(unknown_stages)}")

        self._stages: Dict[str, StageState] = {stage_id: StageState(stage_id) for stage_id in self._catalog}
        self._clients: Dict[str, ClientRecord] = {}
        for client in clients:
            if client.id in self._clients:
                raise ConfigurationError(f"Duplicate client id in seed data: {client.id}")
            if client.current_box not in self._stages:
                raise ConfigurationError(f"Client {client.id} placed in unknown stage '{client.current_box}'")
            self._clients[client.id] = replace(client)
            self._stages[client.current_box].clients.append(client.id)

        self._audit_log: deque = deque(maxlen=limit)  # newest at index 0

        self._follow_ups: List[FollowUpTask] = []
        self._collections: List[CollectionRecord] = []
        self._baseline = baseline
        self._summary = PendingSummary.from_dict(self._baseline.to_dict())

        self._follow_up_due = timedelta(hours=due_hours)
        self._weights = parse_simulation_weights() if simulation_weights is None else \
            check_simulation_weights(simulation_weights)

        self._demo_mode = is_demo_mode_enabled() if demo_mode is None else demo_mode
        self._rng = rng or random.Random()
        self._clock = clock
        self._system_health = HEALTH_HEALTHY
        self._last_health_check: Optional[datetime] = clock()
        self._lock = threading.RLock()

        logger.info(f"Workflow engine ready: {len(self._clients)} clients over {len(self._stages)} stages, "
                    f"{len(self._rules)} rules")

    # Commands

    def record_outcome(self, client_id: str, from_box: str, outcome: str,
                       remark: str = "", acting_user: Optional[ActingUser] = None) -> TransitionResult:
        """
        Apply the movement rule for (from_box, outcome) to a client.

        Raises:
            ValueError: outcome is not one of done, follow-up, pending
            NotFound: client id is unknown
            StateMismatch: client is not in from_box
        """
        user = acting_user or ActingUser(id=DEFAULT_ACTING_USER, name=DEFAULT_ACTING_USER)

        with self._lock:
            if outcome not in OUTCOMES:
                logger.log_rejection("workflow.record_outcome", f"Unknown outcome '{outcome}'",
                                     {"client_id": client_id})
                raise ValueError(f"Unknown outcome: {outcome}")

            client = self._clients.get(client_id)
            if client is None:
                logger.log_rejection("workflow.record_outcome", "client not found", {"client_id": client_id})
                raise NotFound(client_id)

            if client.current_box != from_box:
                logger.log_rejection("workflow.record_outcome", "stage mismatch", {
                    "client_id": client_id, "expected": from_box, "actual": client.current_box,
                })
                raise StateMismatch(client_id, from_box, client.current_box)

            rule = self._rules.resolve(from_box, outcome)
            to_box = rule.to_box if rule and rule.to_box else from_box
            now = self._clock()

            # Occupancy first: it is the only step that touches two records
            if to_box != from_box:
                self._stages[from_box].clients.remove(client_id)
                self._stages[to_box].clients.append(client_id)

            client.current_box = to_box
            client.last_action_date = now
            client.attempt_count = 0 if outcome == OUTCOME_DONE else client.attempt_count + 1
            if rule and rule.status_change:
                client.status = rule.status_change

            entry = AuditEntry(
                id=str(uuid.uuid4()),
                timestamp=now,
                user_id=user.id,
                user_name=user.name,
                action=outcome.capitalize(),
                result=outcome,
                client_id=client_id,
                client_name=client.name,
                from_box=from_box,
                to_box=to_box,
                remark=remark,
            )
            self._audit_log.appendleft(entry)
            logger.log_transition(client_id, from_box, to_box, outcome, user.name, remark)

            follow_up = None
            if rule and rule.create_follow_up:
                follow_up = self._create_follow_up(client, to_box, now)

            if rule and rule.update_collection:
                self._record_collection(client, now)

            return TransitionResult(
                client_id=client_id,
                from_box=from_box,
                to_box=to_box,
                outcome=outcome,
                moved=to_box != from_box,
                status=client.status,
                audit_id=entry.id,
                follow_up=replace(follow_up) if follow_up else None,
            )

    def simulate(self, stage_id: str) -> Optional[TransitionResult]:
        """
        Apply a weighted-random outcome to a random occupant of a stage.

        Returns None when the stage is unknown or empty.
        """
        with self._lock:
            if not self._demo_mode:
                logger.log_rejection("workflow.simulate", "demo mode is off", {"stage_id": stage_id})
                raise SimulationDisabled("Simulation requires demo mode")

            stage = self._stages.get(stage_id)
            if stage is None or not stage.clients:
                return None

            client_id = self._rng.choice(stage.clients)
            outcome = self._rng.choices(OUTCOMES, weights=self._weights)[0]
            logger.log_simulation(stage_id, client_id, outcome)

            return self.record_outcome(client_id, stage_id, outcome,
                                       remark=f"Simulated action - {outcome}",
                                       acting_user=DEMO_USER)

    def check_health(self) -> HealthState:
        """Compare total stage occupancy with the client count and record the result."""
        with self._lock:
            occupancy = sum(stage.count for stage in self._stages.values())
            total = len(self._clients)
            status = evaluate_health(occupancy, total)

            self._system_health = status
            self._last_health_check = self._clock()
            logger.log_health_check(status, occupancy, total)

            return HealthState(
                status=status,
                checked_at=self._last_health_check,
                total_clients=total,
                stage_occupancy=occupancy,
            )

    def set_demo_mode(self, enabled: bool):
        with self._lock:
            self._demo_mode = bool(enabled)
            logger.info(f"Demo mode {'enabled' if self._demo_mode else 'disabled'}")

    def toggle_demo_mode(self) -> bool:
        with self._lock:
            self.set_demo_mode(not self._demo_mode)
            return self._demo_mode

    def set_system_health(self, status: str):
        """Override the health flag, e.g. 'syncing' while an outer layer reloads data."""
        if status not in HEALTH_STATES:
            raise ValueError(f"Unknown health state: {status}")
        with self._lock:
            self._system_health = status

    def repair(self) -> List[str]:
        """
        Rebuild stage lists and the pending summary from a full scan.

        A client whose current_box names an unknown stage is put back in the
        first stage that lists it; one listed nowhere is left out and logged.
        Returns the issues that were found before repairing.
        """
        with self._lock:
            issues = verify(self._snapshot_unlocked())
            if not issues:
                return []

            rebuilt = {stage_id: [] for stage_id in self._stages}
            listed_in: Dict[str, str] = {}
            for stage in self._stages.values():
                for client_id in stage.clients:
                    listed_in.setdefault(client_id, stage.id)
                    client = self._clients.get(client_id)
                    if client and client.current_box == stage.id and client_id not in rebuilt[stage.id]:
                        rebuilt[stage.id].append(client_id)
            for client in self._clients.values():
                if client.current_box not in rebuilt:
                    home = listed_in.get(client.id)
                    if home is None:
                        logger.warning(f"Client {client.id} has unknown stage '{client.current_box}' "
                                       f"and no stage listing; left unplaced")
                        continue
                    client.current_box = home
                if client.id not in rebuilt[client.current_box]:
                    rebuilt[client.current_box].append(client.id)
            for stage_id, client_ids in rebuilt.items():
                self._stages[stage_id].clients = client_ids

            self._summary = recompute_summary(self._baseline, self._collections, self._follow_ups)
            logger.warning(f"Workflow state repaired: {issues}")
            return issues

    # Queries

    def query_stage_occupants(self, stage_id: str) -> List[ClientRecord]:
        with self._lock:
            stage = self._stages.get(stage_id)
            if stage is None:
                return []
            return [replace(self._clients[client_id]) for client_id in stage.clients]

    def query_stage_count(self, stage_id: str) -> int:
        with self._lock:
            stage = self._stages.get(stage_id)
            return stage.count if stage else 0

    def query_recent_activity(self, limit: int = 10) -> List[AuditEntry]:
        """Most recent audit entries, newest first."""
        with self._lock:
            return list(islice(self._audit_log, max(0, limit)))

    def get_client(self, client_id: str) -> ClientRecord:
        with self._lock:
            client = self._clients.get(client_id)
            if client is None:
                raise NotFound(client_id)
            return replace(client)

    def client_history(self, client_id: str) -> List[AuditEntry]:
        """Retained audit entries for one client, newest first."""
        with self._lock:
            if client_id not in self._clients:
                raise NotFound(client_id)
            return [entry for entry in self._audit_log if entry.client_id == client_id]

    def list_follow_ups(self, status: Optional[str] = None) -> List[FollowUpTask]:
        with self._lock:
            return [replace(task) for task in reversed(self._follow_ups)
                    if status is None or task.status == status]

    def list_stages(self) -> List[Dict]:
        with self._lock:
            return [
                {
                    "id": info.id,
                    "label": info.label,
                    "category": info.category,
                    "type": info.type,
                    "count": self._stages[info.id].count,
                }
                for info in self._catalog.values()
            ]

    def stage_counts(self) -> Dict[str, int]:
        with self._lock:
            return {stage_id: stage.count for stage_id, stage in self._stages.items()}

    def scanned_stage_counts(self) -> Dict[str, int]:
        """Stage counts rebuilt from client records rather than occupancy lists."""
        with self._lock:
            return scan_stage_counts(self._clients.values(), self._stages.keys())

    def summary(self) -> PendingSummary:
        with self._lock:
            return PendingSummary.from_dict(self._summary.to_dict())

    def completion_ratio(self) -> float:
        with self._lock:
            return completion_ratio(self._summary)

    def verify(self) -> List[str]:
        """Full-scan verification of the incremental aggregates; empty list when consistent."""
        return verify(self.snapshot())

    def snapshot(self) -> EngineSnapshot:
        with self._lock:
            return self._snapshot_unlocked()

    @property
    def demo_mode(self) -> bool:
        return self._demo_mode

    @property
    def system_health(self) -> str:
        return self._system_health

    @property
    def last_health_check(self) -> Optional[datetime]:
        return self._last_health_check

    @property
    def rules(self) -> RuleTable:
        return self._rules

    @property
    def total_clients(self) -> int:
        return len(self._clients)

    # Internals (caller holds the lock)

    def _create_follow_up(self, client: ClientRecord, to_box: str, now: datetime) -> FollowUpTask:
        task = FollowUpTask(
            id=str(uuid.uuid4()),
            client_id=client.id,
            client_name=client.name,
            task_type=to_box,
            due_date=now + self._follow_up_due,
            priority=calculate_priority(client.attempt_count),
            assigned_officer=client.assigned_officer or "Unassigned",
            status="pending",
            created_at=now,
        )
        self._follow_ups.append(task)
        register_follow_up(self._summary)
        client.next_action_due = task.due_date

        logger.log_follow_up(task.id, client.id, task.task_type, task.priority)
        return task

    def _record_collection(self, client: ClientRecord, now: datetime):
        amount = client.pending_amount
        self._collections.append(CollectionRecord(client_id=client.id, amount=amount, timestamp=now))
        apply_collection(self._summary, amount)

        logger.log_collection(client.id, amount, self._summary.current_pending)

    def _snapshot_unlocked(self) -> EngineSnapshot:
        return EngineSnapshot(
            clients=copy.deepcopy(self._clients),
            stages=copy.deepcopy(self._stages),
            audit_log=list(self._audit_log),
            follow_ups=copy.deepcopy(self._follow_ups),
            collections=list(self._collections),
            summary=PendingSummary.from_dict(self._summary.to_dict()),
            baseline=PendingSummary.from_dict(self._baseline.to_dict()),
            system_health=self._system_health,
            last_health_check=self._last_health_check,
            demo_mode=self._demo_mode,
        )
