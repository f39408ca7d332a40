"""
HTTP adapter for the workflow engine.
Maps engine commands and queries to JSON endpoints; engine errors become 404/409 responses.
"""

from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from .schemas import (
    ActivityResponse,
    AuditEntryResponse,
    ClientResponse,
    DemoModeRequest,
    FollowUpResponse,
    HealthResponse,
    HealthStateResponse,
    OutcomeOption,
    OutcomeRequest,
    SimulationResponse,
    StageCountResponse,
    StageResponse,
    SummaryResponse,
    TransitionResponse,
    VerifyResponse,
)
from ..core import heartbeat
from ..core.config import VERSION, debug_enabled, is_heartbeat_enabled
from ..core.engine import WorkflowEngine
from ..core.errors import NotFound, SimulationDisabled, StateMismatch
from ..core.health import HealthMonitor
from ..core.rules import describe_transition, result_options
from ..core.schema import ActingUser, AuditEntry, TransitionResult
from ..core.seed import build_engine
from ..util.logging import logger

_engine: Optional[WorkflowEngine] = None


def get_engine() -> WorkflowEngine:
    """Engine dependency; built from the configured seed file on first use."""
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine


def set_engine(engine: Optional[WorkflowEngine]):
    """Install a specific engine instance (used by scripts and tests)."""
    global _engine
    _engine = engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = get_engine()
    monitor = None
    if is_heartbeat_enabled():
        monitor = HealthMonitor(engine)
        monitor.register()
        heartbeat.start_in_background()
    yield
    if monitor is not None:
        heartbeat.stop()
        monitor.unregister()


app = FastAPI(
    title="Boxflow Workflow API",
    version=VERSION,
    description="Client workflow engine for field operations",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _transition_response(result: TransitionResult) -> TransitionResponse:
    return TransitionResponse(
        client_id=result.client_id,
        from_box=result.from_box,
        to_box=result.to_box,
        outcome=result.outcome,
        moved=result.moved,
        status=result.status,
        audit_id=result.audit_id,
        follow_up_created=result.follow_up_created,
        follow_up=FollowUpResponse(**result.follow_up.to_dict()) if result.follow_up else None,
    )


def _audit_response(entry: AuditEntry) -> AuditEntryResponse:
    return AuditEntryResponse(
        **entry.to_dict(),
        description=describe_transition(entry.from_box, entry.to_box),
    )


@app.get("/health", response_model=HealthResponse)
def health_endpoint(engine: WorkflowEngine = Depends(get_engine)):
    """Service liveness plus the last recorded system health."""
    return HealthResponse(
        status="ok",
        version=VERSION,
        system_health=engine.system_health,
        last_health_check=engine.last_health_check,
        total_clients=engine.total_clients,
        demo_mode=engine.demo_mode,
    )


@app.post("/health/check", response_model=HealthStateResponse)
def run_health_check(engine: WorkflowEngine = Depends(get_engine)):
    return HealthStateResponse(**engine.check_health().to_dict())


@app.get("/stages", response_model=List[StageResponse])
def list_stages(engine: WorkflowEngine = Depends(get_engine)):
    return [StageResponse(**stage) for stage in engine.list_stages()]


@app.get("/stages/{stage_id}/clients", response_model=List[ClientResponse])
def stage_occupants(stage_id: str, engine: WorkflowEngine = Depends(get_engine)):
    return [ClientResponse(**client.to_dict()) for client in engine.query_stage_occupants(stage_id)]


@app.get("/stages/{stage_id}/count", response_model=StageCountResponse)
def stage_count(stage_id: str, engine: WorkflowEngine = Depends(get_engine)):
    return StageCountResponse(stage_id=stage_id, count=engine.query_stage_count(stage_id))


@app.get("/stages/{stage_id}/outcomes", response_model=List[OutcomeOption])
def stage_outcomes(stage_id: str):
    return [OutcomeOption(**option) for option in result_options(stage_id)]


@app.post("/stages/{stage_id}/simulate", response_model=SimulationResponse)
def simulate_stage(stage_id: str, engine: WorkflowEngine = Depends(get_engine)):
    try:
        result = engine.simulate(stage_id)
    except SimulationDisabled as e:
        raise HTTPException(status_code=409, detail=str(e))

    if result is None:
        return SimulationResponse(simulated=False)
    return SimulationResponse(simulated=True, transition=_transition_response(result))


@app.get("/clients/{client_id}", response_model=ClientResponse)
def get_client(client_id: str, engine: WorkflowEngine = Depends(get_engine)):
    try:
        client = engine.get_client(client_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return ClientResponse(**client.to_dict())


@app.get("/clients/{client_id}/history", response_model=ActivityResponse)
def client_history(client_id: str, engine: WorkflowEngine = Depends(get_engine)):
    try:
        entries = engine.client_history(client_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return ActivityResponse(entries=[_audit_response(entry) for entry in entries])


@app.post("/clients/{client_id}/outcome", response_model=TransitionResponse)
def record_outcome(client_id: str, request: OutcomeRequest, engine: WorkflowEngine = Depends(get_engine)):
    """Submit an action form result for a client."""
    acting_user = None
    if request.user_name:
        acting_user = ActingUser(id=request.user_id or request.user_name, name=request.user_name)

    try:
        result = engine.record_outcome(
            client_id,
            request.from_box,
            request.outcome,
            remark=request.remark,
            acting_user=acting_user,
        )
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StateMismatch as e:
        raise HTTPException(status_code=409, detail={
            "message": str(e),
            "expected": e.expected,
            "actual": e.actual,
        })

    return _transition_response(result)


@app.get("/activity", response_model=ActivityResponse)
def recent_activity(limit: int = Query(10, ge=0, le=1000), engine: WorkflowEngine = Depends(get_engine)):
    return ActivityResponse(entries=[_audit_response(entry) for entry in engine.query_recent_activity(limit)])


@app.get("/follow-ups", response_model=List[FollowUpResponse])
def follow_ups(status: Optional[str] = None, engine: WorkflowEngine = Depends(get_engine)):
    return [FollowUpResponse(**task.to_dict()) for task in engine.list_follow_ups(status)]


@app.get("/summary", response_model=SummaryResponse)
def pending_summary(engine: WorkflowEngine = Depends(get_engine)):
    summary = engine.summary()
    return SummaryResponse(**summary.to_dict(), completion_ratio=engine.completion_ratio())


@app.put("/demo-mode", response_model=HealthResponse)
def set_demo_mode(request: DemoModeRequest, engine: WorkflowEngine = Depends(get_engine)):
    engine.set_demo_mode(request.enabled)
    return health_endpoint(engine)


@app.get("/debug/verify", response_model=VerifyResponse)
def debug_verify(engine: WorkflowEngine = Depends(get_engine)):
    """Full-scan verification of stage lists and the pending summary."""
    if not debug_enabled():
        raise HTTPException(status_code=403, detail="Verification endpoint requires debug mode")

    issues = engine.verify()
    if issues:
        logger.warning(f"Aggregate verification found {len(issues)} issues")
    return VerifyResponse(consistent=not issues, issues=issues)
