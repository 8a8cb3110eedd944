from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST
from classpilot.auth.sessions import SessionStore
from classpilot.api.deps import get_engine, get_sessions, get_settings
from classpilot.core.config import Settings
from classpilot.core.engine import WorkflowEngine
from classpilot.core.topology import utcnow
from classpilot.core.workflow import SystemStatus
from classpilot.schemas.status import HealthResponse, ReadyResponse, StatusResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(timestamp=utcnow())


@router.get("/ready", response_model=ReadyResponse)
def ready(engine: WorkflowEngine = Depends(get_engine), sessions: SessionStore = Depends(get_sessions)):
    is_ready = engine.system_status is not SystemStatus.FAILED
    body = ReadyResponse(
        ready=is_ready,
        status=engine.system_status,
        current_stage=engine.current_stage,
        timestamp=utcnow(),
        active_sessions=len(sessions),
    )
    return JSONResponse(status_code=200 if is_ready else 503, content=body.model_dump(mode="json"))


@router.get("/status", response_model=StatusResponse)
def status(
    engine: WorkflowEngine = Depends(get_engine),
    sessions: SessionStore = Depends(get_sessions),
    settings: Settings = Depends(get_settings),
):
    snapshot = engine.snapshot()
    return StatusResponse(
        **snapshot.model_dump(),
        active_sessions=len(sessions),
        token_ttl_ms=settings.jwt_ttl_ms,
    )


@router.get("/metrics")
def metrics(engine: WorkflowEngine = Depends(get_engine)):
    return Response(content=engine.metrics.render(), media_type=CONTENT_TYPE_LATEST)
