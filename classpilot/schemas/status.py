from pydantic import BaseModel
from typing import Dict, Optional
from classpilot.core.workflow import SystemStatus, WorkflowStage


class StageRecordOut(BaseModel):
    max_retries: int
    current_retries: int
    last_attempt: Optional[str] = None
    last_error: Optional[str] = None
    success: bool
    last_success_time: Optional[str] = None


class StatusSnapshot(BaseModel):
    tenant: str
    username: Optional[str] = None
    status: SystemStatus
    timestamp: str
    start_time: str
    current_stage: WorkflowStage
    execution_count: int
    stage_status: Dict[str, StageRecordOut] = {}
    message: str


class StatusResponse(StatusSnapshot):
    active_sessions: int
    token_ttl_ms: int


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: str


class ReadyResponse(BaseModel):
    ready: bool
    status: SystemStatus
    current_stage: WorkflowStage
    timestamp: str
    active_sessions: int
