from dataclasses import dataclass
from enum import Enum


class WorkflowStage(str, Enum):
    INITIAL = "initial"
    INITIALIZED = "initialized"
    OPENED_TARGET_URL = "opened_target_url"
    LOGGED_IN = "logged_in"
    JOINED_CLASS = "joined_class"
    FAILED = "failed"


class StageName(str, Enum):
    INITIALIZATION = "initialization"
    OPEN_TARGET = "openTarget"
    LOGIN = "login"
    JOIN_CLASS = "joinClass"
    HEALTH_CHECK = "healthCheck"


class SystemStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass
class WorkflowState:
    """Current position of the supervised workflow.

    ``exhausted`` is set by recovery once no stage has retry budget left; from
    then on the workflow stays in FAILED for the life of the process.
    """
    stage: WorkflowStage = WorkflowStage.INITIAL
    exhausted: bool = False

    def advance(self, stage: WorkflowStage) -> None:
        self.stage = stage

    @property
    def failed(self) -> bool:
        return self.stage is WorkflowStage.FAILED
