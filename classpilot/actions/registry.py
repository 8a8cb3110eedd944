from dataclasses import dataclass
from typing import Dict
from classpilot.core.topology import StageTopology
from classpilot.core.workflow import StageName
from classpilot.actions.base import BaseAction
from classpilot.actions.impl_session import InitializeAction, OpenTargetAction, LoginAction
from classpilot.actions.impl_classroom import JoinClassAction, HealthCheckAction


@dataclass
class ActionRegistry:
    mapping: Dict[StageName, BaseAction]

    def get(self, stage: StageName) -> BaseAction:
        return self.mapping[stage]

    def validate(self, topology: StageTopology) -> None:
        missing = [name.value for name in topology.names if name not in self.mapping]
        if missing:
            raise ValueError(f"No action bound for stages: {', '.join(missing)}")

    @staticmethod
    def default() -> "ActionRegistry":
        return ActionRegistry(mapping={
            StageName.INITIALIZATION: InitializeAction(),
            StageName.OPEN_TARGET: OpenTargetAction(),
            StageName.LOGIN: LoginAction(),
            StageName.JOIN_CLASS: JoinClassAction(),
            StageName.HEALTH_CHECK: HealthCheckAction(),
        })
