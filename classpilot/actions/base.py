from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict
from classpilot.core.workflow import StageName

if TYPE_CHECKING:
    from classpilot.core.engine import WorkflowContext


@dataclass
class ActionResult:
    stage: StageName
    ok: bool
    message: str
    details: Dict[str, Any] = field(default_factory=dict)


class BaseAction:
    stage: StageName

    async def run(self, ctx: "WorkflowContext") -> ActionResult:
        raise NotImplementedError
