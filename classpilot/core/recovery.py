from __future__ import annotations
import logging
from typing import Optional
from classpilot.core.topology import StageTopology
from classpilot.core.workflow import StageName, WorkflowStage, WorkflowState

log = logging.getLogger(__name__)


class RecoveryPolicy:
    """Rewinds a FAILED workflow to the position before the blocking stage."""

    def __init__(self, topology: StageTopology, workflow: WorkflowState, tenant: str = "-"):
        self.topology = topology
        self.workflow = workflow
        self.tenant = tenant

    def find_failed_stage(self) -> Optional[StageName]:
        for name, record in self.topology:
            if not record.succeeded:
                return name
        return None

    def recover(self, failed_stage: StageName) -> WorkflowStage:
        target = self.topology.predecessor(failed_stage)
        self.workflow.advance(target)
        return target

    def run(self) -> bool:
        """Attempt recovery from FAILED. Returns True when the workflow was rewound."""
        if not self.workflow.failed:
            return False
        if self.workflow.exhausted:
            log.debug("Workflow exhausted, no recovery", extra={"tenant": self.tenant, "stage": "failed"})
            return False

        failed_stage = self.find_failed_stage()
        if failed_stage is not None and not self.topology[failed_stage].exhausted:
            target = self.recover(failed_stage)
            log.info(
                "Recovering from failed stage %s, rewinding to %s",
                failed_stage.value, target.value,
                extra={"tenant": self.tenant, "stage": failed_stage.value},
            )
            return True

        log.error("Maximum retries exceeded, system remains failed",
                  extra={"tenant": self.tenant, "stage": "failed"})
        self.workflow.exhausted = True
        return False
