from __future__ import annotations
import logging
from typing import TYPE_CHECKING, Callable, Optional
from classpilot.actions.registry import ActionRegistry
from classpilot.core.topology import StageTopology
from classpilot.core.workflow import StageName, WorkflowStage, WorkflowState

if TYPE_CHECKING:
    from classpilot.core.engine import WorkflowContext

log = logging.getLogger(__name__)

AttemptHook = Callable[[StageName, bool], None]


class StageExecutor:
    """Runs one stage action against its retry budget.

    Never raises: action errors are captured into the stage record's
    ``last_error`` and reported through the boolean return value.
    """

    def __init__(
        self,
        topology: StageTopology,
        workflow: WorkflowState,
        registry: ActionRegistry,
        ctx: "WorkflowContext",
        on_attempt: Optional[AttemptHook] = None,
    ):
        self.topology = topology
        self.workflow = workflow
        self.registry = registry
        self.ctx = ctx
        self.on_attempt = on_attempt

    async def attempt_stage(self, name: StageName) -> bool:
        record = self.topology[name]
        extra = {"tenant": self.ctx.tenant, "stage": name.value}

        if record.exhausted:
            log.error("Maximum retries (%d) reached for %s", record.max_retries, name.value, extra=extra)
            self.workflow.advance(WorkflowStage.FAILED)
            return False

        record.mark_attempt()
        try:
            result = await self.registry.get(name).run(self.ctx)
        except Exception as e:
            record.mark_failure(f"Error in {name.value}: {e}")
            log.error(record.last_error, extra=extra)
            self._after_failure(name)
            return False

        if not result.ok:
            record.mark_failure(f"Error in {name.value}: {result.message}")
            log.warning("Stage failed (%d/%d): %s", record.current_retries, record.max_retries,
                        result.message, extra=extra)
            self._after_failure(name)
            return False

        record.mark_success()
        log.debug("Stage succeeded: %s", result.message, extra=extra)
        self._notify(name, True)
        return True

    def _after_failure(self, name: StageName) -> None:
        # Spending the last retry moves the workflow to FAILED right away.
        if self.topology[name].exhausted:
            self.workflow.advance(WorkflowStage.FAILED)
        self._notify(name, False)

    def _notify(self, name: StageName, ok: bool) -> None:
        if self.on_attempt is not None:
            self.on_attempt(name, ok)
