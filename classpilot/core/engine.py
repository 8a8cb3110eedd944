from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Optional
from classpilot.actions.registry import ActionRegistry
from classpilot.core.config import Settings
from classpilot.core.executor import StageExecutor
from classpilot.core.metrics import OrchestratorMetrics
from classpilot.core.mutex import NonBlockingMutex
from classpilot.core.presence import PresenceDetector
from classpilot.core.recovery import RecoveryPolicy
from classpilot.core.scheduler import MonitorScheduler
from classpilot.core.status import aggregate_status
from classpilot.core.topology import StageTopology, default_topology, utcnow
from classpilot.core.workflow import SystemStatus, WorkflowStage, WorkflowState
from classpilot.driver.base import BrowserDriver
from classpilot.schemas.status import StageRecordOut, StatusSnapshot

log = logging.getLogger(__name__)


@dataclass
class WorkflowContext:
    """Everything a stage action may read or mutate."""
    tenant: str
    settings: Settings
    driver: BrowserDriver
    workflow: WorkflowState
    topology: StageTopology
    presence: Optional[PresenceDetector] = None
    join_mutex: NonBlockingMutex = field(default_factory=lambda: NonBlockingMutex("join"))
    execution_count: int = 0


class WorkflowEngine:
    """Self-healing orchestrator for one tenant.

    Each ``tick`` advances the workflow by at most one stage action, or runs
    recovery when the workflow sits in FAILED. Overlapping ticks are dropped.
    """

    def __init__(
        self,
        settings: Settings,
        driver: BrowserDriver,
        registry: Optional[ActionRegistry] = None,
        topology: Optional[StageTopology] = None,
        presence: Optional[PresenceDetector] = None,
        metrics: Optional[OrchestratorMetrics] = None,
    ):
        self.settings = settings
        self.tenant = settings.tenant
        self.topology = topology or default_topology()
        self.registry = registry or ActionRegistry.default()
        self.registry.validate(self.topology)
        self.workflow = WorkflowState(stage=self.topology.initial_stage)
        self.metrics = metrics or OrchestratorMetrics(tenant=self.tenant)
        self.ctx = WorkflowContext(
            tenant=self.tenant,
            settings=settings,
            driver=driver,
            workflow=self.workflow,
            topology=self.topology,
            presence=presence,
        )
        self.executor = StageExecutor(
            topology=self.topology,
            workflow=self.workflow,
            registry=self.registry,
            ctx=self.ctx,
            on_attempt=self.metrics.record_attempt,
        )
        self.recovery = RecoveryPolicy(self.topology, self.workflow, tenant=self.tenant)
        self.monitor_mutex = NonBlockingMutex("monitor")
        self.scheduler: Optional[MonitorScheduler] = None
        self.start_time = utcnow()
        # Recomputed after every tick; nothing has been attempted yet.
        self.system_status = SystemStatus.HEALTHY
        log.info("Automation initialized", extra={"tenant": self.tenant, "stage": self.workflow.stage.value})

    @property
    def current_stage(self) -> WorkflowStage:
        return self.workflow.stage

    @property
    def execution_count(self) -> int:
        return self.ctx.execution_count

    async def tick(self) -> bool:
        """One monitor cycle. Returns False when skipped because a cycle is still running."""
        with self.monitor_mutex.hold() as token:
            if token is None:
                log.debug("Previous monitoring cycle still running, skipping",
                          extra={"tenant": self.tenant, "stage": self.workflow.stage.value})
                self.metrics.record_tick("skipped")
                return False

            internal_error = False
            try:
                await self._dispatch()
            except Exception as e:
                internal_error = True
                log.exception("Error in monitoring execution: %s", e,
                              extra={"tenant": self.tenant, "stage": self.workflow.stage.value})

        status = aggregate_status(self.workflow, self.topology)
        if internal_error and status is SystemStatus.HEALTHY:
            status = SystemStatus.DEGRADED
        self.system_status = status
        self.metrics.record_tick("error" if internal_error else "ok")
        self.metrics.observe(self.system_status, self.topology)
        return True

    async def _dispatch(self) -> None:
        stage = self.workflow.stage
        log.debug("Monitoring execution", extra={"tenant": self.tenant, "stage": stage.value})
        if stage is WorkflowStage.FAILED:
            self.recovery.run()
            return
        await self.executor.attempt_stage(self.topology.stage_at(stage))

    def start_monitoring(self, interval_seconds: Optional[float] = None) -> MonitorScheduler:
        if self.scheduler is not None:
            raise RuntimeError("Monitoring already started")
        interval = interval_seconds or self.settings.monitoring_interval_seconds
        self.scheduler = MonitorScheduler(self.tick, interval, name=self.tenant)
        self.scheduler.start()
        return self.scheduler

    async def stop_monitoring(self) -> None:
        if self.scheduler is None:
            return
        await self.scheduler.stop()
        self.scheduler = None

    async def shutdown(self) -> None:
        log.info("Shutting down automation system...", extra={"tenant": self.tenant})
        await self.stop_monitoring()
        try:
            await self.ctx.driver.close()
        except Exception as e:
            log.warning("Closing driver failed: %s", e, extra={"tenant": self.tenant})
        log.info("Shutdown complete", extra={"tenant": self.tenant})

    def snapshot(self) -> StatusSnapshot:
        return StatusSnapshot(
            tenant=self.tenant,
            username=self.settings.username,
            status=self.system_status,
            timestamp=utcnow(),
            start_time=self.start_time,
            current_stage=self.workflow.stage,
            execution_count=self.ctx.execution_count,
            stage_status={
                name.value: StageRecordOut(
                    max_retries=record.max_retries,
                    current_retries=record.current_retries,
                    last_attempt=record.last_attempt_at,
                    last_error=record.last_error,
                    success=record.succeeded,
                    last_success_time=record.last_success_at,
                )
                for name, record in self.topology
            },
            message="Automation service running",
        )
