from __future__ import annotations
from dataclasses import dataclass, field
from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest
from classpilot.core.topology import StageTopology
from classpilot.core.workflow import StageName, SystemStatus

STATUS_VALUES = {SystemStatus.HEALTHY: 2, SystemStatus.DEGRADED: 1, SystemStatus.FAILED: 0}


@dataclass
class OrchestratorMetrics:
    """Prometheus collectors for one orchestrator instance."""
    tenant: str
    registry: CollectorRegistry = field(default_factory=CollectorRegistry)

    def __post_init__(self) -> None:
        self.ticks = Counter(
            "classpilot_monitor_ticks",
            "Monitor loop ticks by outcome",
            ["tenant", "outcome"],
            registry=self.registry,
        )
        self.stage_attempts = Counter(
            "classpilot_stage_attempts",
            "Stage action attempts by outcome",
            ["tenant", "stage", "outcome"],
            registry=self.registry,
        )
        self.system_status = Gauge(
            "classpilot_system_status",
            "System status (2=healthy, 1=degraded, 0=failed)",
            ["tenant"],
            registry=self.registry,
        )
        self.stage_retries = Gauge(
            "classpilot_stage_retries",
            "Retries spent per stage",
            ["tenant", "stage"],
            registry=self.registry,
        )

    def record_tick(self, outcome: str) -> None:
        self.ticks.labels(tenant=self.tenant, outcome=outcome).inc()

    def record_attempt(self, stage: StageName, ok: bool) -> None:
        self.stage_attempts.labels(
            tenant=self.tenant, stage=stage.value, outcome="success" if ok else "failure"
        ).inc()

    def observe(self, status: SystemStatus, topology: StageTopology) -> None:
        self.system_status.labels(tenant=self.tenant).set(STATUS_VALUES[status])
        for name, record in topology:
            self.stage_retries.labels(tenant=self.tenant, stage=name.value).set(record.current_retries)

    def render(self) -> bytes:
        return generate_latest(self.registry)
