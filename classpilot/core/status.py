from __future__ import annotations
from classpilot.core.topology import StageTopology
from classpilot.core.workflow import SystemStatus, WorkflowState


def aggregate_status(workflow: WorkflowState, topology: StageTopology) -> SystemStatus:
    """Three-level health summary derived from the workflow position and stage records."""
    if workflow.failed:
        if workflow.exhausted:
            return SystemStatus.FAILED
        if any(record.retriable for _, record in topology):
            return SystemStatus.DEGRADED
        return SystemStatus.FAILED

    if topology.steady_entry is not None and workflow.stage is topology.steady_entry:
        return SystemStatus.HEALTHY

    total = len(topology)
    completed = sum(1 for _, record in topology if record.succeeded)
    if completed == total:
        return SystemStatus.HEALTHY
    if completed > 0:
        return SystemStatus.DEGRADED
    return SystemStatus.FAILED
