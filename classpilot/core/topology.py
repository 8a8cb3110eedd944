from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Tuple

from classpilot.core.workflow import StageName, WorkflowStage


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class StageRecord:
    max_retries: int
    current_retries: int = 0
    last_attempt_at: Optional[str] = None
    last_error: Optional[str] = None
    succeeded: bool = False
    last_success_at: Optional[str] = None

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")

    @property
    def exhausted(self) -> bool:
        return self.current_retries >= self.max_retries

    @property
    def retriable(self) -> bool:
        return not self.succeeded and self.current_retries < self.max_retries

    def mark_attempt(self) -> None:
        self.last_attempt_at = utcnow()

    def mark_success(self) -> None:
        self.succeeded = True
        self.last_success_at = utcnow()
        self.last_error = None

    def mark_failure(self, error: Optional[str] = None) -> None:
        self.succeeded = False
        if self.current_retries < self.max_retries:
            self.current_retries += 1
        if error is not None:
            self.last_error = error


@dataclass(frozen=True)
class StageDefinition:
    """Static description of one stage.

    ``entry`` is the workflow position in which the stage runs; it doubles as the
    rollback target (the predecessor) when the stage has to be retried from scratch.
    """
    name: StageName
    max_retries: int
    entry: WorkflowStage


@dataclass
class StageTopology:
    definitions: List[StageDefinition]
    steady_stage: Optional[StageName] = None
    records: Dict[StageName, StageRecord] = field(init=False)
    _by_entry: Dict[WorkflowStage, StageName] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.definitions:
            raise ValueError("topology needs at least one stage")
        self.records = {}
        self._by_entry = {}
        for d in self.definitions:
            if d.name in self.records:
                raise ValueError(f"duplicate stage {d.name.value}")
            if d.entry is WorkflowStage.FAILED:
                raise ValueError(f"stage {d.name.value} cannot run in the failed position")
            if d.entry in self._by_entry:
                raise ValueError(
                    f"position {d.entry.value} already runs {self._by_entry[d.entry].value}"
                )
            self.records[d.name] = StageRecord(max_retries=d.max_retries)
            self._by_entry[d.entry] = d.name
        if self.steady_stage is not None and self.steady_stage not in self.records:
            raise ValueError(f"steady stage {self.steady_stage.value} is not in the topology")

    def __iter__(self) -> Iterator[Tuple[StageName, StageRecord]]:
        return iter(self.records.items())

    def __len__(self) -> int:
        return len(self.records)

    def __getitem__(self, name: StageName) -> StageRecord:
        return self.records[name]

    @property
    def names(self) -> List[StageName]:
        return [d.name for d in self.definitions]

    @property
    def initial_stage(self) -> WorkflowStage:
        return self.definitions[0].entry

    @property
    def steady_entry(self) -> Optional[WorkflowStage]:
        if self.steady_stage is None:
            return None
        return self.definition(self.steady_stage).entry

    def definition(self, name: StageName) -> StageDefinition:
        for d in self.definitions:
            if d.name is name:
                return d
        raise KeyError(name)

    def stage_at(self, position: WorkflowStage) -> StageName:
        """Stage that runs when the workflow sits at ``position``."""
        return self._by_entry[position]

    def predecessor(self, name: StageName) -> WorkflowStage:
        return self.definition(name).entry

    def positions(self) -> List[WorkflowStage]:
        return list(self._by_entry)


def default_topology() -> StageTopology:
    return StageTopology(
        definitions=[
            StageDefinition(StageName.INITIALIZATION, 3, WorkflowStage.INITIAL),
            StageDefinition(StageName.OPEN_TARGET, 5, WorkflowStage.INITIALIZED),
            StageDefinition(StageName.LOGIN, 5, WorkflowStage.OPENED_TARGET_URL),
            StageDefinition(StageName.JOIN_CLASS, 5, WorkflowStage.LOGGED_IN),
            StageDefinition(StageName.HEALTH_CHECK, 3, WorkflowStage.JOINED_CLASS),
        ],
        steady_stage=StageName.HEALTH_CHECK,
    )
