"""
Presence detection for a joined participant.

Several independent, fallible signals vote on whether the participant is
still listed in the live session:

1. A cheap single-shot check runs first; a positive answer short-circuits
   everything else.
2. Otherwise the participant panel is opened. When its toggle is missing or
   the panel never renders the verdict falls back to
   ``ASSUME_PRESENT_WHEN_UNVERIFIABLE``.
3. Each detection method runs against the open panel. Methods that raise are
   left out of the vote entirely.
4. The participant is present iff the share of positive votes among the
   methods that ran reaches ``FAULT_TOLERANCE_THRESHOLD``. With no method able
   to run the verdict is absent.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Awaitable, Callable, List, Optional, Sequence

log = logging.getLogger(__name__)

# At least one in three available signals has to confirm presence.
FAULT_TOLERANCE_THRESHOLD = Fraction(1, 3)

# Fail-open when the participant panel cannot be opened at all.
ASSUME_PRESENT_WHEN_UNVERIFIABLE = True


@dataclass(frozen=True)
class DetectionMethod:
    name: str
    check: Callable[[], Awaitable[bool]]


@dataclass(frozen=True)
class PresenceVote:
    method: str
    executed: bool
    present: Optional[bool] = None


@dataclass
class PresenceVerdict:
    present: bool
    reason: str
    votes: List[PresenceVote] = field(default_factory=list)

    @property
    def total_methods_executed(self) -> int:
        return sum(1 for v in self.votes if v.executed)

    @property
    def successful_methods(self) -> int:
        return sum(1 for v in self.votes if v.executed and v.present)

    @property
    def success_rate(self) -> Optional[Fraction]:
        if self.total_methods_executed == 0:
            return None
        return Fraction(self.successful_methods, self.total_methods_executed)


class PresenceProbe:
    """Site-specific signals the detector combines."""

    async def quick_check(self) -> bool:
        raise NotImplementedError

    async def open_panel(self) -> bool:
        """Open the participant view. Returns False when it cannot be shown."""
        raise NotImplementedError

    def methods(self) -> Sequence[DetectionMethod]:
        raise NotImplementedError

    async def close_panel(self) -> None:
        raise NotImplementedError


async def collect_votes(methods: Sequence[DetectionMethod]) -> List[PresenceVote]:
    votes: List[PresenceVote] = []
    for method in methods:
        try:
            present = bool(await method.check())
        except Exception as e:
            log.debug("Detection method %s could not run: %s", method.name, e)
            votes.append(PresenceVote(method=method.name, executed=False))
            continue
        votes.append(PresenceVote(method=method.name, executed=True, present=present))
    return votes


def decide(votes: List[PresenceVote], threshold: Fraction = FAULT_TOLERANCE_THRESHOLD) -> PresenceVerdict:
    verdict = PresenceVerdict(present=False, reason="", votes=votes)
    rate = verdict.success_rate
    if rate is None:
        verdict.reason = "no detection method could run"
        return verdict
    verdict.present = rate >= threshold
    verdict.reason = (
        f"{verdict.successful_methods}/{verdict.total_methods_executed} detection methods "
        f"{'confirmed' if verdict.present else 'did not confirm'} presence"
    )
    return verdict


class PresenceDetector:
    def __init__(
        self,
        probe: PresenceProbe,
        threshold: Fraction = FAULT_TOLERANCE_THRESHOLD,
        assume_present_when_unverifiable: bool = ASSUME_PRESENT_WHEN_UNVERIFIABLE,
    ):
        self.probe = probe
        self.threshold = threshold
        self.assume_present_when_unverifiable = assume_present_when_unverifiable

    async def check(self) -> PresenceVerdict:
        try:
            if await self.probe.quick_check():
                return PresenceVerdict(present=True, reason="identity marker visible")
        except Exception as e:
            log.debug("Quick presence check failed: %s", e)

        try:
            opened = await self.probe.open_panel()
        except Exception as e:
            log.warning("Opening participant panel failed: %s", e)
            opened = False
        if not opened:
            return PresenceVerdict(
                present=self.assume_present_when_unverifiable,
                reason="participant panel unavailable",
            )

        try:
            votes = await collect_votes(self.probe.methods())
        finally:
            try:
                await self.probe.close_panel()
            except Exception as e:
                log.debug("Closing participant panel failed: %s", e)

        verdict = decide(votes, self.threshold)
        log.debug("Presence verdict: %s (%s)", verdict.present, verdict.reason)
        return verdict
