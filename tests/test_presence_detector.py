"""Tests for multi-signal presence voting."""
from fractions import Fraction
from unittest.mock import AsyncMock
import pytest
from classpilot.actions.presence_probe import SelectorPresenceProbe
from classpilot.core.presence import (
    FAULT_TOLERANCE_THRESHOLD,
    DetectionMethod,
    PresenceDetector,
    PresenceProbe,
    PresenceVote,
    collect_votes,
    decide,
)
from classpilot.driver.base import DriverError
from conftest import FakeDriver, TARGET_URL, make_settings


def _method(name, outcome):
    async def check():
        if isinstance(outcome, Exception):
            raise outcome
        return outcome
    return DetectionMethod(name, check)


class FakeProbe(PresenceProbe):
    def __init__(self, quick=False, panel=True, outcomes=(), close_error=None):
        self.quick = quick
        self.panel = panel
        self.outcomes = list(outcomes)
        self.close_error = close_error
        self.methods_requested = 0
        self.closed = 0

    async def quick_check(self):
        if isinstance(self.quick, Exception):
            raise self.quick
        return self.quick

    async def open_panel(self):
        if isinstance(self.panel, Exception):
            raise self.panel
        return self.panel

    def methods(self):
        self.methods_requested += 1
        return [_method(f"m{i}", o) for i, o in enumerate(self.outcomes)]

    async def close_panel(self):
        self.closed += 1
        if self.close_error:
            raise self.close_error


def test_threshold_is_one_third():
    assert FAULT_TOLERANCE_THRESHOLD == Fraction(1, 3)


@pytest.mark.asyncio
async def test_one_of_three_positive_is_present():
    verdict = await PresenceDetector(FakeProbe(outcomes=[True, False, False])).check()
    assert verdict.present
    assert verdict.successful_methods == 1
    assert verdict.total_methods_executed == 3


@pytest.mark.asyncio
async def test_all_negative_is_absent():
    verdict = await PresenceDetector(FakeProbe(outcomes=[False, False, False])).check()
    assert not verdict.present
    assert verdict.success_rate == 0


@pytest.mark.asyncio
async def test_no_executable_methods_is_absent():
    probe = FakeProbe(outcomes=[DriverError("stale"), RuntimeError("gone"), DriverError("x")])
    verdict = await PresenceDetector(probe).check()
    assert not verdict.present
    assert verdict.total_methods_executed == 0
    assert verdict.success_rate is None
    assert verdict.reason == "no detection method could run"


@pytest.mark.asyncio
async def test_empty_method_list_is_absent():
    verdict = await PresenceDetector(FakeProbe(outcomes=[])).check()
    assert not verdict.present


@pytest.mark.asyncio
async def test_raising_method_is_excluded_from_both_counts():
    probe = FakeProbe(outcomes=[DriverError("stale selector"), False, True])
    verdict = await PresenceDetector(probe).check()
    assert verdict.total_methods_executed == 2
    assert verdict.successful_methods == 1
    assert verdict.present
    assert verdict.votes[0] == PresenceVote(method="m0", executed=False)


@pytest.mark.asyncio
async def test_quick_check_short_circuits():
    probe = FakeProbe(quick=True, outcomes=[False, False, False])
    probe.open_panel = AsyncMock(return_value=True)

    verdict = await PresenceDetector(probe).check()

    assert verdict.present
    assert verdict.votes == []
    probe.open_panel.assert_not_called()
    assert probe.methods_requested == 0


@pytest.mark.asyncio
async def test_quick_check_error_falls_through_to_panel():
    probe = FakeProbe(quick=DriverError("no body"), outcomes=[True])
    verdict = await PresenceDetector(probe).check()
    assert verdict.present
    assert probe.methods_requested == 1


@pytest.mark.asyncio
async def test_missing_toggle_fails_open():
    probe = FakeProbe(panel=False, outcomes=[False, False, False])
    verdict = await PresenceDetector(probe).check()
    assert verdict.present
    assert verdict.reason == "participant panel unavailable"
    assert probe.methods_requested == 0


@pytest.mark.asyncio
async def test_missing_toggle_policy_can_fail_safe():
    probe = FakeProbe(panel=False)
    verdict = await PresenceDetector(probe, assume_present_when_unverifiable=False).check()
    assert not verdict.present


@pytest.mark.asyncio
async def test_cleanup_failure_does_not_change_verdict():
    probe = FakeProbe(outcomes=[False, False, True], close_error=DriverError("close button gone"))
    verdict = await PresenceDetector(probe).check()
    assert verdict.present
    assert probe.closed == 1


def test_decide_respects_custom_threshold():
    votes = [PresenceVote("a", True, True), PresenceVote("b", True, False), PresenceVote("c", True, False)]
    assert decide(votes).present
    assert not decide(votes, threshold=Fraction(1, 2)).present


@pytest.mark.asyncio
async def test_collect_votes_records_every_method():
    votes = await collect_votes([_method("a", True), _method("b", ValueError("x"))])
    assert votes == [PresenceVote("a", True, True), PresenceVote("b", False, None)]


def _classroom_driver(panel_rows, panel_text="", with_toggle=True, attribute_hit=False):
    driver = FakeDriver()
    driver.connected = True
    settings = make_settings()
    elements = {"body": ["Welcome to the class"]}
    if with_toggle:
        elements[settings.participants_toggle_selector] = [""]
        elements[settings.participants_panel_selector] = [panel_text]
        elements[f"{settings.participants_panel_selector} {settings.participant_name_selector}"] = panel_rows
    if attribute_hit:
        panel = settings.participants_panel_selector
        elements[
            f"{panel} [data-participant-id*='student' i], {panel} [aria-label*='student' i]"
        ] = [""]
    driver.set_page(TARGET_URL, elements)
    return driver, settings


@pytest.mark.asyncio
async def test_selector_probe_detects_participant_in_panel():
    driver, settings = _classroom_driver(["Alice", "Student One"], panel_text="Alice Student One")
    verdict = await PresenceDetector(SelectorPresenceProbe(driver, settings)).check()
    assert verdict.present
    assert verdict.total_methods_executed == 3
    assert verdict.successful_methods == 2


@pytest.mark.asyncio
async def test_selector_probe_absent_participant():
    driver, settings = _classroom_driver(["Alice", "Bob"], panel_text="Alice Bob")
    verdict = await PresenceDetector(SelectorPresenceProbe(driver, settings)).check()
    assert not verdict.present


@pytest.mark.asyncio
async def test_selector_probe_quick_check_on_body_text():
    driver, settings = _classroom_driver([], with_toggle=False)
    driver.elements["body"][0].text = "Signed in as STUDENT"
    verdict = await PresenceDetector(SelectorPresenceProbe(driver, settings)).check()
    assert verdict.present
    assert "query_selector_all" not in driver.calls


@pytest.mark.asyncio
async def test_selector_probe_without_toggle_fails_open():
    driver, settings = _classroom_driver([], with_toggle=False)
    verdict = await PresenceDetector(SelectorPresenceProbe(driver, settings)).check()
    assert verdict.present
    assert verdict.reason == "participant panel unavailable"


@pytest.mark.asyncio
async def test_selector_probe_panel_not_rendered_fails_open():
    driver = FakeDriver()
    driver.connected = True
    settings = make_settings()
    driver.set_page(TARGET_URL, {"body": ["Welcome"], settings.participants_toggle_selector: [""]})

    verdict = await PresenceDetector(SelectorPresenceProbe(driver, settings)).check()

    assert verdict.present
    assert verdict.reason == "participant panel unavailable"
    assert verdict.votes == []
    assert driver.elements[settings.participants_toggle_selector][0].clicks == 1


def test_selector_probe_needs_identity():
    with pytest.raises(ValueError):
        SelectorPresenceProbe(FakeDriver(), make_settings(email_prefix=None, username=None))
