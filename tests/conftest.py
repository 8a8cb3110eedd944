"""Shared fakes for orchestrator tests (no browser, no network)."""
from typing import Dict, List, Optional
import pytest
from classpilot.actions.base import ActionResult, BaseAction
from classpilot.actions.registry import ActionRegistry
from classpilot.core.config import Settings
from classpilot.core.engine import WorkflowEngine
from classpilot.core.topology import StageDefinition, StageTopology
from classpilot.core.workflow import StageName, WorkflowStage
from classpilot.driver.base import BrowserDriver, DriverError

HOME_URL = "https://lms.test/login"
TARGET_URL = "https://lms.test/class/42"


class FakeElement:
    def __init__(self, selector: str, text: str = ""):
        self.selector = selector
        self.text = text
        self.clicks = 0


class FakeDriver(BrowserDriver):
    """In-memory page model. ``routes`` maps url -> {selector: [texts]}."""

    def __init__(self, routes: Optional[Dict[str, Dict[str, List[str]]]] = None):
        self.routes = routes or {}
        self.elements: Dict[str, List[FakeElement]] = {}
        self.url = "about:blank"
        self.connected = False
        self.fail = set()
        self.calls: List[str] = []
        self.filled: Dict[str, str] = {}
        self.pressed: List[str] = []

    def set_page(self, url: str, elements: Dict[str, List[str]]) -> None:
        self.url = url
        self.elements = {sel: [FakeElement(sel, t) for t in texts] for sel, texts in elements.items()}

    def _check(self, op: str) -> None:
        self.calls.append(op)
        if op in self.fail:
            raise DriverError(f"{op} failed")

    async def start(self):
        self._check("start")
        self.connected = True

    async def close(self):
        self.calls.append("close")
        self.connected = False

    def is_connected(self):
        return self.connected

    def current_url(self):
        if not self.connected:
            raise DriverError("No open page")
        return self.url

    async def navigate(self, url):
        self._check("navigate")
        self.set_page(url, self.routes.get(url, {}))

    async def query_selector(self, selector):
        self._check("query_selector")
        found = self.elements.get(selector)
        return found[0] if found else None

    async def query_selector_all(self, selector):
        self._check("query_selector_all")
        return list(self.elements.get(selector, []))

    async def wait_for_selector(self, selector, timeout_ms=5000):
        self._check("wait_for_selector")
        found = self.elements.get(selector)
        return found[0] if found else None

    async def read_text(self, handle):
        self._check("read_text")
        return handle.text

    async def click(self, handle):
        self._check("click")
        handle.clicks += 1

    async def fill(self, handle, text):
        self._check("fill")
        self.filled[handle.selector] = text

    async def press(self, key):
        self._check("press")
        self.pressed.append(key)

    async def wait_for_navigation(self, timeout_ms=10000):
        self._check("wait_for_navigation")

    async def screenshot(self):
        self._check("screenshot")
        return b"\x89PNG"


class ScriptedAction(BaseAction):
    """Returns scripted outcomes in order; the last one repeats."""

    def __init__(self, stage: StageName, outcomes: List, advance_to: Optional[WorkflowStage] = None):
        self.stage = stage
        self.outcomes = list(outcomes)
        self.advance_to = advance_to
        self.calls = 0

    async def run(self, ctx):
        outcome = self.outcomes[min(self.calls, len(self.outcomes) - 1)]
        self.calls += 1
        if isinstance(outcome, Exception):
            raise outcome
        if outcome and self.advance_to is not None:
            ctx.workflow.advance(self.advance_to)
        return ActionResult(self.stage, bool(outcome), "ok" if outcome else "scripted failure")


def make_settings(**overrides) -> Settings:
    values = dict(
        tenant="test",
        username="student",
        password="secret",
        home_url=HOME_URL,
        email_prefix="student",
        target_url=TARGET_URL,
        jwt_secret="test-secret",
        _env_file=None,
    )
    values.update(overrides)
    return Settings(**values)


def two_stage_topology(max_a: int = 2, max_b: int = 2) -> StageTopology:
    return StageTopology(definitions=[
        StageDefinition(StageName.INITIALIZATION, max_a, WorkflowStage.INITIAL),
        StageDefinition(StageName.OPEN_TARGET, max_b, WorkflowStage.INITIALIZED),
    ])


def make_engine(actions: Dict[StageName, BaseAction], topology: Optional[StageTopology] = None,
                driver: Optional[BrowserDriver] = None, **kwargs) -> WorkflowEngine:
    return WorkflowEngine(
        settings=make_settings(),
        driver=driver or FakeDriver(),
        registry=ActionRegistry(mapping=actions),
        topology=topology or two_stage_topology(),
        **kwargs,
    )


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def driver():
    return FakeDriver()
