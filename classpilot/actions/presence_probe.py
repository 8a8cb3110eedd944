from __future__ import annotations
import logging
from typing import List, Sequence
from classpilot.core.config import Settings
from classpilot.core.presence import DetectionMethod, PresenceProbe
from classpilot.driver.base import BrowserDriver, DriverError

log = logging.getLogger(__name__)


def _css_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class SelectorPresenceProbe(PresenceProbe):
    """Presence signals read from the classroom page through CSS selectors."""

    def __init__(self, driver: BrowserDriver, settings: Settings):
        identity = settings.identity_marker
        if not identity:
            raise ValueError("presence probe needs email_prefix or username")
        self.driver = driver
        self.identity = identity.lower()
        self.toggle_selector = settings.participants_toggle_selector
        self.close_selector = settings.participants_close_selector
        self.panel_selector = settings.participants_panel_selector
        self.name_selector = settings.participant_name_selector

    async def quick_check(self) -> bool:
        body = await self.driver.query_selector("body")
        if body is None:
            return False
        return self.identity in (await self.driver.read_text(body)).lower()

    async def open_panel(self) -> bool:
        toggle = await self.driver.query_selector(self.toggle_selector)
        if toggle is None:
            log.debug("Participants toggle %s not found", self.toggle_selector)
            return False
        await self.driver.click(toggle)
        if await self.driver.wait_for_selector(self.panel_selector, timeout_ms=3000) is None:
            log.debug("Participant panel %s did not render", self.panel_selector)
            return False
        return True

    async def close_panel(self) -> None:
        button = await self.driver.query_selector(self.close_selector)
        if button is None:
            button = await self.driver.query_selector(self.toggle_selector)
        if button is not None:
            await self.driver.click(button)

    def methods(self) -> Sequence[DetectionMethod]:
        return [
            DetectionMethod("attribute_match", self._attribute_match),
            DetectionMethod("class_text_scan", self._class_text_scan),
            DetectionMethod("container_text_scan", self._container_text_scan),
        ]

    async def _attribute_match(self) -> bool:
        ident = _css_string(self.identity)
        selector = (
            f"{self.panel_selector} [data-participant-id*='{ident}' i], "
            f"{self.panel_selector} [aria-label*='{ident}' i]"
        )
        return await self.driver.query_selector(selector) is not None

    async def _class_text_scan(self) -> bool:
        rows: List = await self.driver.query_selector_all(f"{self.panel_selector} {self.name_selector}")
        if not rows:
            raise DriverError(f"no {self.name_selector} rows in participant panel")
        for row in rows:
            if self.identity in (await self.driver.read_text(row)).lower():
                return True
        return False

    async def _container_text_scan(self) -> bool:
        panel = await self.driver.query_selector(self.panel_selector)
        if panel is None:
            raise DriverError("participant panel not rendered")
        return self.identity in (await self.driver.read_text(panel)).lower()
