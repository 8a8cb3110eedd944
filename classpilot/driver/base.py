from __future__ import annotations
from typing import Any, List, Optional


class DriverError(Exception):
    """Raised by drivers when a browser operation cannot be completed."""


class DriverTimeout(DriverError):
    pass


class BrowserDriver:
    """Browser capability consumed by stage actions and the presence probe.

    Element handles are opaque to callers; they are only passed back into
    ``read_text``, ``click`` and ``fill``.
    """

    async def start(self) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        raise NotImplementedError

    def is_connected(self) -> bool:
        raise NotImplementedError

    def current_url(self) -> str:
        raise NotImplementedError

    async def navigate(self, url: str) -> None:
        raise NotImplementedError

    async def query_selector(self, selector: str) -> Optional[Any]:
        raise NotImplementedError

    async def query_selector_all(self, selector: str) -> List[Any]:
        raise NotImplementedError

    async def wait_for_selector(self, selector: str, timeout_ms: int = 5000) -> Optional[Any]:
        raise NotImplementedError

    async def read_text(self, handle: Any) -> str:
        raise NotImplementedError

    async def click(self, handle: Any) -> None:
        raise NotImplementedError

    async def fill(self, handle: Any, text: str) -> None:
        raise NotImplementedError

    async def press(self, key: str) -> None:
        raise NotImplementedError

    async def wait_for_navigation(self, timeout_ms: int = 10000) -> None:
        raise NotImplementedError

    async def screenshot(self) -> bytes:
        raise NotImplementedError
