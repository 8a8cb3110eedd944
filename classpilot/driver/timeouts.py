"""
Uniform time bound for every suspending driver call.

A stuck navigation or selector query would otherwise hold the monitor mutex
forever and every later tick would be dropped.
"""
from __future__ import annotations
import asyncio
from typing import Any, Awaitable, List, Optional, TypeVar
from classpilot.driver.base import BrowserDriver, DriverTimeout

T = TypeVar("T")


class TimeoutDriver(BrowserDriver):
    def __init__(self, inner: BrowserDriver, timeout_seconds: float):
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self.inner = inner
        self.timeout_seconds = timeout_seconds

    async def _bounded(self, op: str, aw: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(aw, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise DriverTimeout(f"{op} timed out after {self.timeout_seconds:g}s") from e

    async def start(self) -> None:
        await self._bounded("start", self.inner.start())

    async def close(self) -> None:
        await self._bounded("close", self.inner.close())

    def is_connected(self) -> bool:
        return self.inner.is_connected()

    def current_url(self) -> str:
        return self.inner.current_url()

    async def navigate(self, url: str) -> None:
        await self._bounded(f"navigate({url})", self.inner.navigate(url))

    async def query_selector(self, selector: str) -> Optional[Any]:
        return await self._bounded(f"query_selector({selector})", self.inner.query_selector(selector))

    async def query_selector_all(self, selector: str) -> List[Any]:
        return await self._bounded(f"query_selector_all({selector})", self.inner.query_selector_all(selector))

    async def wait_for_selector(self, selector: str, timeout_ms: int = 5000) -> Optional[Any]:
        return await self._bounded(
            f"wait_for_selector({selector})", self.inner.wait_for_selector(selector, timeout_ms)
        )

    async def read_text(self, handle: Any) -> str:
        return await self._bounded("read_text", self.inner.read_text(handle))

    async def click(self, handle: Any) -> None:
        await self._bounded("click", self.inner.click(handle))

    async def fill(self, handle: Any, text: str) -> None:
        await self._bounded("fill", self.inner.fill(handle, text))

    async def press(self, key: str) -> None:
        await self._bounded(f"press({key})", self.inner.press(key))

    async def wait_for_navigation(self, timeout_ms: int = 10000) -> None:
        await self._bounded("wait_for_navigation", self.inner.wait_for_navigation(timeout_ms))

    async def screenshot(self) -> bytes:
        return await self._bounded("screenshot", self.inner.screenshot())
