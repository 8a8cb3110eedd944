import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from classpilot.actions.presence_probe import SelectorPresenceProbe
from classpilot.api.routes_health import router as health_router
from classpilot.api.routes_sessions import router as sessions_router
from classpilot.auth.sessions import SessionStore
from classpilot.core.config import Settings, settings as default_settings
from classpilot.core.engine import WorkflowEngine
from classpilot.core.logging import configure_logging
from classpilot.core.presence import PresenceDetector
from classpilot.driver.playwright_driver import PlaywrightDriver
from classpilot.driver.timeouts import TimeoutDriver

log = logging.getLogger(__name__)


def build_engine(settings: Settings) -> WorkflowEngine:
    """Wire one tenant's orchestrator to a Playwright browser."""
    driver = TimeoutDriver(
        PlaywrightDriver(headless=settings.headless, navigation_timeout_ms=settings.navigation_timeout_ms),
        timeout_seconds=settings.driver_timeout_seconds,
    )
    presence = None
    if settings.identity_marker:
        presence = PresenceDetector(SelectorPresenceProbe(driver, settings))
    return WorkflowEngine(settings=settings, driver=driver, presence=presence)


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[WorkflowEngine] = None,
    start_monitoring: bool = True,
) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events."""
        log.info("Starting automation service...", extra={"tenant": settings.tenant})
        if app.state.engine is None:
            app.state.engine = build_engine(settings)
        if start_monitoring:
            app.state.engine.start_monitoring()
        yield
        log.info("Shutting down automation service...", extra={"tenant": settings.tenant})
        await app.state.engine.shutdown()

    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.sessions = SessionStore(secret=settings.jwt_secret, ttl_ms=settings.jwt_ttl_ms)
    app.include_router(health_router, tags=["health"])
    app.include_router(sessions_router, tags=["sessions"])
    return app


configure_logging(default_settings.log_level)
app = create_app()
