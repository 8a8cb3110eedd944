import asyncio
import logging
import re
from classpilot.actions.base import BaseAction, ActionResult
from classpilot.core.workflow import StageName, WorkflowStage
from classpilot.driver.base import DriverError

log = logging.getLogger(__name__)


class JoinClassAction(BaseAction):
    stage = StageName.JOIN_CLASS
    render_delay_seconds = 1.0

    async def run(self, ctx):
        extra = {"tenant": ctx.tenant, "stage": self.stage.value}
        with ctx.join_mutex.hold() as token:
            if token is None:
                # A join already in flight counts as success rather than a failed retry.
                log.debug("Join already in progress, skipping", extra=extra)
                return ActionResult(self.stage, True, "Join already in progress")

            ctx.execution_count += 1
            log.info("Joining class (attempt #%d)", ctx.execution_count, extra=extra)
            try:
                await ctx.driver.navigate(ctx.settings.target_url)
                # Client-side routing needs a moment to render.
                await asyncio.sleep(self.render_delay_seconds)
                header = await ctx.driver.wait_for_selector(ctx.settings.classroom_header_selector, timeout_ms=5000)
                text = await ctx.driver.read_text(header) if header is not None else ""
            except DriverError as e:
                return ActionResult(self.stage, False, f"Failed to join class: {e}")

            log.debug('Found header with text: "%s"', text, extra=extra)
            if not re.search(ctx.settings.classroom_header_pattern, text, re.IGNORECASE):
                return ActionResult(self.stage, False, "Classroom view did not load")

            ctx.workflow.advance(WorkflowStage.JOINED_CLASS)
            log.info("Joined class successfully", extra=extra)
            return ActionResult(self.stage, True, "Joined class", {"execution_count": ctx.execution_count})


class HealthCheckAction(BaseAction):
    """Steady-state check that the participant is still in the class."""
    stage = StageName.HEALTH_CHECK

    async def run(self, ctx):
        driver = ctx.driver
        if not driver.is_connected():
            return ActionResult(self.stage, False, "Browser not connected")
        try:
            url = driver.current_url()
        except DriverError as e:
            return ActionResult(self.stage, False, f"Page not available for health check: {e}")

        looks_like_class = "class" in url or ctx.settings.target_url in url
        if not looks_like_class:
            reason = f"Not on class page (url={url})"
            self._session_dropped(ctx, reason)
            return ActionResult(self.stage, False, reason)

        if ctx.presence is not None:
            verdict = await ctx.presence.check()
            if not verdict.present:
                reason = f"Participant no longer present: {verdict.reason}"
                self._session_dropped(ctx, reason)
                return ActionResult(self.stage, False, reason)

        return ActionResult(self.stage, True, "Health check passed")

    def _session_dropped(self, ctx, reason: str) -> None:
        log.info("Resetting to %s stage to rejoin class: %s", WorkflowStage.LOGGED_IN.value, reason,
                 extra={"tenant": ctx.tenant, "stage": self.stage.value})
        ctx.workflow.advance(WorkflowStage.LOGGED_IN)
        ctx.topology[StageName.JOIN_CLASS].mark_failure(reason)
