import logging
from typing import Any, Optional, Sequence
from classpilot.actions.base import BaseAction, ActionResult
from classpilot.core.workflow import StageName, WorkflowStage
from classpilot.driver.base import BrowserDriver, DriverError

log = logging.getLogger(__name__)

USERNAME_SELECTORS = (
    "input[name='username']",
    "input#username",
    "input[placeholder='Username']",
    "input[type='email']",
    "input[type='text']",
)
PASSWORD_SELECTORS = (
    "input[name='password']",
    "input#password",
    "input[placeholder='Password']",
    "input[type='password']",
)
SUBMIT_SELECTORS = (
    "button[type='submit']",
    "button#login",
    "button.loginBtn",
)


async def find_first(driver: BrowserDriver, selectors: Sequence[str]) -> Optional[Any]:
    for selector in selectors:
        handle = await driver.query_selector(selector)
        if handle is not None:
            return handle
    return None


class InitializeAction(BaseAction):
    stage = StageName.INITIALIZATION

    async def run(self, ctx):
        missing = ctx.settings.missing_fields()
        if missing:
            return ActionResult(self.stage, False, f"Missing configuration: {', '.join(missing)}")
        try:
            await ctx.driver.start()
        except DriverError as e:
            return ActionResult(self.stage, False, f"Browser start failed: {e}")
        ctx.workflow.advance(WorkflowStage.INITIALIZED)
        log.info("System initialized successfully", extra={"tenant": ctx.tenant, "stage": self.stage.value})
        return ActionResult(self.stage, True, "Initialized")


class OpenTargetAction(BaseAction):
    stage = StageName.OPEN_TARGET

    async def run(self, ctx):
        home_url = ctx.settings.home_url
        try:
            await ctx.driver.start()
            log.info("Opening home URL %s", home_url, extra={"tenant": ctx.tenant, "stage": self.stage.value})
            await ctx.driver.navigate(home_url)
            if await ctx.driver.wait_for_selector("body", timeout_ms=5000) is None:
                raise DriverError("page body did not render")
        except DriverError as e:
            # Next attempt starts from a fresh browser.
            await ctx.driver.close()
            return ActionResult(self.stage, False, f"Failed to open target URL: {e}")
        ctx.workflow.advance(WorkflowStage.OPENED_TARGET_URL)
        return ActionResult(self.stage, True, "Home page loaded", {"url": home_url})


class LoginAction(BaseAction):
    stage = StageName.LOGIN

    async def run(self, ctx):
        driver = ctx.driver
        extra = {"tenant": ctx.tenant, "stage": self.stage.value}
        try:
            if not driver.current_url().startswith(ctx.settings.home_url):
                try:
                    await driver.navigate(ctx.settings.home_url)
                except DriverError as e:
                    log.debug("Navigation back to login page failed: %s", e, extra=extra)

            username_input = await find_first(driver, USERNAME_SELECTORS)
            password_input = await find_first(driver, PASSWORD_SELECTORS)
            if username_input is None or password_input is None:
                return ActionResult(
                    self.stage, False, f"Login form inputs not found (url={driver.current_url()})"
                )

            await driver.fill(username_input, ctx.settings.username)
            await driver.fill(password_input, ctx.settings.password)

            submit = await find_first(driver, SUBMIT_SELECTORS)
            if submit is not None:
                await driver.click(submit)
            else:
                await driver.press("Enter")

            try:
                await driver.wait_for_navigation(timeout_ms=10000)
            except DriverError as e:
                log.debug("No navigation after login submit: %s", e, extra=extra)
        except DriverError as e:
            return ActionResult(self.stage, False, f"Login failed: {e}")

        ctx.workflow.advance(WorkflowStage.LOGGED_IN)
        log.info("Login successful", extra=extra)
        return ActionResult(self.stage, True, "Logged in")
