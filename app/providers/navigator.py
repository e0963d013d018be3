import logging

from selenium.common.exceptions import WebDriverException

from app.config import settings
from app.errors import ElementNotFoundError, NavigationFailedError
from app.providers.browser_session import BrowserSession
from app.providers.icbc_dom_schema import DOM
from app.providers.locators import ElementResolver
from app.providers.page_actions import click, scroll_into_view
from app.providers.wait_helper import WaitStrategy

logger = logging.getLogger(__name__)

CLICK_DELAY_SECONDS = 0.5


class Navigator:
    """Moves from the post-login overview into the reschedule workflow."""

    def __init__(self, wait_strategy: WaitStrategy | None = None) -> None:
        self.wait = wait_strategy or WaitStrategy()

    def navigate_to_scheduling(self, session: BrowserSession) -> None:
        """
        Open the scheduling workflow.

        Finds the "Reschedule appointment" action through its fallback chain,
        clicks it (forcing the click if something overlays it), then accepts the
        optional "Yes" confirmation dialog.

        Raises:
            NavigationFailedError: the reschedule action could not be located or clicked
            TimeoutExceededError: the page did not settle before or after the click
        """
        driver = session.driver
        resolver = ElementResolver(driver)
        logger.debug("Navigating to appointment section")

        self.wait.wait_for_page_idle(driver)

        try:
            reschedule = resolver.wait_for(
                DOM.NAVIGATION.reschedule_button,
                "reschedule appointment button",
                timeout=settings.element_wait_timeout_seconds,
            )[0]
        except ElementNotFoundError as e:
            logger.error(f"Failed to find reschedule button: {e}")
            session.capture_snapshot("reschedule_button")
            raise NavigationFailedError("Reschedule appointment action not found") from e

        try:
            scroll_into_view(driver, reschedule)
            self.wait.pause(CLICK_DELAY_SECONDS)
            click(driver, reschedule)
            logger.debug("Clicked reschedule appointment button")
        except WebDriverException as e:
            session.capture_snapshot("reschedule_click")
            raise NavigationFailedError(f"Could not click reschedule button: {e.msg}") from e

        self._confirm_reschedule(resolver)

        self.wait.wait_for_page_idle(driver)

    def _confirm_reschedule(self, resolver: ElementResolver) -> None:
        try:
            confirm = resolver.wait_for(
                DOM.NAVIGATION.confirm_yes_button,
                "reschedule confirmation",
                timeout=settings.confirmation_timeout_seconds,
            )[0]
            click(resolver.driver, confirm)
            logger.debug("Confirmed reschedule")
        except ElementNotFoundError:
            logger.info("No reschedule confirmation dialog appeared")
        except WebDriverException as e:
            logger.warning(f"Could not click confirmation dialog: {e.msg}")
