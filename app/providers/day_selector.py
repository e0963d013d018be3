import logging
from collections.abc import Iterable

from selenium.common.exceptions import WebDriverException
from selenium.webdriver.remote.webelement import WebElement

from app.models.schemas import Weekday
from app.providers.browser_session import BrowserSession
from app.providers.icbc_dom_schema import DOM
from app.providers.locators import ElementResolver
from app.providers.page_actions import has_class, scroll_into_view, text_of
from app.providers.wait_helper import WaitStrategy

logger = logging.getLogger(__name__)


class DaySelector:
    """
    Ticks the preferred day-of-week checkboxes on the search form.

    Selection is best effort: a checkbox that cannot be found, clicked or
    verified is logged (with a snapshot) and the search carries on.
    """

    def __init__(self, wait_strategy: WaitStrategy | None = None) -> None:
        self.wait = wait_strategy or WaitStrategy()

    def select_days(self, session: BrowserSession, days: Iterable[Weekday]) -> dict[Weekday, bool]:
        """
        Returns:
            Mapping of each requested day to whether it is confirmed selected
        """
        days = list(days)
        if not days:
            logger.debug("No preferred days specified, skipping day selection")
            return {}

        logger.debug(f"Selecting {len(days)} preferred days")
        outcome = {}
        for day in days:
            outcome[day] = self._select_day(session, day)
            self.wait.pause(0.2)

        logger.debug(f"Completed day selection: {outcome}")
        return outcome

    def _select_day(self, session: BrowserSession, day: Weekday) -> bool:
        driver = session.driver
        resolver = ElementResolver(driver)
        logger.debug(f"Attempting to select day: {day.display_name}")

        try:
            matches = resolver.find_all(DOM.DAYS.checkbox(day.display_name))
            if not matches:
                logger.warning(f"Could not find checkbox for day: {day.display_name}")
                self._log_all_checkboxes(resolver)
                session.capture_snapshot(f"missing_checkbox_{day.value}")
                return False

            checkbox = matches[0]
            scroll_into_view(driver, checkbox)
            self.wait.pause(0.2)

            if self.is_checked(resolver, checkbox):
                logger.debug(f"{day.display_name} was already selected")
                return True

            checkbox.click()
            logger.debug(f"Clicked checkbox for {day.display_name}")
            self.wait.pause(0.3)

            if self.is_checked(resolver, checkbox):
                logger.debug(f"Confirmed {day.display_name} is now selected")
                return True

            logger.warning(
                f"Failed to confirm {day.display_name} selection - "
                f"classes: {checkbox.get_attribute('class')}"
            )
            return False

        except WebDriverException as e:
            logger.warning(f"Failed to select day {day.display_name}: {e.msg}")
            session.capture_snapshot(f"day_selection_{day.value}")
            return False

    def is_checked(self, resolver: ElementResolver, checkbox: WebElement) -> bool:
        """Material checkboxes carry a checked class; the inner input's aria-checked is the fallback."""
        if has_class(checkbox, DOM.DAYS.checked_class):
            return True
        inputs = resolver.find_all(DOM.DAYS.inner_input, context=checkbox)
        return bool(inputs) and inputs[0].get_attribute("aria-checked") == "true"

    def _log_all_checkboxes(self, resolver: ElementResolver) -> None:
        checkboxes = resolver.find_all(DOM.DAYS.all_checkboxes)
        logger.debug(f"Found {len(checkboxes)} total checkboxes")
        for index, checkbox in enumerate(checkboxes):
            try:
                logger.debug(
                    f"Checkbox {index}: name='{checkbox.get_attribute('name')}', "
                    f"text='{text_of(checkbox)}', classes='{checkbox.get_attribute('class')}'"
                )
            except WebDriverException as e:
                logger.debug(f"Could not read checkbox {index}: {e.msg}")
