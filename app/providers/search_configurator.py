import logging

from selenium.common.exceptions import WebDriverException
from selenium.webdriver.remote.webelement import WebElement

from app.errors import ElementNotFoundError
from app.models.schemas import AppointmentResults, SearchPreferences
from app.providers.browser_session import BrowserSession
from app.providers.day_selector import DaySelector
from app.providers.icbc_dom_schema import DOM
from app.providers.location_selector import LocationSelector
from app.providers.locators import ElementResolver
from app.providers.page_actions import click, has_class, scroll_into_view
from app.providers.result_parser import ResultParser
from app.providers.wait_helper import WaitStrategy

logger = logging.getLogger(__name__)

RESULTS_SETTLE_SECONDS = 3.0


class SearchConfigurator:
    """
    Applies search preferences to the scheduling form and runs the search.

    Location and day selection are best effort; the only hard failure is a
    search action that cannot be found at all.
    """

    def __init__(
        self,
        wait_strategy: WaitStrategy | None = None,
        location_selector: LocationSelector | None = None,
        day_selector: DaySelector | None = None,
        result_parser: ResultParser | None = None,
    ) -> None:
        self.wait = wait_strategy or WaitStrategy()
        self.location_selector = location_selector or LocationSelector(self.wait)
        self.day_selector = day_selector or DaySelector(self.wait)
        self.result_parser = result_parser or ResultParser(self.wait)
        self._preferred_location: str | None = None

    def configure(self, session: BrowserSession, preferences: SearchPreferences) -> None:
        driver = session.driver
        logger.debug("Configuring search parameters")
        self.wait.wait_for_page_idle(driver)

        self._preferred_location = preferences.preferred_location
        if preferences.preferred_location:
            self.location_selector.select_location(session, preferences.preferred_location)
            driver.execute_script("window.scrollTo(0, document.body.scrollHeight / 2);")
            self.wait.pause(1.0, 0.3)

        days = preferences.ordered_days()
        if days:
            self.day_selector.select_days(session, days)
            driver.execute_script("window.scrollTo(0, document.body.scrollHeight);")
            self.wait.pause(0.5)

    def execute_search(self, session: BrowserSession) -> AppointmentResults:
        """
        Click search and parse whatever the portal returns.

        A disabled search button means required form fields are unsatisfied;
        that is reported as an empty result rather than an error.

        Raises:
            ElementNotFoundError: the search action is missing from the page
        """
        driver = session.driver
        resolver = ElementResolver(driver)
        logger.debug("Executing search")

        try:
            search_button = resolver.resolve_first(DOM.SEARCH.search_button, "search button")
        except ElementNotFoundError:
            session.capture_snapshot("search_button")
            raise

        if self.is_disabled(search_button):
            logger.warning("Search button is disabled - required fields may not be filled")
            session.capture_snapshot("search_disabled")
            return AppointmentResults.empty()

        scroll_into_view(driver, search_button)
        self.wait.pause(0.5)
        click(driver, search_button)
        logger.debug("Clicked search button")

        self.wait.wait_for_page_idle(driver)
        self.wait.pause(RESULTS_SETTLE_SECONDS, 1.0)

        if resolver.exists(DOM.LOCATION.disambiguation_list):
            logger.debug("Location list shown on results page, selecting location")
            self.location_selector.select_from_results(session, self._preferred_location)
            self.wait.wait_for_page_idle(driver)
            self.wait.pause(RESULTS_SETTLE_SECONDS, 1.0)

        return self.result_parser.parse(session)

    def configure_and_search(
        self, session: BrowserSession, preferences: SearchPreferences
    ) -> AppointmentResults:
        self.configure(session, preferences)
        return self.execute_search(session)

    @staticmethod
    def is_disabled(button: WebElement) -> bool:
        try:
            if not button.is_enabled():
                return True
            if button.get_attribute("disabled") is not None:
                return True
            if button.get_attribute("aria-disabled") == "true":
                return True
        except WebDriverException as e:
            logger.debug(f"Could not read search button state: {e.msg}")
            return False
        return any(has_class(button, cls) for cls in DOM.SEARCH.disabled_classes)
