"""
Location selection on the search form and on the post-search location list.

The location input is a client-rendered autocomplete whose suggestion panel
appears after an unobservable debounce, so selection escalates through several
recovery strategies before giving up and confirming the typed text.
"""

import logging
from collections.abc import Sequence
from enum import IntEnum
from typing import Any

from selenium.common.exceptions import WebDriverException
from selenium.webdriver.common.keys import Keys
from selenium.webdriver.remote.webelement import WebElement

from app.errors import ElementNotFoundError
from app.providers.browser_session import BrowserSession
from app.providers.icbc_dom_schema import DOM
from app.providers.locators import ElementResolver
from app.providers.page_actions import (
    click,
    dispatch_events,
    has_class,
    scroll_into_view,
    text_of,
)
from app.providers.wait_helper import WaitStrategy

logger = logging.getLogger(__name__)

LOCATION_INPUT_TIMEOUT_SECONDS = 10.0
PANEL_TIMEOUT_SECONDS = 2.0
PER_CHARACTER_DELAY_SECONDS = 0.15
SUGGESTION_SETTLE_SECONDS = 3.0
MIN_TOKEN_LENGTH = 4


class MatchTier(IntEnum):
    EXACT = 0
    CONTAINS = 1
    TOKEN = 2


def match_tier(query: str, candidate: str, token_overlap: bool = True) -> MatchTier | None:
    """
    Classify how well a candidate location name matches the user's query.

    EXACT: case-insensitive equality.
    CONTAINS: either string contains the other, the candidate starts with the
        query, or the query contains the candidate's name before its first comma
        (e.g. "Burnaby" vs "Burnaby, BC").
    TOKEN: a shared word longer than three characters
        (e.g. "vancouver" vs "Vancouver Driver Licensing").
    """
    query_norm = query.lower().strip()
    candidate_norm = candidate.lower().strip()
    if not query_norm or not candidate_norm:
        return None

    if candidate_norm == query_norm:
        return MatchTier.EXACT

    head = candidate_norm.split(",")[0].strip()
    if (
        query_norm in candidate_norm
        or candidate_norm.startswith(query_norm)
        or candidate_norm in query_norm
        or (head and head in query_norm)
    ):
        return MatchTier.CONTAINS

    if token_overlap:
        query_words = set(query_norm.split())
        for word in candidate_norm.split():
            if len(word) >= MIN_TOKEN_LENGTH and word in query_words:
                return MatchTier.TOKEN

    return None


def best_match_index(
    query: str, candidates: Sequence[str], token_overlap: bool = True
) -> int | None:
    """Index of the best candidate; an exact match wins outright, ties go to the earliest."""
    best_index: int | None = None
    best_tier: MatchTier | None = None
    for index, candidate in enumerate(candidates):
        tier = match_tier(query, candidate, token_overlap=token_overlap)
        if tier is None:
            continue
        if tier == MatchTier.EXACT:
            return index
        if best_tier is None or tier < best_tier:
            best_index, best_tier = index, tier
    return best_index


class LocationSelector:
    def __init__(self, wait_strategy: WaitStrategy | None = None) -> None:
        self.wait = wait_strategy or WaitStrategy()

    def select_location(self, session: BrowserSession, query: str) -> bool:
        """
        Type a location into the autocomplete and pick the best suggestion.

        Best effort: failures are logged with a snapshot and reported as False.

        Returns:
            True if a suggestion was clicked, False if the typed value was
            confirmed with Enter or selection failed
        """
        if not query or not query.strip():
            logger.debug("No location query provided, skipping location selection")
            return False

        driver = session.driver
        resolver = ElementResolver(driver)
        logger.debug(f"Selecting location: {query}")

        try:
            location_input = resolver.wait_for(
                DOM.LOCATION.location_input,
                "location input",
                timeout=LOCATION_INPUT_TIMEOUT_SECONDS,
            )[0]

            location_input.clear()
            self.wait.pause(0.5)
            location_input.click()

            # Character-by-character typing triggers the autocomplete's keyup handlers
            logger.debug(f"Typing '{query}' character by character")
            for character in query:
                location_input.send_keys(character)
                self.wait.pause(PER_CHARACTER_DELAY_SECONDS, PER_CHARACTER_DELAY_SECONDS)
            self.wait.pause(SUGGESTION_SETTLE_SECONDS, 1.0)

            panel_visible = self._panel_visible(resolver)
            if not panel_visible:
                logger.warning("Suggestion panel not visible after typing, trying recovery")
                panel_visible = self._recover_with_events(resolver, location_input, query)
            if not panel_visible:
                panel_visible = self._recover_with_keyboard(resolver, location_input)
            if not panel_visible:
                panel_visible = self._force_show_hidden_panel(resolver)

            if panel_visible:
                return self._select_from_options(resolver, query)

            self._confirm_typed_value(session, location_input, query)
            return False

        except (ElementNotFoundError, WebDriverException) as e:
            logger.error(f"Failed to select location '{query}': {e}")
            session.capture_snapshot("location_error")
            return False

    def _panel_visible(self, resolver: ElementResolver) -> bool:
        try:
            resolver.wait_for(
                DOM.LOCATION.autocomplete_panel,
                "autocomplete panel",
                timeout=PANEL_TIMEOUT_SECONDS,
            )
            return True
        except ElementNotFoundError:
            return False

    def _recover_with_events(
        self, resolver: ElementResolver, location_input: WebElement, query: str
    ) -> bool:
        logger.debug("Recovery 1: clear, refill and dispatch input events")
        location_input.clear()
        self.wait.pause(0.3)
        location_input.click()
        location_input.send_keys(query)
        dispatch_events(resolver.driver, location_input, "input", "keyup", "focus")
        self.wait.pause(2.0, 0.5)

        if self._panel_visible(resolver):
            logger.debug("Suggestion panel appeared after manual events")
            return True
        logger.warning("Suggestion panel still not visible after manual events")
        return False

    def _recover_with_keyboard(self, resolver: ElementResolver, location_input: WebElement) -> bool:
        logger.debug("Recovery 2: keyboard nudge")
        resolver.driver.execute_script("arguments[0].focus();", location_input)
        self.wait.pause(0.3)
        location_input.send_keys(Keys.ARROW_DOWN)
        self.wait.pause(1.0, 0.5)
        location_input.send_keys(Keys.SPACE)
        self.wait.pause(0.2)
        location_input.send_keys(Keys.BACKSPACE)
        self.wait.pause(1.0, 0.5)

        if self._panel_visible(resolver):
            logger.debug("Suggestion panel appeared after keyboard nudge")
            return True
        logger.warning("Suggestion panel still not visible after keyboard events")
        return False

    def _force_show_hidden_panel(self, resolver: ElementResolver) -> bool:
        logger.debug("Recovery 3: looking for options in a hidden panel")
        hidden_options = resolver.find_all(DOM.LOCATION.autocomplete_options)
        if not hidden_options:
            return False

        logger.debug(f"Found {len(hidden_options)} options in potentially hidden panel")
        resolver.driver.execute_script(DOM.LOCATION.force_show_panel_script)
        self.wait.pause(1.0, 0.3)
        return resolver.exists(DOM.LOCATION.autocomplete_options)

    def _option_text(self, resolver: ElementResolver, option: WebElement) -> str:
        inner = resolver.find_all(DOM.LOCATION.option_text, context=option)
        return text_of(inner[0]) if inner else text_of(option)

    def _select_from_options(self, resolver: ElementResolver, query: str) -> bool:
        options = resolver.find_all(DOM.LOCATION.autocomplete_options)
        if not options:
            logger.warning("Suggestion panel visible but no options found")
            return False

        texts = [self._option_text(resolver, option) for option in options]
        logger.debug(f"Found {len(options)} autocomplete options: {texts}")

        index = best_match_index(query, texts, token_overlap=False)
        if index is None:
            logger.info(f"No option matched '{query}', selecting first available option")
            index = 0

        option = options[index]
        scroll_into_view(resolver.driver, option)
        self.wait.pause(0.2)
        click(resolver.driver, option)
        logger.info(f"Selected location option: '{texts[index]}'")
        self.wait.pause(0.5)
        return True

    def _confirm_typed_value(
        self, session: BrowserSession, location_input: WebElement, query: str
    ) -> None:
        logger.warning(
            f"Autocomplete dropdown never appeared for query '{query}'; "
            "confirming typed value with Enter"
        )
        session.capture_snapshot("location_no_dropdown")
        try:
            location_input.send_keys(Keys.ENTER)
            self.wait.pause(1.0, 0.5)
        except WebDriverException as e:
            logger.warning(f"Failed to press Enter as fallback: {e.msg}")

    def select_from_results(self, session: BrowserSession, preferred: str | None) -> bool:
        """
        Pick a location from the list the portal shows after searching.

        Matching runs over all offered containers with exact > contains > shared
        word tiering; with no match the first container is used. A container
        already marked selected is not clicked again.

        Returns:
            True if a location ended up selected
        """
        driver = session.driver
        resolver = ElementResolver(driver)

        containers = resolver.find_all(DOM.LOCATION.nearest_location)[:1]
        containers += resolver.find_all(DOM.LOCATION.other_locations)
        logger.debug(f"Found {len(containers)} total location options")
        if not containers:
            return False

        titles = []
        for container in containers:
            title_elements = resolver.find_all(DOM.LOCATION.location_title, context=container)
            titles.append(text_of(title_elements[0]) if title_elements else "")

        index = best_match_index(preferred, titles) if preferred else None
        if index is None:
            if preferred:
                logger.warning(
                    f"Could not find a suitable match for location '{preferred}'; "
                    f"available: {titles}"
                )
            index = 0

        try:
            return self._click_location_if_not_selected(
                driver, containers[index], titles[index] or "Unknown"
            )
        except WebDriverException as e:
            logger.error(f"Failed to select location '{titles[index]}': {e.msg}")
            session.capture_snapshot("location_results")
            return False

    def _click_location_if_not_selected(
        self, driver: Any, container: WebElement, title: str
    ) -> bool:
        selected_class = DOM.LOCATION.selected_class
        if has_class(container, selected_class):
            logger.info(f"Location '{title}' is already selected")
            return True

        scroll_into_view(driver, container)
        self.wait.pause(0.3)
        click(driver, container)
        logger.info(f"Selected location: '{title}'")
        self.wait.pause(1.0, 0.3)

        if has_class(container, selected_class):
            logger.debug(f"Confirmed location selection: '{title}'")
        else:
            logger.warning(f"Location selection may not have worked for: '{title}'")
        return True
