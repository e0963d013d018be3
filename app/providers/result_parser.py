"""
Extraction of appointment dates and time slots from the rendered results page.

Parsing is deliberately forgiving: a failure while reading one category
(dates or time slots) downgrades that category to empty instead of aborting
the run, because the results view renders progressively and occasionally lags.
"""

import logging
import re

from selenium.common.exceptions import WebDriverException

from app.models.schemas import AppointmentResults
from app.providers.browser_session import BrowserSession
from app.providers.icbc_dom_schema import DOM
from app.providers.locators import ElementResolver, Locator
from app.providers.page_actions import scroll_into_view, text_of
from app.providers.wait_helper import WaitStrategy

logger = logging.getLogger(__name__)

MAX_EXPANSIONS = 10
MIN_LABEL_LENGTH = 3

_UI_CHROME_TEXT = ("no appointment", "not available", "select")
_DATE_SHAPES = (
    re.compile(r"\d{1,2}[/\-]\d{1,2}"),
    re.compile(r"\w+ \d{1,2}"),
    re.compile(r"\d{1,2} \w+"),
)
_TIME_SHAPES = (
    re.compile(r"\d{1,2}:\d{2}"),
    re.compile(r"\d{1,2} ?[ap]m", re.IGNORECASE),
)


def _is_ui_chrome(text: str) -> bool:
    normalized = text.lower().strip()
    return len(normalized) < MIN_LABEL_LENGTH or any(word in normalized for word in _UI_CHROME_TEXT)


def is_valid_date_text(text: str | None) -> bool:
    """Accept text shaped like "Jan 5", "5 January" or "01/05"; reject UI labels."""
    if not text or not text.strip() or _is_ui_chrome(text):
        return False
    return any(shape.search(text) for shape in _DATE_SHAPES)


def is_valid_time_text(text: str | None) -> bool:
    """Accept text shaped like "9:00", "9 am" or "9:00 AM"; reject UI labels."""
    if not text or not text.strip() or _is_ui_chrome(text):
        return False
    return any(shape.search(text) for shape in _TIME_SHAPES)


class ResultParser:
    def __init__(self, wait_strategy: WaitStrategy | None = None) -> None:
        self.wait = wait_strategy or WaitStrategy()

    def parse(self, session: BrowserSession) -> AppointmentResults:
        """
        Read the results page into AppointmentResults.

        Collapsed sections are expanded first. When the markup groups each date
        with its own slots, that grouping is preserved as an explicit
        date-to-slots mapping; otherwise dates and slots are collected as two
        independent lists.
        """
        driver = session.driver
        resolver = ElementResolver(driver)
        logger.debug("Parsing appointment results")

        self._expand_all_sections(resolver)

        mapping = self._parse_date_groups(resolver)
        if mapping:
            results = AppointmentResults.from_mapping(mapping)
            logger.info(
                f"Parsed {results.date_count} dates and {results.total_slots} time slots "
                "with per-date grouping"
            )
            return results

        dates = self._collect(session, resolver, DOM.RESULTS.date_labels, is_valid_date_text, "date")
        time_slots = self._collect(
            session, resolver, DOM.RESULTS.time_slots, is_valid_time_text, "time slot"
        )
        logger.info(f"Parsed {len(dates)} dates and {len(time_slots)} time slots")

        if not dates and not time_slots:
            logger.debug("No appointments found, checking for 'no results' messages")
            self._log_no_results_markers(resolver)

        return AppointmentResults(dates=dates, time_slots=time_slots)

    def _expand_all_sections(self, resolver: ElementResolver) -> int:
        expansions = 0
        try:
            while expansions < MAX_EXPANSIONS:
                buttons = [b for b in resolver.find_all(DOM.RESULTS.view_more_button) if b.is_displayed()]
                if not buttons:
                    break

                logger.debug(f"Found 'view more' button, expanding section {expansions + 1}")
                try:
                    scroll_into_view(resolver.driver, buttons[0])
                    self.wait.pause(0.2)
                    buttons[0].click()
                    self.wait.pause(1.0, 0.5)
                    expansions += 1
                except WebDriverException as e:
                    logger.warning(f"Failed to click 'view more' button: {e.msg}")
                    break
        except WebDriverException as e:
            logger.warning(f"Error expanding sections: {e.msg}")

        if expansions:
            logger.debug(f"Expanded {expansions} sections")
            self.wait.pause(2.0, 0.5)
        else:
            logger.debug("No expandable sections found or all sections already expanded")
        return expansions

    def _parse_date_groups(self, resolver: ElementResolver) -> dict[str, list[str]]:
        mapping: dict[str, list[str]] = {}
        try:
            groups = resolver.find_all(DOM.RESULTS.date_groups)
            for group in groups:
                labels = [
                    text_of(el) for el in resolver.find_all(DOM.RESULTS.date_labels, context=group)
                ]
                label = next((text for text in labels if is_valid_date_text(text)), None)
                if label is None:
                    continue
                slots = [
                    text_of(el) for el in resolver.find_all(DOM.RESULTS.time_slots, context=group)
                ]
                slots = [slot for slot in slots if is_valid_time_text(slot)]
                if slots:
                    mapping.setdefault(label, []).extend(slots)
        except Exception as e:
            logger.warning(f"Error reading grouped results, falling back to flat lists: {e}")
            return {}
        return mapping

    def _collect(
        self,
        session: BrowserSession,
        resolver: ElementResolver,
        strategies: tuple[Locator, ...],
        validator,
        kind: str,
    ) -> list[str]:
        collected: list[str] = []
        try:
            elements = resolver.find_all(strategies)
            logger.debug(f"Found {len(elements)} {kind} elements")
            for index, element in enumerate(elements):
                try:
                    text = text_of(element)
                except WebDriverException as e:
                    logger.debug(f"Could not read {kind} element {index}: {e.msg}")
                    continue
                if validator(text):
                    collected.append(text)
                    logger.debug(f"Added {kind}: '{text}'")
        except Exception as e:
            logger.warning(f"Error parsing {kind}s: {e}")
            session.capture_snapshot(f"parsing_{kind.replace(' ', '_')}")
            return []
        return collected

    def _log_no_results_markers(self, resolver: ElementResolver) -> None:
        try:
            markers = resolver.find_all(DOM.RESULTS.no_results_markers)
            if not markers:
                logger.debug("No explicit 'no results' messages found")
                return
            for marker in markers:
                message = text_of(marker)
                if message:
                    logger.info(f"Found 'no results' message: '{message}'")
        except Exception as e:
            logger.warning(f"Error checking for no-results messages: {e}")
