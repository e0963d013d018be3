"""
Locator strategies and the ordered-fallback element resolver.

A `Locator` is one way of addressing an element: a CSS selector, an XPath
expression, an accessible role + name query, or a text-content match. The
`ElementResolver` tries a sequence of locators in order and returns the match
set of the first one that finds anything, so a markup change on the portal
only ever surfaces as a single `ElementNotFoundError`.
"""

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webelement import WebElement
from selenium.webdriver.support.ui import WebDriverWait

from app.errors import ElementNotFoundError

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 0.25

# Native elements that carry an implicit ARIA role
_NATIVE_ROLE_XPATH = {
    "button": "self::button or self::input[@type='button' or @type='submit']",
    "checkbox": "self::input[@type='checkbox'] or self::mat-checkbox",
    "link": "self::a[@href]",
    "option": "self::option or self::mat-option",
    "textbox": "self::input[not(@type) or @type='text'] or self::textarea",
}


def xpath_literal(value: str) -> str:
    """Quote a string for use inside an XPath expression."""
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    parts = value.split("'")
    return "concat(" + ", \"'\", ".join(f"'{part}'" for part in parts) + ")"


class LocatorKind(str, Enum):
    CSS = "css"
    XPATH = "xpath"
    ROLE = "role"
    TEXT = "text"


@dataclass(frozen=True)
class Locator:
    kind: LocatorKind
    value: str
    name: str | None = None
    text_pattern: str | None = None

    @classmethod
    def css(cls, selector: str, text_pattern: str | None = None) -> "Locator":
        return cls(LocatorKind.CSS, selector, text_pattern=text_pattern)

    @classmethod
    def xpath(cls, expression: str) -> "Locator":
        return cls(LocatorKind.XPATH, expression)

    @classmethod
    def role(cls, role: str, name: str) -> "Locator":
        return cls(LocatorKind.ROLE, role, name=name)

    @classmethod
    def text(cls, text: str, tag: str = "*") -> "Locator":
        return cls(LocatorKind.TEXT, tag, name=text)

    def __str__(self) -> str:
        if self.kind == LocatorKind.ROLE:
            return f"role={self.value}[name={self.name!r}]"
        if self.kind == LocatorKind.TEXT:
            return f"text={self.name!r} in <{self.value}>"
        suffix = f" /{self.text_pattern}/" if self.text_pattern else ""
        return f"{self.kind.value}={self.value}{suffix}"

    def to_selenium(self) -> tuple[str, str]:
        """Translate into a Selenium (By, expression) pair, relative to the search context."""
        if self.kind == LocatorKind.CSS:
            return By.CSS_SELECTOR, self.value
        if self.kind == LocatorKind.XPATH:
            return By.XPATH, self.value
        if self.kind == LocatorKind.ROLE:
            name = xpath_literal(self.name or "")
            native = _NATIVE_ROLE_XPATH.get(self.value)
            role_test = f"@role='{self.value}'" + (f" or {native}" if native else "")
            name_test = (
                f"contains(normalize-space(.), {name}) or contains(@aria-label, {name})"
                f" or contains(@value, {name})"
            )
            return By.XPATH, f".//*[{role_test}][{name_test}]"
        text = xpath_literal(self.name or "")
        tag = self.value
        return (
            By.XPATH,
            f".//{tag}[contains(normalize-space(.), {text})]"
            f"[not(.//{tag}[contains(normalize-space(.), {text})])]",
        )

    def find(self, context: Any) -> list[WebElement]:
        by, expression = self.to_selenium()
        elements = context.find_elements(by, expression)
        if self.text_pattern:
            pattern = re.compile(self.text_pattern, re.IGNORECASE)
            elements = [el for el in elements if pattern.search(el.text or "")]
        return list(elements)


class ElementResolver:
    """
    Resolves an ordered list of locator strategies against the live page.

    Strategies are tried strictly in order and evaluation stops at the first
    strategy with at least one match. Queries are read-only.
    """

    def __init__(self, driver: Any) -> None:
        self.driver = driver

    def find_all(self, strategies: Sequence[Locator], context: Any | None = None) -> list[WebElement]:
        """Return the first non-empty match set, or an empty list."""
        search_context = context if context is not None else self.driver
        for strategy in strategies:
            try:
                matches = strategy.find(search_context)
            except WebDriverException as e:
                logger.debug(f"Locator {strategy} raised {type(e).__name__}, trying next")
                continue
            if matches:
                logger.debug(f"Locator {strategy} matched {len(matches)} element(s)")
                return matches
        return []

    def resolve(
        self,
        strategies: Sequence[Locator],
        description: str,
        context: Any | None = None,
    ) -> list[WebElement]:
        matches = self.find_all(strategies, context)
        if not matches:
            raise ElementNotFoundError(description, strategies)
        return matches

    def resolve_first(
        self,
        strategies: Sequence[Locator],
        description: str,
        context: Any | None = None,
    ) -> WebElement:
        return self.resolve(strategies, description, context)[0]

    def wait_for(
        self,
        strategies: Sequence[Locator],
        description: str,
        timeout: float,
        visible: bool = True,
    ) -> list[WebElement]:
        """Poll the strategies until one yields a (visible) match or the timeout expires."""

        def _condition(_: Any) -> list[WebElement] | bool:
            matches = self.find_all(strategies)
            if visible:
                matches = [el for el in matches if _is_displayed(el)]
            return matches or False

        try:
            return WebDriverWait(self.driver, timeout, poll_frequency=POLL_INTERVAL_SECONDS).until(
                _condition
            )
        except TimeoutException:
            raise ElementNotFoundError(f"{description} within {timeout:.0f}s", strategies) from None

    def exists(self, strategies: Sequence[Locator], context: Any | None = None) -> bool:
        return bool(self.find_all(strategies, context))


def _is_displayed(element: WebElement) -> bool:
    try:
        return bool(element.is_displayed())
    except WebDriverException:
        return False
