"""Small element interactions shared by the portal workflow steps."""

import logging
from typing import Any

from selenium.common.exceptions import (
    ElementClickInterceptedException,
    ElementNotInteractableException,
    WebDriverException,
)
from selenium.webdriver.remote.webelement import WebElement

logger = logging.getLogger(__name__)


def scroll_into_view(driver: Any, element: WebElement) -> None:
    driver.execute_script("arguments[0].scrollIntoView({block: 'center'});", element)


def click(driver: Any, element: WebElement) -> bool:
    """
    Click an element, forcing the click through JavaScript if it is intercepted.

    Returns:
        True if the native click worked, False if the forced click was used
    """
    try:
        element.click()
        return True
    except (ElementClickInterceptedException, ElementNotInteractableException) as e:
        logger.warning(f"Standard click failed, trying force click: {type(e).__name__}")
        driver.execute_script("arguments[0].click();", element)
        return False


def dispatch_events(driver: Any, element: WebElement, *event_names: str) -> None:
    for event_name in event_names:
        driver.execute_script(
            "arguments[0].dispatchEvent(new Event(arguments[1], {bubbles: true}));",
            element,
            event_name,
        )


def has_class(element: WebElement, class_name: str) -> bool:
    classes = element.get_attribute("class") or ""
    return class_name in classes.split()


def text_of(element: WebElement) -> str:
    """Visible text, falling back to textContent for hidden elements."""
    try:
        text = element.text or element.get_attribute("textContent") or ""
    except WebDriverException:
        return ""
    return text.strip()
