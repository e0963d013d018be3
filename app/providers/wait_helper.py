"""
Wait strategy helper for Selenium operations against the portal.

The portal is a client-rendered application, so "the page is ready" has to be
inferred. This module centralizes the waits used by the discovery pipeline and
makes their behaviour configurable via the WAIT_MODE environment variable.

Three modes are supported:
- FIXED: Use fixed sleep durations (most reliable, slowest)
- EVENT_DRIVEN: Use WebDriverWait only (fastest, less reliable)
- HYBRID: Use WebDriverWait + small buffer sleep (balanced)
"""

import logging
import time as time_module
from typing import Any

from selenium.common.exceptions import TimeoutException
from selenium.webdriver.support import expected_conditions
from selenium.webdriver.support.ui import WebDriverWait

from app.config import WaitMode, settings
from app.errors import TimeoutExceededError

logger = logging.getLogger(__name__)

HYBRID_BUFFER_SECONDS = 0.3

# True once the document is loaded and no jQuery/Angular work is pending
PAGE_IDLE_SCRIPT = """
if (document.readyState !== 'complete') { return false; }
if (window.jQuery && window.jQuery.active > 0) { return false; }
if (window.getAllAngularTestabilities) {
    return window.getAllAngularTestabilities().every(t => t.isStable());
}
return true;
"""


class WaitStrategy:
    """
    Provides wait methods that behave differently based on the configured wait mode.

    Usage:
        wait_strategy = WaitStrategy()
        wait_strategy.wait_for_page_idle(driver, fixed_duration=2.0)
        wait_strategy.pause(fixed_duration=1.0)
    """

    def __init__(self, mode: WaitMode | None = None) -> None:
        """
        Initialize the wait strategy.

        Args:
            mode: The wait mode to use. If None, uses the configured setting.
        """
        self.mode = mode or settings.wait_mode
        logger.debug(f"WaitStrategy initialized with mode: {self.mode.value}")

    def wait_for_page_idle(
        self,
        driver: Any,
        fixed_duration: float = 2.0,
        timeout: float | None = None,
    ) -> bool:
        """
        Wait until the document is loaded and no background requests are pending.

        This is the Selenium counterpart of "network idle": the page counts as idle
        once readyState is complete and Angular/jQuery report no pending work.

        Args:
            driver: The WebDriver instance
            fixed_duration: Duration to sleep in FIXED mode
            timeout: Maximum wait time; defaults to the configured action timeout

        Returns:
            True once idle was observed, False in FIXED mode (nothing is probed)

        Raises:
            TimeoutExceededError: if the page is not idle after `timeout` seconds
        """
        if self.mode == WaitMode.FIXED:
            logger.debug(f"FIXED mode: sleeping {fixed_duration}s for page idle")
            time_module.sleep(fixed_duration)
            return False

        timeout = timeout if timeout is not None else settings.default_timeout_seconds
        try:
            WebDriverWait(driver, timeout).until(lambda d: d.execute_script(PAGE_IDLE_SCRIPT))
        except TimeoutException:
            raise TimeoutExceededError(
                f"Page did not become idle within {timeout:g}s"
            ) from None
        logger.debug(f"{self.mode.value} mode: page idle")

        if self.mode == WaitMode.HYBRID:
            logger.debug(f"HYBRID mode: adding {HYBRID_BUFFER_SECONDS}s buffer")
            time_module.sleep(HYBRID_BUFFER_SECONDS)

        return True

    def wait_for_url_change(self, driver: Any, from_url: str, timeout: float) -> str:
        """
        Block until the current URL differs from `from_url`.

        Unlike page idle this one is probed in every mode, FIXED included.

        Returns:
            The new URL

        Raises:
            TimeoutExceededError: if the URL is unchanged after `timeout` seconds
        """
        try:
            WebDriverWait(driver, timeout).until(expected_conditions.url_changes(from_url))
        except TimeoutException:
            raise TimeoutExceededError(
                f"URL did not change from {from_url} within {timeout:.0f}s"
            ) from None

        if self.mode == WaitMode.HYBRID:
            time_module.sleep(HYBRID_BUFFER_SECONDS)

        return driver.current_url

    def pause(self, fixed_duration: float, event_driven_duration: float = 0.0) -> None:
        """
        Simple wait without any element conditions.

        This is for cases where we just need the UI to settle (animations,
        progressive rendering, autocomplete debounce).

        Args:
            fixed_duration: Duration to sleep in FIXED and HYBRID modes
            event_driven_duration: Duration to sleep in EVENT_DRIVEN mode (default 0)
        """
        if self.mode == WaitMode.EVENT_DRIVEN:
            if event_driven_duration > 0:
                logger.debug(f"EVENT_DRIVEN mode: simple sleep {event_driven_duration}s")
                time_module.sleep(event_driven_duration)
            else:
                logger.debug("EVENT_DRIVEN mode: skipping simple wait")
            return

        logger.debug(f"{self.mode.value} mode: simple sleep {fixed_duration}s")
        time_module.sleep(fixed_duration)

