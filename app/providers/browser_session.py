"""
Browser session lifecycle for a single discovery run.

Each discovery run owns exactly one `BrowserSession`. The session is acquired
through `SessionManager.session()` so the browser is torn down on every exit
path, including exceptions and cancellation in the middle of a step.
"""

import base64
import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from selenium import webdriver
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from webdriver_manager.chrome import ChromeDriverManager

from app.config import settings

logger = logging.getLogger(__name__)


class BrowserSession:
    """An exclusively-owned Chrome WebDriver handle scoped to one discovery run."""

    def __init__(self, driver: Any, snapshot_dir: str | None = None) -> None:
        self._driver = driver
        self._closed = False
        self.snapshot_dir = Path(snapshot_dir or settings.debug_snapshot_dir)

    @property
    def driver(self) -> Any:
        if self._closed:
            raise RuntimeError("Browser session is closed")
        return self._driver

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "BrowserSession":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        """Quit the browser. Safe to call repeatedly and after earlier failures."""
        if self._closed:
            return
        self._closed = True
        try:
            self._driver.quit()
            logger.debug("Browser session closed")
        except Exception as e:
            logger.warning(f"Error closing browser session: {e}")

    def capture_snapshot(self, context: str) -> Path | None:
        """
        Capture a full-page screenshot and the page HTML for post-mortem diagnosis.

        Never raises; a failed capture is only logged.

        Args:
            context: Short description of the failing step, used in the filename

        Returns:
            Path of the screenshot, or None if diagnostics are disabled or failed
        """
        if not settings.debug_snapshots or self._closed:
            return None

        try:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.snapshot_dir.mkdir(parents=True, exist_ok=True)
            screenshot_path = self.snapshot_dir / f"icbc_debug_{context}_{timestamp}.png"
            html_path = self.snapshot_dir / f"icbc_debug_{context}_{timestamp}.html"

            capture = self._driver.execute_cdp_cmd(
                "Page.captureScreenshot",
                {"format": "png", "captureBeyondViewport": True},
            )
            screenshot_path.write_bytes(base64.b64decode(capture["data"]))
            logger.info(f"Saved debug screenshot to {screenshot_path}")

            html_path.write_text(self._driver.page_source, encoding="utf-8")
            logger.info(f"Saved debug HTML to {html_path}")
            return screenshot_path

        except Exception as e:
            logger.warning(f"Failed to capture diagnostic info: {e}")
            return None


class SessionManager:
    """Creates browser sessions with a fixed viewport, identity and timeouts."""

    def _build_options(self) -> Options:
        options = Options()
        if settings.headless:
            options.add_argument("--headless=new")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-setuid-sandbox")
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--disable-gpu")
        options.add_argument(f"--window-size={settings.viewport_width},{settings.viewport_height}")
        options.add_argument(f"--user-agent={settings.browser_user_agent}")
        options.add_argument("--disable-blink-features=AutomationControlled")
        options.add_experimental_option("excludeSwitches", ["enable-automation"])
        options.add_experimental_option("useAutomationExtension", False)
        return options

    def _build_service(self) -> Service:
        # Explicit ChromeDriver path first, then ChromeDriverManager for automatic version management
        chromedriver_path = settings.chromedriver_path or os.environ.get("CHROMEDRIVER_PATH")
        if chromedriver_path and os.path.exists(chromedriver_path):
            return Service(chromedriver_path)
        return Service(ChromeDriverManager().install())

    def create_session(self) -> BrowserSession:
        """Start a new Chrome instance. The caller owns the returned session."""
        driver = webdriver.Chrome(service=self._build_service(), options=self._build_options())
        try:
            driver.set_page_load_timeout(settings.navigation_timeout_seconds)
            driver.set_script_timeout(settings.default_timeout_seconds)
            driver.set_window_size(settings.viewport_width, settings.viewport_height)
            driver.execute_cdp_cmd(
                "Page.addScriptToEvaluateOnNewDocument",
                {
                    "source": """
                    Object.defineProperty(navigator, 'webdriver', {
                        get: () => undefined
                    })
                """
                },
            )
        except WebDriverException:
            driver.quit()
            raise

        logger.debug(
            f"Browser session created ({settings.viewport_width}x{settings.viewport_height}, "
            f"headless={settings.headless})"
        )
        return BrowserSession(driver)

    @contextmanager
    def session(self) -> Iterator[BrowserSession]:
        """Scoped acquisition: the session is closed on every exit path."""
        browser_session = self.create_session()
        try:
            yield browser_session
        finally:
            browser_session.close()


session_manager = SessionManager()
