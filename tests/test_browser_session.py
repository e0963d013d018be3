"""
Tests for BrowserSession and SessionManager.

Chrome is never started; webdriver.Chrome and the driver service are mocked.
"""

import base64
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from selenium.common.exceptions import WebDriverException

from app.providers.browser_session import BrowserSession, SessionManager


@pytest.fixture
def mock_driver() -> MagicMock:
    driver = MagicMock()
    driver.execute_cdp_cmd.return_value = {"data": base64.b64encode(b"png-bytes").decode()}
    driver.page_source = "<html><body>results</body></html>"
    return driver


class TestBrowserSessionClose:
    """Tests for session teardown."""

    def test_close_quits_driver_once(self, mock_driver: MagicMock) -> None:
        session = BrowserSession(mock_driver)

        session.close()
        session.close()

        mock_driver.quit.assert_called_once()
        assert session.closed

    def test_close_tolerates_quit_failure(self, mock_driver: MagicMock) -> None:
        """A browser that already died must not break teardown."""
        mock_driver.quit.side_effect = WebDriverException("chrome not reachable")
        session = BrowserSession(mock_driver)

        session.close()

        assert session.closed

    def test_driver_unavailable_after_close(self, mock_driver: MagicMock) -> None:
        session = BrowserSession(mock_driver)
        session.close()

        with pytest.raises(RuntimeError):
            _ = session.driver

    def test_context_manager_closes_on_error(self, mock_driver: MagicMock) -> None:
        with pytest.raises(ValueError):
            with BrowserSession(mock_driver):
                raise ValueError("step failed")

        mock_driver.quit.assert_called_once()


class TestCaptureSnapshot:
    """Tests for debug snapshots."""

    def test_writes_png_and_html(self, mock_driver: MagicMock, tmp_path: Path) -> None:
        session = BrowserSession(mock_driver, snapshot_dir=str(tmp_path))

        with patch("app.providers.browser_session.settings") as mock_settings:
            mock_settings.debug_snapshots = True
            screenshot = session.capture_snapshot("search_button")

        assert screenshot is not None
        assert screenshot.name.startswith("icbc_debug_search_button_")
        assert screenshot.read_bytes() == b"png-bytes"
        html_file = screenshot.with_suffix(".html")
        assert "results" in html_file.read_text(encoding="utf-8")
        mock_driver.execute_cdp_cmd.assert_called_once_with(
            "Page.captureScreenshot", {"format": "png", "captureBeyondViewport": True}
        )

    def test_disabled_snapshots_do_nothing(self, mock_driver: MagicMock, tmp_path: Path) -> None:
        session = BrowserSession(mock_driver, snapshot_dir=str(tmp_path))

        with patch("app.providers.browser_session.settings") as mock_settings:
            mock_settings.debug_snapshots = False
            assert session.capture_snapshot("anything") is None

        mock_driver.execute_cdp_cmd.assert_not_called()

    def test_capture_failure_is_swallowed(self, mock_driver: MagicMock, tmp_path: Path) -> None:
        """Diagnostics never affect control flow."""
        mock_driver.execute_cdp_cmd.side_effect = WebDriverException("devtools gone")
        session = BrowserSession(mock_driver, snapshot_dir=str(tmp_path))

        with patch("app.providers.browser_session.settings") as mock_settings:
            mock_settings.debug_snapshots = True
            assert session.capture_snapshot("login_form") is None


class TestSessionManager:
    """Tests for SessionManager."""

    @pytest.fixture
    def manager(self) -> SessionManager:
        manager = SessionManager()
        manager._build_service = MagicMock()  # type: ignore[method-assign]
        return manager

    def test_create_session_configures_driver(self, manager: SessionManager) -> None:
        with patch("app.providers.browser_session.webdriver.Chrome") as mock_chrome:
            driver = mock_chrome.return_value

            session = manager.create_session()

        assert session.driver is driver
        driver.set_page_load_timeout.assert_called_once()
        driver.set_window_size.assert_called_once()
        driver.execute_cdp_cmd.assert_called_once()

    def test_create_session_quits_on_setup_failure(self, manager: SessionManager) -> None:
        with patch("app.providers.browser_session.webdriver.Chrome") as mock_chrome:
            driver = mock_chrome.return_value
            driver.set_page_load_timeout.side_effect = WebDriverException("bad timeout")

            with pytest.raises(WebDriverException):
                manager.create_session()

        driver.quit.assert_called_once()

    def test_scoped_session_released_on_exception(self, manager: SessionManager) -> None:
        with patch("app.providers.browser_session.webdriver.Chrome") as mock_chrome:
            driver = mock_chrome.return_value

            with pytest.raises(KeyError):
                with manager.session():
                    raise KeyError("mid-step failure")

        driver.quit.assert_called_once()

    def test_scoped_session_released_on_success(self, manager: SessionManager) -> None:
        with patch("app.providers.browser_session.webdriver.Chrome") as mock_chrome:
            with manager.session() as session:
                assert not session.closed

        assert session.closed
        mock_chrome.return_value.quit.assert_called_once()

    def test_headless_option(self) -> None:
        with patch("app.providers.browser_session.settings") as mock_settings:
            mock_settings.headless = True
            mock_settings.viewport_width = 1920
            mock_settings.viewport_height = 1080
            mock_settings.browser_user_agent = "agent"
            options = SessionManager()._build_options()

        assert "--headless=new" in options.arguments
        assert "--window-size=1920,1080" in options.arguments
        assert "--user-agent=agent" in options.arguments
