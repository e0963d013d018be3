"""
Tests for navigation into the reschedule workflow.
"""

from unittest.mock import MagicMock, patch

import pytest
from selenium.common.exceptions import ElementClickInterceptedException

from app.errors import ElementNotFoundError, NavigationFailedError, TimeoutExceededError
from app.providers.icbc_dom_schema import DOM
from app.providers.navigator import Navigator
from app.providers.wait_helper import WaitStrategy


@pytest.fixture
def session() -> MagicMock:
    return MagicMock()


@pytest.fixture
def wait() -> MagicMock:
    return MagicMock(spec=WaitStrategy)


@pytest.fixture
def resolver() -> MagicMock:
    resolver = MagicMock()
    resolver.reschedule = MagicMock()
    resolver.confirm = MagicMock()

    def _wait_for(strategies, description, timeout):
        if strategies == DOM.NAVIGATION.reschedule_button:
            return [resolver.reschedule]
        return [resolver.confirm]

    resolver.wait_for.side_effect = _wait_for
    return resolver


@pytest.fixture
def navigator(wait: MagicMock, resolver: MagicMock):
    with patch("app.providers.navigator.ElementResolver", return_value=resolver):
        yield Navigator(wait_strategy=wait)


class TestNavigateToScheduling:
    """Tests for Navigator.navigate_to_scheduling."""

    def test_clicks_reschedule_and_confirms(
        self, navigator: Navigator, session: MagicMock, resolver: MagicMock, wait: MagicMock
    ) -> None:
        navigator.navigate_to_scheduling(session)

        resolver.reschedule.click.assert_called_once()
        resolver.confirm.click.assert_called_once()
        assert wait.wait_for_page_idle.call_count == 2

    def test_missing_confirmation_dialog_is_fine(
        self, navigator: Navigator, session: MagicMock, resolver: MagicMock
    ) -> None:
        def _wait_for(strategies, description, timeout):
            if strategies == DOM.NAVIGATION.reschedule_button:
                return [resolver.reschedule]
            raise ElementNotFoundError(description)

        resolver.wait_for.side_effect = _wait_for

        navigator.navigate_to_scheduling(session)

        resolver.reschedule.click.assert_called_once()

    def test_missing_reschedule_action_fails(
        self, navigator: Navigator, session: MagicMock, resolver: MagicMock
    ) -> None:
        resolver.wait_for.side_effect = ElementNotFoundError("reschedule appointment button")

        with pytest.raises(NavigationFailedError):
            navigator.navigate_to_scheduling(session)

        session.capture_snapshot.assert_called_once_with("reschedule_button")

    def test_intercepted_click_is_forced(
        self, navigator: Navigator, session: MagicMock, resolver: MagicMock
    ) -> None:
        """An overlay intercepting the click falls back to a JavaScript click."""
        resolver.reschedule.click.side_effect = ElementClickInterceptedException("overlay")

        navigator.navigate_to_scheduling(session)

        session.driver.execute_script.assert_any_call("arguments[0].click();", resolver.reschedule)

    def test_idle_timeout_before_action_aborts(
        self, navigator: Navigator, session: MagicMock, resolver: MagicMock, wait: MagicMock
    ) -> None:
        """A page that never settles fails the step before anything is clicked."""
        wait.wait_for_page_idle.side_effect = TimeoutExceededError("Page did not become idle")

        with pytest.raises(TimeoutExceededError):
            navigator.navigate_to_scheduling(session)

        resolver.wait_for.assert_not_called()
        resolver.reschedule.click.assert_not_called()

    def test_idle_timeout_after_confirmation_aborts(
        self, navigator: Navigator, session: MagicMock, resolver: MagicMock, wait: MagicMock
    ) -> None:
        wait.wait_for_page_idle.side_effect = [True, TimeoutExceededError("Page did not become idle")]

        with pytest.raises(TimeoutExceededError):
            navigator.navigate_to_scheduling(session)

        resolver.confirm.click.assert_called_once()
