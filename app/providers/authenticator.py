import logging

from selenium.common.exceptions import TimeoutException, WebDriverException

from app.config import settings
from app.errors import (
    AuthenticationFailedError,
    ElementNotFoundError,
    TimeoutExceededError,
)
from app.models.schemas import Credentials
from app.providers.browser_session import BrowserSession
from app.providers.icbc_dom_schema import DOM
from app.providers.locators import ElementResolver
from app.providers.page_actions import click, text_of
from app.providers.wait_helper import WaitStrategy

logger = logging.getLogger(__name__)


class Authenticator:
    """
    Drives the portal login workflow.

    Steps: open the login page, fill last name / licence number / keyword,
    tick the terms checkbox when the deployment shows one, submit, and wait for
    the browser to leave the login page. Any failure is fatal for the current
    attempt; retrying is the discovery service's decision.
    """

    def __init__(self, wait_strategy: WaitStrategy | None = None, login_url: str | None = None) -> None:
        self.wait = wait_strategy or WaitStrategy()
        self.login_url = login_url or settings.icbc_login_url

    def authenticate(self, session: BrowserSession, credentials: Credentials) -> str:
        """
        Log in with the given credentials.

        Returns:
            The URL the portal redirected to after a successful login

        Raises:
            AuthenticationFailedError: a login field is missing, the values did not
                stick, or the page never navigated away from the login page
            TimeoutExceededError: the login page did not load in time
        """
        driver = session.driver
        resolver = ElementResolver(driver)
        masked = credentials.masked_licence
        logger.info(f"Starting login for user: {credentials.masked_last_name} (licence {masked})")

        try:
            driver.get(self.login_url)
        except TimeoutException:
            raise TimeoutExceededError(
                f"Login page did not load within {settings.navigation_timeout_seconds:.0f}s"
            ) from None
        login_page_url = driver.current_url

        try:
            self._fill_login_form(resolver, credentials)
        except ElementNotFoundError as e:
            session.capture_snapshot("login_form")
            raise AuthenticationFailedError(f"Login form field missing: {e.description}", masked) from e
        except WebDriverException as e:
            session.capture_snapshot("login_form")
            raise AuthenticationFailedError(f"Failed to fill login form: {e.msg}", masked) from e

        self._accept_terms(resolver)

        try:
            sign_in = resolver.resolve_first(DOM.LOGIN.sign_in_button, "sign in button")
        except ElementNotFoundError as e:
            session.capture_snapshot("login_submit")
            raise AuthenticationFailedError("Sign in button not found", masked) from e
        try:
            click(driver, sign_in)
        except WebDriverException as e:
            session.capture_snapshot("login_submit")
            raise AuthenticationFailedError(f"Could not submit login form: {e.msg}", masked) from e
        logger.debug("Login form submitted")

        try:
            new_url = self.wait.wait_for_url_change(
                driver, login_page_url, settings.url_wait_timeout_seconds
            )
        except TimeoutExceededError as e:
            error_text = self._login_error_text(resolver)
            session.capture_snapshot("login_no_redirect")
            message = "Login did not navigate away from the login page"
            if error_text:
                message += f": {error_text}"
            raise AuthenticationFailedError(message, masked) from e

        logger.info(f"Authentication successful for user: {credentials.masked_last_name}")
        return new_url

    def _fill_login_form(self, resolver: ElementResolver, credentials: Credentials) -> None:
        last_name = resolver.wait_for(
            DOM.LOGIN.last_name_input,
            "last name field",
            timeout=settings.element_wait_timeout_seconds,
        )[0]
        licence = resolver.resolve_first(DOM.LOGIN.licence_number_input, "licence number field")
        keyword = resolver.resolve_first(DOM.LOGIN.keyword_input, "keyword field")

        fields = (
            ("last name", last_name, credentials.last_name),
            ("licence number", licence, credentials.licence_number),
            ("keyword", keyword, credentials.keyword),
        )
        for _, element, value in fields:
            element.clear()
            element.send_keys(value)
        logger.debug("Login fields filled")

        for label, element, value in fields:
            if element.get_attribute("value") != value:
                raise AuthenticationFailedError(
                    f"Form field '{label}' was not filled correctly", credentials.masked_licence
                )

    def _accept_terms(self, resolver: ElementResolver) -> None:
        checkboxes = resolver.find_all(DOM.LOGIN.terms_checkbox)
        if not checkboxes:
            logger.debug("No terms checkbox present, assuming pre-accepted")
            return
        click(resolver.driver, checkboxes[0])
        logger.debug("Clicked terms and conditions checkbox")

    def _login_error_text(self, resolver: ElementResolver) -> str:
        errors = resolver.find_all(DOM.LOGIN.error_messages)
        return "; ".join(text for text in (text_of(el) for el in errors) if text)
