"""
End-to-end appointment discovery.

One run opens a fresh browser session, logs in, opens the scheduling workflow,
applies the search preferences, parses and filters the results, and produces
at most one DiscoveryEvent. The whole run is retried by a RetryPolicy; the
session is always closed before the next attempt starts.
"""

import asyncio
import inspect
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import ValidationError

from app.config import Settings
from app.errors import DiscoveryFailedError, InputValidationError
from app.models.schemas import (
    AppointmentResults,
    Credentials,
    DateRange,
    DiscoveryEvent,
    SearchPreferences,
    TimePreference,
    Weekday,
)
from app.providers.authenticator import Authenticator
from app.providers.browser_session import SessionManager, session_manager
from app.providers.navigator import Navigator
from app.providers.search_configurator import SearchConfigurator
from app.services.appointment_filter import filter_results
from app.services.retry import RetryPolicy

logger = logging.getLogger(__name__)

Subscriber = Callable[[DiscoveryEvent], Any]


class DiscoveryOutcome(str, Enum):
    FOUND = "found"
    NONE = "none"
    FAILED = "failed"


@dataclass(frozen=True)
class DiscoverySnapshot:
    outcome: DiscoveryOutcome
    message: str
    results: AppointmentResults | None = None
    checked_at: datetime = field(default_factory=datetime.now)


def _parse_csv_days(raw: str) -> frozenset[Weekday]:
    days = set()
    for token in raw.split(","):
        token = token.strip().lower()
        if not token:
            continue
        try:
            days.add(Weekday(token))
        except ValueError:
            raise InputValidationError(f"Unknown weekday in preferred days: '{token}'") from None
    return frozenset(days)


def _parse_time_preference(raw: str) -> TimePreference:
    value = (raw or "any").strip().lower()
    try:
        return TimePreference(value)
    except ValueError:
        choices = ", ".join(p.value for p in TimePreference)
        raise InputValidationError(
            f"Unknown time preference '{raw}' (expected one of: {choices})"
        ) from None


def _parse_date_range(start: str, end: str) -> DateRange | None:
    start, end = (start or "").strip(), (end or "").strip()
    if not start and not end:
        return None
    if not start or not end:
        raise InputValidationError("Date range needs both a start and an end date")
    try:
        return DateRange(start=date.fromisoformat(start), end=date.fromisoformat(end))
    except (ValueError, ValidationError) as e:
        raise InputValidationError(f"Invalid date range {start}..{end}: {e}") from e


def load_discovery_inputs(settings: Settings) -> tuple[Credentials, SearchPreferences]:
    """
    Build validated credentials and preferences from settings.

    Raises:
        InputValidationError: any value has the wrong shape
    """
    try:
        credentials = Credentials(
            last_name=settings.icbc_last_name,
            licence_number=settings.icbc_licence_number,
            keyword=settings.icbc_keyword,
        )
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
        raise InputValidationError(f"Invalid credentials: {fields}") from None

    try:
        preferences = SearchPreferences(
            preferred_location=settings.preferred_location or None,
            preferred_days=_parse_csv_days(settings.preferred_days),
            time_preference=_parse_time_preference(settings.time_preference),
            date_range=_parse_date_range(settings.date_range_start, settings.date_range_end),
        )
    except ValidationError as e:
        raise InputValidationError(f"Invalid search preferences: {e}") from e

    return credentials, preferences


def build_summary_message(
    results: AppointmentResults,
    time_preference: TimePreference | None,
    date_range: DateRange | None,
) -> str:
    message = (
        f"Available appointments found: {results.date_count} dates with "
        f"{results.total_slots} total time slots. {results.summary()}"
    )
    active = []
    if time_preference is not None:
        active.append(f"time={time_preference.display_name}")
    if date_range is not None:
        active.append("date range")
    if active:
        message += f" [Filtered by: {', '.join(active)}]"
    return message


class DiscoveryEventPublisher:
    """Hands discovery events to subscribers. A failing subscriber never fails the run."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> None:
        if subscriber not in self._subscribers:
            self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    @property
    def subscribers(self) -> list[Subscriber]:
        return list(self._subscribers)

    async def publish(self, event: DiscoveryEvent) -> int:
        """
        Returns:
            Number of subscribers that handled the event without raising
        """
        delivered = 0
        for subscriber in list(self._subscribers):
            try:
                result = subscriber(event)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.error(f"Discovery event subscriber {subscriber!r} failed: {e}")
        return delivered


class DiscoveryService:
    def __init__(
        self,
        sessions: SessionManager | None = None,
        authenticator: Authenticator | None = None,
        navigator: Navigator | None = None,
        search_configurator: SearchConfigurator | None = None,
        retry_policy: RetryPolicy | None = None,
        publisher: DiscoveryEventPublisher | None = None,
    ) -> None:
        self.sessions = sessions or session_manager
        self.authenticator = authenticator or Authenticator()
        self.navigator = navigator or Navigator()
        self.search_configurator = search_configurator or SearchConfigurator()
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self.publisher = publisher or DiscoveryEventPublisher()
        self._run_lock = threading.Lock()
        self._snapshot_lock = threading.Lock()
        self._last_snapshot: DiscoverySnapshot | None = None

    @property
    def last_snapshot(self) -> DiscoverySnapshot | None:
        with self._snapshot_lock:
            return self._last_snapshot

    def _record(self, snapshot: DiscoverySnapshot) -> None:
        with self._snapshot_lock:
            self._last_snapshot = snapshot

    @staticmethod
    def validate_inputs(credentials: Credentials, preferences: SearchPreferences) -> None:
        if not isinstance(credentials, Credentials):
            raise InputValidationError("Credentials are required")
        if not isinstance(preferences, SearchPreferences):
            raise InputValidationError("Search preferences are required")
        if not credentials.last_name.strip():
            raise InputValidationError("Last name is required")
        if not credentials.licence_number.strip():
            raise InputValidationError("Licence number is required")
        if not credentials.keyword.strip():
            raise InputValidationError("Keyword is required")

    def run_discovery(
        self, credentials: Credentials, preferences: SearchPreferences
    ) -> DiscoveryEvent | None:
        """
        Run one discovery pass (with retries) and record its outcome.

        Runs are serialized; a second caller waits for the current run to finish.

        Returns:
            A DiscoveryEvent when matching appointments exist, otherwise None

        Raises:
            InputValidationError: inputs are malformed (never retried)
            DiscoveryFailedError: the check could not be completed
        """
        self.validate_inputs(credentials, preferences)

        with self._run_lock:
            logger.info(
                f"Starting appointment discovery for {credentials.masked_last_name} "
                f"(location={preferences.preferred_location or 'any'}, "
                f"days={[d.value for d in preferences.ordered_days()]}, "
                f"time={preferences.time_preference.value if preferences.time_preference else 'any'})"
            )
            try:
                results = self.retry_policy.run(self._discover_once, credentials, preferences)
            except InputValidationError:
                raise
            except Exception as e:
                attempts = getattr(e, "retry_attempts", 1)
                message = f"Appointment discovery failed after {attempts} attempt(s): {e}"
                logger.error(message)
                self._record(DiscoverySnapshot(outcome=DiscoveryOutcome.FAILED, message=message))
                raise DiscoveryFailedError(message, attempts=attempts) from e

            if not results.has_available_appointments:
                logger.info("No appointments found matching the specified criteria")
                self._record(
                    DiscoverySnapshot(
                        outcome=DiscoveryOutcome.NONE,
                        message="No appointments available",
                        results=results,
                    )
                )
                return None

            message = build_summary_message(
                results, preferences.time_preference, preferences.date_range
            )
            event = DiscoveryEvent(summary_message=message)
            logger.info(
                f"Appointment found: {results.date_count} dates, {results.total_slots} slots"
            )
            self._record(
                DiscoverySnapshot(outcome=DiscoveryOutcome.FOUND, message=message, results=results)
            )
            return event

    def _discover_once(
        self, credentials: Credentials, preferences: SearchPreferences
    ) -> AppointmentResults:
        with self.sessions.session() as session:
            self.authenticator.authenticate(session, credentials)
            self.navigator.navigate_to_scheduling(session)
            raw = self.search_configurator.configure_and_search(session, preferences)
            logger.info(f"Raw results: {raw.summary()}")
            return filter_results(raw, preferences.time_preference, preferences.date_range)

    async def check_appointments(
        self, credentials: Credentials, preferences: SearchPreferences
    ) -> DiscoveryEvent | None:
        """Async facade: runs discovery in a worker thread, then publishes any event."""
        event = await asyncio.to_thread(self.run_discovery, credentials, preferences)
        if event is not None:
            await self.publisher.publish(event)
        return event


discovery_service = DiscoveryService()
