import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

LICENCE_NUMBER_PATTERN = re.compile(r"^[0-9]{7}$")


class Weekday(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


WEEK_ORDER = list(Weekday)


class TimePreference(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    ANY = "any"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def start_hour(self) -> int:
        return _TIME_WINDOWS[self][0]

    @property
    def end_hour(self) -> int:
        return _TIME_WINDOWS[self][1]


_TIME_WINDOWS: dict[TimePreference, tuple[int, int]] = {
    TimePreference.MORNING: (6, 12),
    TimePreference.AFTERNOON: (12, 17),
    TimePreference.EVENING: (17, 21),
    TimePreference.ANY: (0, 24),
}


class DateRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def _start_not_after_end(self) -> "DateRange":
        if self.start > self.end:
            raise ValueError(f"Date range start {self.start} is after end {self.end}")
        return self

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end


class Credentials(BaseModel):
    """Portal login credentials. Only masked forms are ever logged."""

    model_config = ConfigDict(frozen=True)

    last_name: str = Field(..., max_length=35)
    licence_number: str = Field(..., repr=False)
    keyword: str = Field(..., max_length=22, repr=False)

    @field_validator("last_name", "keyword")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be blank")
        return value.strip()

    @field_validator("licence_number")
    @classmethod
    def _licence_digits(cls, value: str) -> str:
        value = (value or "").strip()
        if not LICENCE_NUMBER_PATTERN.match(value):
            raise ValueError("Licence number must be 7 digits")
        return value

    @property
    def masked_licence(self) -> str:
        return "*" * (len(self.licence_number) - 2) + self.licence_number[-2:]

    @property
    def masked_last_name(self) -> str:
        if len(self.last_name) <= 3:
            return "***"
        return self.last_name[:3] + "***"


class SearchPreferences(BaseModel):
    model_config = ConfigDict(frozen=True)

    preferred_location: str | None = None
    preferred_days: frozenset[Weekday] = frozenset()
    time_preference: TimePreference | None = TimePreference.ANY
    date_range: DateRange | None = None

    @field_validator("preferred_location")
    @classmethod
    def _blank_location_is_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    def ordered_days(self) -> list[Weekday]:
        """Preferred days in calendar order (Monday first)."""
        return [day for day in WEEK_ORDER if day in self.preferred_days]


@dataclass(frozen=True)
class AppointmentResults:
    """
    Dates and time slots scraped from the results page.

    When `date_to_slots` is populated it is the source of truth for which slot
    belongs to which date; `dates` and `time_slots` are then its keys and its
    flattened values. The mapping is a read-only view.
    """

    dates: tuple[str, ...] = ()
    time_slots: tuple[str, ...] = ()
    date_to_slots: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "dates", tuple(self.dates))
        object.__setattr__(self, "time_slots", tuple(self.time_slots))
        object.__setattr__(
            self,
            "date_to_slots",
            MappingProxyType(
                {label: tuple(slots) for label, slots in (self.date_to_slots or {}).items()}
            ),
        )

    @classmethod
    def empty(cls) -> "AppointmentResults":
        return cls()

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Iterable[str]]) -> "AppointmentResults":
        normalized = {label: tuple(slots) for label, slots in mapping.items()}
        return cls(
            dates=tuple(normalized),
            time_slots=tuple(slot for slots in normalized.values() for slot in slots),
            date_to_slots=normalized,
        )

    @property
    def has_mapping(self) -> bool:
        return bool(self.date_to_slots)

    @property
    def is_empty(self) -> bool:
        return not self.dates or not self.time_slots

    @property
    def has_available_appointments(self) -> bool:
        return not self.is_empty

    @property
    def date_count(self) -> int:
        return len(self.dates)

    @property
    def total_slots(self) -> int:
        return len(self.time_slots)

    def summary(self) -> str:
        if self.is_empty:
            return "No appointments available"
        if self.date_to_slots:
            return "; ".join(
                f"{label} ({len(slots)} slots)" for label, slots in self.date_to_slots.items()
            )
        return f"{self.date_count} dates, {self.total_slots} total slots"


@dataclass(frozen=True)
class FilteredAppointmentResults(AppointmentResults):
    """Results narrowed to the user's preferences. Only built by the filter."""


@dataclass(frozen=True)
class DiscoveryEvent:
    summary_message: str
    found_at: datetime = field(default_factory=datetime.now)
