"""
Narrowing of parsed appointment results to the user's time and date preferences.

When the parser could not recover which slot belongs to which date, the flat
slot list is spread across the dates in order (at most MAX_SLOTS_PER_DATE per
date). That reconstruction is a best-effort approximation: a slot may end up
attributed to the wrong date, so callers should treat per-date results from
that path as indicative only.
"""

import logging
import re
from collections.abc import Mapping, Sequence
from datetime import date, datetime, time

from app.models.schemas import (
    AppointmentResults,
    DateRange,
    FilteredAppointmentResults,
    TimePreference,
)

logger = logging.getLogger(__name__)

MAX_SLOTS_PER_DATE = 8

_WEEKDAY_PREFIX = re.compile(r"^\w+,\s*")
_ORDINAL_SUFFIX = re.compile(r"(\d+)(st|nd|rd|th)\b", re.IGNORECASE)
_DATE_FORMATS = ["%B %d, %Y", "%b %d, %Y", "%B %d %Y", "%b %d %Y"]
_TIME_FORMATS = ["%I:%M %p", "%I:%M%p", "%H:%M"]


def parse_date_label(label: str) -> date | None:
    """
    Parse a portal date label such as "Tuesday, January 6th, 2026".

    One leading weekday token is stripped together with every ordinal suffix.

    Returns:
        The calendar date, or None when the label is not a recognizable date
    """
    cleaned = _WEEKDAY_PREFIX.sub("", label.strip(), count=1)
    cleaned = _ORDINAL_SUFFIX.sub(r"\1", cleaned)
    cleaned = " ".join(cleaned.split())
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    return None


def parse_time_label(label: str) -> time | None:
    cleaned = " ".join(label.strip().upper().split())
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).time()
        except ValueError:
            continue
    return None


def distribute_slots(dates: Sequence[str], time_slots: Sequence[str]) -> dict[str, list[str]]:
    """
    Approximate a date-to-slots mapping from two flat lists.

    Each date gets an even share of the slots, capped at MAX_SLOTS_PER_DATE;
    leftover slots go one each to the earliest dates that are still under the
    cap. Slots are consumed in their original order.
    """
    if not dates:
        return {}
    per_date = min(MAX_SLOTS_PER_DATE, max(1, len(time_slots) // len(dates)))
    leftover = max(0, len(time_slots) - per_date * len(dates))

    mapping: dict[str, list[str]] = {}
    cursor = 0
    for label in dates:
        take = per_date
        if leftover and take < MAX_SLOTS_PER_DATE:
            take += 1
            leftover -= 1
        mapping.setdefault(label, []).extend(time_slots[cursor : cursor + take])
        cursor += take
    return mapping


def _slot_in_window(slot: str, preference: TimePreference) -> bool:
    parsed = parse_time_label(slot)
    if parsed is None:
        logger.debug(f"Could not parse time slot '{slot}', dropping it")
        return False
    return preference.start_hour <= parsed.hour < preference.end_hour


def filter_results(
    raw: AppointmentResults,
    time_preference: TimePreference | None = None,
    date_range: DateRange | None = None,
) -> AppointmentResults:
    """
    Keep only the dates and slots that satisfy the given preferences.

    Args:
        raw: Parsed results, with or without an explicit date-to-slots mapping
        time_preference: Time-of-day window; None or ANY keeps every slot
        date_range: Inclusive range; dates outside it (or unparseable) are dropped

    Returns:
        `raw` itself when it is empty, otherwise a FilteredAppointmentResults
    """
    if raw.is_empty:
        logger.debug("No raw results to filter")
        return raw

    mapping: Mapping[str, Sequence[str]]
    if raw.has_mapping:
        mapping = raw.date_to_slots
    else:
        logger.debug(
            f"No per-date mapping available, distributing {raw.total_slots} slots "
            f"across {raw.date_count} dates"
        )
        mapping = distribute_slots(raw.dates, raw.time_slots)

    filter_by_time = time_preference is not None and time_preference != TimePreference.ANY

    filtered: dict[str, list[str]] = {}
    for label, slots in mapping.items():
        if date_range is not None:
            parsed = parse_date_label(label)
            if parsed is None:
                logger.warning(f"Could not parse date label '{label}', dropping it")
                continue
            if not date_range.contains(parsed):
                logger.debug(f"Date {parsed} is outside {date_range.start}..{date_range.end}")
                continue

        if filter_by_time:
            kept = [slot for slot in slots if _slot_in_window(slot, time_preference)]
        else:
            kept = list(slots)

        if kept:
            filtered[label] = kept

    if not filtered:
        logger.info("No appointments match the requested preferences")
        return FilteredAppointmentResults()

    result = FilteredAppointmentResults.from_mapping(filtered)
    logger.info(
        f"Filtered {raw.total_slots} slots on {raw.date_count} dates down to "
        f"{result.total_slots} slots on {result.date_count} dates"
    )
    return result
