"""
Tests for the appointment preference filter.

These cover time-of-day windows, date ranges, date/time label parsing and
the flat-list distribution used when no per-date mapping is available.
"""

from datetime import date, time

import pytest

from app.models.schemas import (
    AppointmentResults,
    DateRange,
    FilteredAppointmentResults,
    TimePreference,
)
from app.services.appointment_filter import (
    MAX_SLOTS_PER_DATE,
    distribute_slots,
    filter_results,
    parse_date_label,
    parse_time_label,
)

MONDAY = "Monday, Jan 5, 2026"
TUESDAY = "Tuesday, Jan 6, 2026"


@pytest.fixture
def mapped_results() -> AppointmentResults:
    """Two dates with an explicit date-to-slots mapping."""
    return AppointmentResults.from_mapping(
        {
            MONDAY: ["9:00 AM", "1:00 PM"],
            TUESDAY: ["6:00 PM"],
        }
    )


class TestDateLabelParsing:
    """Tests for parse_date_label."""

    def test_strips_weekday_and_ordinal(self) -> None:
        """A weekday prefix and an ordinal suffix are both removed."""
        assert parse_date_label("Tuesday, January 6th, 2026") == date(2026, 1, 6)

    def test_parses_abbreviated_month(self) -> None:
        """Abbreviated month names are accepted."""
        assert parse_date_label(MONDAY) == date(2026, 1, 5)

    @pytest.mark.parametrize(
        "label,expected",
        [
            ("August 1st, 2026", date(2026, 8, 1)),
            ("Sunday, March 22nd, 2026", date(2026, 3, 22)),
            ("Friday, April 3rd, 2026", date(2026, 4, 3)),
            ("December 25, 2026", date(2026, 12, 25)),
        ],
    )
    def test_parses_ordinals(self, label: str, expected: date) -> None:
        """Every ordinal suffix form is stripped."""
        assert parse_date_label(label) == expected

    def test_garbage_is_unparseable(self) -> None:
        """Text that is not a date yields None instead of raising."""
        assert parse_date_label("Garbage text") is None

    def test_empty_is_unparseable(self) -> None:
        """Empty labels yield None."""
        assert parse_date_label("") is None


class TestTimeLabelParsing:
    """Tests for parse_time_label."""

    @pytest.mark.parametrize(
        "label,expected",
        [
            ("9:00 AM", time(9, 0)),
            ("1:30 pm", time(13, 30)),
            ("12:00 PM", time(12, 0)),
            ("8:15AM", time(8, 15)),
            ("17:45", time(17, 45)),
        ],
    )
    def test_parses_supported_formats(self, label: str, expected: time) -> None:
        """12-hour and 24-hour clock formats are recognized."""
        assert parse_time_label(label) == expected

    def test_unparseable_time(self) -> None:
        """Non-time text yields None."""
        assert parse_time_label("soon") is None


class TestFilterScenarios:
    """End-to-end filter scenarios over a mapped result."""

    def test_morning_without_date_range(self, mapped_results: AppointmentResults) -> None:
        """Only Monday's morning slot survives a MORNING filter."""
        filtered = filter_results(mapped_results, TimePreference.MORNING, None)

        assert isinstance(filtered, FilteredAppointmentResults)
        assert filtered.date_to_slots == {MONDAY: ("9:00 AM",)}
        assert filtered.dates == (MONDAY,)
        assert filtered.time_slots == ("9:00 AM",)

    def test_any_time_with_single_day_range(self, mapped_results: AppointmentResults) -> None:
        """A one-day date range keeps only that date and all of its slots."""
        date_range = DateRange(start=date(2026, 1, 6), end=date(2026, 1, 6))

        filtered = filter_results(mapped_results, TimePreference.ANY, date_range)

        assert filtered.date_to_slots == {TUESDAY: ("6:00 PM",)}

    @pytest.mark.parametrize(
        "preference",
        [None, TimePreference.ANY, TimePreference.MORNING, TimePreference.EVENING],
    )
    def test_empty_raw_is_returned_unchanged(self, preference: TimePreference | None) -> None:
        """Empty input is returned as the very same object."""
        raw = AppointmentResults.empty()
        date_range = DateRange(start=date(2026, 1, 1), end=date(2026, 1, 31))

        assert filter_results(raw, preference, date_range) is raw

    def test_nothing_matching_gives_empty_result(self, mapped_results: AppointmentResults) -> None:
        """When no entry survives the result is empty."""
        date_range = DateRange(start=date(2026, 2, 1), end=date(2026, 2, 28))

        filtered = filter_results(mapped_results, TimePreference.ANY, date_range)

        assert filtered.is_empty
        assert isinstance(filtered, FilteredAppointmentResults)

    def test_none_preference_keeps_all_slots(self, mapped_results: AppointmentResults) -> None:
        """A missing time preference behaves like ANY."""
        filtered = filter_results(mapped_results, None, None)

        assert filtered.date_to_slots == mapped_results.date_to_slots

    def test_filtering_is_idempotent(self, mapped_results: AppointmentResults) -> None:
        """Filtering a filtered result again yields an equal result."""
        date_range = DateRange(start=date(2026, 1, 1), end=date(2026, 1, 31))
        once = filter_results(mapped_results, TimePreference.AFTERNOON, date_range)
        twice = filter_results(once, TimePreference.AFTERNOON, date_range)

        assert once == twice
        assert once.date_to_slots == {MONDAY: ("1:00 PM",)}


class TestTimeWindows:
    """Time windows are half-open: start inclusive, end exclusive."""

    @pytest.mark.parametrize(
        "preference,included,excluded",
        [
            (TimePreference.MORNING, "6:00 AM", "12:00 PM"),
            (TimePreference.AFTERNOON, "12:00 PM", "5:00 PM"),
            (TimePreference.EVENING, "5:00 PM", "9:00 PM"),
        ],
    )
    def test_window_boundaries(
        self, preference: TimePreference, included: str, excluded: str
    ) -> None:
        """The start hour is kept and the end hour is dropped."""
        raw = AppointmentResults.from_mapping({MONDAY: [included, excluded]})

        filtered = filter_results(raw, preference, None)

        assert filtered.date_to_slots == {MONDAY: (included,)}

    def test_unparseable_slot_is_dropped(self) -> None:
        """Slots whose time cannot be read never match a window."""
        raw = AppointmentResults.from_mapping({MONDAY: ["9:00 AM", "morning-ish"]})

        filtered = filter_results(raw, TimePreference.MORNING, None)

        assert filtered.time_slots == ("9:00 AM",)


class TestDateRanges:
    """Tests for date range filtering."""

    def test_dates_outside_range_never_appear(self) -> None:
        """Dates before or after the range are dropped, dates inside keep all slots."""
        raw = AppointmentResults.from_mapping(
            {
                "Sunday, January 4th, 2026": ["9:00 AM"],
                MONDAY: ["9:00 AM", "10:00 AM"],
                TUESDAY: ["11:00 AM"],
                "Wednesday, January 7th, 2026": ["9:00 AM"],
            }
        )
        date_range = DateRange(start=date(2026, 1, 5), end=date(2026, 1, 6))

        filtered = filter_results(raw, TimePreference.MORNING, date_range)

        assert filtered.date_to_slots == {
            MONDAY: ("9:00 AM", "10:00 AM"),
            TUESDAY: ("11:00 AM",),
        }

    def test_unparseable_date_is_dropped_with_range(self) -> None:
        """An unparseable label is dropped when a range is active."""
        raw = AppointmentResults.from_mapping({"Garbage text": ["9:00 AM"], MONDAY: ["9:00 AM"]})
        date_range = DateRange(start=date(2026, 1, 1), end=date(2026, 1, 31))

        filtered = filter_results(raw, TimePreference.ANY, date_range)

        assert filtered.dates == (MONDAY,)

    def test_unparseable_date_is_kept_without_range(self) -> None:
        """Without a range, date labels are never parsed."""
        raw = AppointmentResults.from_mapping({"Next available": ["9:00 AM"]})

        filtered = filter_results(raw, TimePreference.ANY, None)

        assert filtered.dates == ("Next available",)


class TestMappingFidelity:
    """An explicit mapping is never redistributed."""

    def test_no_cross_date_leakage(self) -> None:
        """Slots stay on the date the mapping assigns them to."""
        raw = AppointmentResults.from_mapping(
            {
                MONDAY: ["6:00 PM", "7:00 PM", "8:00 PM"],
                TUESDAY: ["9:00 AM"],
            }
        )

        filtered = filter_results(raw, TimePreference.EVENING, None)

        assert filtered.date_to_slots == {MONDAY: ("6:00 PM", "7:00 PM", "8:00 PM")}
        assert TUESDAY not in filtered.date_to_slots


class TestSlotDistribution:
    """Tests for the flat-list approximation."""

    def test_even_distribution(self) -> None:
        """Slots are split evenly in order."""
        mapping = distribute_slots(["a", "b"], ["1", "2", "3", "4"])
        assert mapping == {"a": ["1", "2"], "b": ["3", "4"]}

    def test_leftover_goes_to_earliest_dates(self) -> None:
        """Leftover slots are handed one each to the first dates."""
        mapping = distribute_slots(["a", "b", "c"], ["1", "2", "3", "4", "5"])
        assert mapping == {"a": ["1", "2"], "b": ["3", "4"], "c": ["5"]}

    def test_bucket_is_capped(self) -> None:
        """No date receives more than the per-date cap."""
        slots = [str(i) for i in range(30)]
        mapping = distribute_slots(["a", "b"], slots)

        assert all(len(v) <= MAX_SLOTS_PER_DATE for v in mapping.values())
        assert mapping["a"] == slots[:MAX_SLOTS_PER_DATE]

    def test_fewer_slots_than_dates(self) -> None:
        """Later dates are left empty when slots run out."""
        mapping = distribute_slots(["a", "b", "c"], ["1"])
        assert mapping == {"a": ["1"], "b": [], "c": []}

    def test_flat_results_are_filtered_through_distribution(self) -> None:
        """Without a mapping the filter works over the approximated buckets."""
        raw = AppointmentResults(
            dates=(MONDAY, TUESDAY),
            time_slots=("9:00 AM", "2:00 PM", "10:00 AM", "3:00 PM"),
        )

        filtered = filter_results(raw, TimePreference.MORNING, None)

        assert filtered.date_to_slots == {MONDAY: ("9:00 AM",), TUESDAY: ("10:00 AM",)}
