from datetime import date, datetime, time, timedelta

import pytest

from booking_backend.core.errors import InvalidDateError, InvalidServiceError
from booking_backend.scheduling.availability import (
    calculate_available_slots,
    intervals_overlap,
    parse_day,
    working_hours_for_day,
)

DAY = date(2024, 1, 15)  # a Monday
BEFORE_DAY = datetime(2024, 1, 14, 12, 0)
NINE_TO_FIVE = (time(9, 0), time(17, 0))


def at(hour: int, minute: int = 0) -> datetime:
    return datetime.combine(DAY, time(hour, minute))


@pytest.mark.parametrize('duration_minutes', [15, 30, 45, 60, 90])
def test_empty_day_returns_every_half_hour(duration_minutes: int) -> None:
    slots = calculate_available_slots(duration_minutes, DAY, [], now=BEFORE_DAY)

    assert len(slots) == 48
    assert slots[0] == '00:00'
    assert slots[-1] == '23:30'
    assert slots == sorted(set(slots))


def test_empty_day_within_working_window() -> None:
    slots = calculate_available_slots(30, DAY, [], window=NINE_TO_FIVE, now=BEFORE_DAY)

    assert slots == [
        '09:00', '09:30', '10:00', '10:30', '11:00', '11:30', '12:00', '12:30',
        '13:00', '13:30', '14:00', '14:30', '15:00', '15:30', '16:00', '16:30',
    ]


def test_single_booking_blocks_only_its_own_slot() -> None:
    slots = calculate_available_slots(30, DAY, [(at(10), at(10, 30))], window=NINE_TO_FIVE, now=BEFORE_DAY)

    assert '09:30' in slots
    assert '10:00' not in slots
    assert '10:30' in slots
    assert len(slots) == 15


def test_longer_service_is_blocked_by_any_overlap() -> None:
    slots = calculate_available_slots(60, DAY, [(at(10), at(10, 30))], window=NINE_TO_FIVE, now=BEFORE_DAY)

    assert '09:00' in slots
    assert '09:30' not in slots
    assert '10:00' not in slots
    assert '10:30' in slots


def test_quarter_hour_candidate_overlapping_booking_is_rejected() -> None:
    assert intervals_overlap(at(9, 45), at(10, 45), at(10), at(10, 30))

    slots = calculate_available_slots(
        60,
        DAY,
        [(at(10), at(10, 30))],
        window=NINE_TO_FIVE,
        now=BEFORE_DAY,
        increment_minutes=15,
    )
    assert '09:45' not in slots
    assert '09:00' in slots


def test_touching_intervals_are_available() -> None:
    booked = [(at(11), at(12))]

    slots = calculate_available_slots(60, DAY, booked, window=NINE_TO_FIVE, now=BEFORE_DAY)

    assert '10:00' in slots  # ends exactly when the booking starts
    assert '12:00' in slots  # starts exactly when the booking ends
    assert not intervals_overlap(at(10), at(11), at(11), at(12))
    assert not intervals_overlap(at(12), at(13), at(11), at(12))


def test_returned_slots_never_overlap_existing_bookings() -> None:
    booked = [
        (at(0, 15), at(1, 0)),
        (at(8, 0), at(9, 30)),
        (at(13, 10), at(13, 40)),
        (at(22, 45), at(23, 15)),
    ]

    for duration_minutes in (15, 30, 45, 60, 120):
        for slot in calculate_available_slots(duration_minutes, DAY, booked, now=BEFORE_DAY):
            start = datetime.combine(DAY, datetime.strptime(slot, '%H:%M').time())
            end = start + timedelta(minutes=duration_minutes)
            assert not any(intervals_overlap(start, end, booked_start, booked_end) for booked_start, booked_end in booked)


def test_same_inputs_give_same_output() -> None:
    booked = [(at(10), at(10, 30)), (at(14), at(15))]

    first = calculate_available_slots(45, DAY, booked, window=NINE_TO_FIVE, now=BEFORE_DAY)
    second = calculate_available_slots(45, DAY, list(booked), window=NINE_TO_FIVE, now=BEFORE_DAY)

    assert first == second


def test_fully_booked_day_returns_empty_list() -> None:
    slots = calculate_available_slots(30, DAY, [(at(9), at(17))], window=NINE_TO_FIVE, now=BEFORE_DAY)

    assert slots == []


def test_past_slots_are_excluded_today() -> None:
    slots = calculate_available_slots(30, DAY, [], window=NINE_TO_FIVE, now=at(12, 10))

    assert slots[0] == '12:30'
    assert '12:00' not in slots


def test_slot_starting_exactly_now_is_kept() -> None:
    slots = calculate_available_slots(30, DAY, [], window=NINE_TO_FIVE, now=at(12))

    assert slots[0] == '12:00'


@pytest.mark.parametrize('duration_minutes', [0, -30, None])
def test_non_positive_duration_is_rejected(duration_minutes) -> None:
    with pytest.raises(InvalidServiceError):
        calculate_available_slots(duration_minutes, DAY, [], now=BEFORE_DAY)


@pytest.mark.parametrize('day', ['2024-13-45', 'tomorrow', '', 20240115])
def test_unparseable_day_is_rejected(day) -> None:
    with pytest.raises(InvalidDateError):
        calculate_available_slots(30, day, [], now=BEFORE_DAY)


def test_parse_day_accepts_dates_datetimes_and_iso_strings() -> None:
    assert parse_day(DAY) == DAY
    assert parse_day(at(15, 30)) == DAY
    assert parse_day(' 2024-01-15 ') == DAY


def test_working_hours_for_configured_day() -> None:
    working_hours = {'monday': {'enabled': True, 'start': '09:00', 'end': '17:00'}}

    assert working_hours_for_day(working_hours, DAY) == NINE_TO_FIVE


def test_working_hours_missing_or_malformed_means_whole_day() -> None:
    assert working_hours_for_day(None, DAY) is None
    assert working_hours_for_day({}, DAY) is None
    assert working_hours_for_day({'tuesday': {'start': '09:00', 'end': '17:00'}}, DAY) is None
    assert working_hours_for_day({'monday': {'start': '9am', 'end': '5pm'}}, DAY) is None
    assert working_hours_for_day({'monday': {'start': '17:00', 'end': '09:00'}}, DAY) is None


def test_disabled_working_day_has_no_slots() -> None:
    window = working_hours_for_day({'monday': {'enabled': False, 'start': '09:00', 'end': '17:00'}}, DAY)

    assert calculate_available_slots(30, DAY, [], window=window, now=BEFORE_DAY) == []
