# appointments/scheduling/slots.py
"""
Bookable start times and single-slot capacity checks.

Everything here is computed from already-fetched inputs: the day's
capacity grid, its bookings and the dentist roster. Callers must re-run
``check_capacity`` inside the transaction that persists a booking.
"""
import math
from collections import namedtuple

from .availability import active_dentists, is_active_on, slot_fits_dentist_hours
from .ranges import (
    BLOCK_MINUTES, TimeRange, TimeRangeError, expand_to_blocks, format_minutes,
    to_minutes,
)
from .usage import build_global_usage, build_per_dentist_usage, has_overlapping_booking

# A dentist treats one patient per block
DENTIST_BLOCK_CAPACITY = 1

SlotCheck = namedtuple('SlotCheck', [
    'ok',
    'reason',
    'message',
    'assigned_dentist_id',
    'time_range',
], defaults=('', '', None, None))


def blocks_needed(duration_minutes):
    """Number of 30-minute blocks a service of ``duration_minutes`` occupies"""
    return max(1, math.ceil((duration_minutes or BLOCK_MINUTES) / BLOCK_MINUTES))


def range_for_blocks(start, count):
    return TimeRange.from_start(start, count * BLOCK_MINUTES)


def next_block_start(now):
    """
    Earliest start (minutes since midnight) bookable later today.

    Always moves to the following boundary: 10:00 -> 10:30, 13:16 -> 13:30.
    Returns None when that would be tomorrow.
    """
    minutes = now.hour * 60 + now.minute
    next_start = ((minutes + BLOCK_MINUTES) // BLOCK_MINUTES) * BLOCK_MINUTES
    if next_start >= 24 * 60:
        return None
    return next_start


def first_full_block(usage, grid, time_range):
    """First covered block that is missing from the grid or already at capacity"""
    for key in expand_to_blocks(time_range):
        if key not in usage or usage[key] >= grid.capacity:
            return key
    return None


def dentist_is_free(dentist_usage, dentist_id, time_range):
    booked = dentist_usage.get(dentist_id, {})
    return all(
        booked.get(key, 0) < DENTIST_BLOCK_CAPACITY
        for key in expand_to_blocks(time_range)
    )


def dentist_can_take(dentist, date, dentist_usage, time_range):
    return (
        dentist_is_free(dentist_usage, dentist.schedule_id, time_range)
        and slot_fits_dentist_hours(dentist, date, time_range)
    )


def find_dentist(roster, dentist_id):
    for dentist in roster:
        if dentist.schedule_id == dentist_id:
            return dentist
    return None


def resolve_preferred_dentist(roster, date, preferred_dentist_id):
    """The preferred dentist when they are on duty that day, else None"""
    if preferred_dentist_id is None:
        return None
    dentist = find_dentist(roster, preferred_dentist_id)
    if dentist is None or not is_active_on(dentist, date):
        return None
    return dentist


def _ranges_for_grid(grid, count):
    for start in grid.blocks:
        try:
            yield start, range_for_blocks(start, count)
        except TimeRangeError:
            continue


def available_start_times(grid, bookings, roster, date, duration_minutes,
                          preferred_dentist_id=None, patient_id=None,
                          exclude_booking_id=None, now=None):
    """
    Grid start times where a booking of ``duration_minutes`` still fits.

    Every block the booking covers must exist in the grid and sit below
    capacity. When the preferred dentist is on duty they must be free for
    the whole range and it must fit their hours. A patient never gets a
    start that overlaps one of their own bookings. If ``now`` falls on
    ``date``, starts before the next block boundary are dropped.
    """
    if not grid.is_open:
        return []

    usage = build_global_usage(grid, bookings, exclude_booking_id)
    dentist_usage = build_per_dentist_usage(bookings, exclude_booking_id)
    preferred = resolve_preferred_dentist(roster, date, preferred_dentist_id)
    count = blocks_needed(duration_minutes)

    valid = []
    for start, time_range in _ranges_for_grid(grid, count):
        if first_full_block(usage, grid, time_range) is not None:
            continue
        if preferred is not None and not dentist_can_take(preferred, date, dentist_usage, time_range):
            continue
        if patient_id is not None and has_overlapping_booking(
            patient_id, date, time_range, bookings, exclude_booking_id
        ):
            continue
        valid.append(start)

    if now is not None and now.date() == date:
        earliest = next_block_start(now)
        if earliest is None:
            return []
        valid = [start for start in valid if to_minutes(start) >= earliest]

    return valid


def check_capacity(grid, bookings, roster, date, start, duration_minutes,
                   preferred_dentist_id=None, exclude_booking_id=None):
    """
    Validate one requested start time and pick the dentist to assign.

    Without an on-duty preferred dentist the first active dentist (roster
    order) who is free and whose hours contain the range is assigned; if
    nobody qualifies the booking is still accepted unassigned.
    """
    try:
        start_key = format_minutes(to_minutes(start))
        time_range = range_for_blocks(start_key, blocks_needed(duration_minutes))
    except TimeRangeError:
        return SlotCheck(False, 'invalid_start_time', f'Invalid start time: {start}.')

    if not grid.has_block(start_key):
        return SlotCheck(
            False, 'invalid_start_time',
            'Invalid start time (not on grid or outside clinic hours).',
        )

    usage = build_global_usage(grid, bookings, exclude_booking_id)
    full_at = first_full_block(usage, grid, time_range)
    if full_at is not None:
        return SlotCheck(
            False, 'full', f'Time slot starting at {full_at} is already full.',
            time_range=time_range,
        )

    dentist_usage = build_per_dentist_usage(bookings, exclude_booking_id)
    preferred = resolve_preferred_dentist(roster, date, preferred_dentist_id)
    candidates = [preferred] if preferred is not None else active_dentists(roster, date)

    assigned = None
    for dentist in candidates:
        if dentist_can_take(dentist, date, dentist_usage, time_range):
            assigned = dentist.schedule_id
            break

    if preferred is not None and assigned is None:
        return SlotCheck(
            False, 'preferred_dentist_conflict',
            'Your preferred dentist is not available for this time. Please choose another slot.',
            time_range=time_range,
        )

    return SlotCheck(True, '', '', assigned, time_range)
