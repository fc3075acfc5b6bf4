# appointments/scheduling/usage.py
"""
Slot usage maps built fresh from the bookings of a single day.
"""
import logging
from collections import namedtuple

from .ranges import TimeRangeError, expand_to_blocks, overlaps, parse_range

logger = logging.getLogger(__name__)

# Statuses that occupy a time slot
COUNTED_STATUSES = ('pending', 'approved', 'completed')


class BookingRecord(namedtuple('BookingRecord', [
    'booking_id',
    'date',
    'time_slot',
    'status',
    'dentist_schedule_id',
    'patient_id',
], defaults=('pending', None, None))):
    """Minimal projection of an appointment; ``time_slot`` is the stored ``HH:MM-HH:MM`` string"""
    __slots__ = ()

    @property
    def is_counted(self):
        return self.status in COUNTED_STATUSES


class CapacityGrid(namedtuple('CapacityGrid', ['blocks', 'capacity'])):
    """Ordered candidate start times for a day and how many bookings each block holds"""
    __slots__ = ()

    @property
    def is_open(self):
        return bool(self.blocks) and self.capacity > 0

    def has_block(self, key):
        return key in self.blocks


def booking_range(booking):
    """Parsed range of a booking, or None when the stored value is unusable"""
    try:
        return parse_range(booking.time_slot)
    except TimeRangeError as e:
        logger.warning(f'Skipping booking {booking.booking_id} with bad time slot: {e}')
        return None


def _counted_ranges(bookings, exclude_booking_id=None):
    for booking in bookings:
        if not booking.is_counted:
            continue
        if exclude_booking_id is not None and booking.booking_id == exclude_booking_id:
            continue
        time_range = booking_range(booking)
        if time_range is not None:
            yield booking, time_range


def build_global_usage(grid, bookings, exclude_booking_id=None):
    """
    Occupancy count for every grid block across all bookings.

    Blocks a booking covers outside the grid are ignored.
    """
    usage = {key: 0 for key in grid.blocks}
    for _, time_range in _counted_ranges(bookings, exclude_booking_id):
        for key in expand_to_blocks(time_range):
            if key in usage:
                usage[key] += 1
    return usage


def build_per_dentist_usage(bookings, exclude_booking_id=None):
    """
    Occupancy per dentist schedule id. Keys are only created for blocks
    that are actually booked.
    """
    usage = {}
    for booking, time_range in _counted_ranges(bookings, exclude_booking_id):
        if booking.dentist_schedule_id is None:
            continue
        dentist_usage = usage.setdefault(booking.dentist_schedule_id, {})
        for key in expand_to_blocks(time_range):
            dentist_usage[key] = dentist_usage.get(key, 0) + 1
    return usage


def _patient_ranges(patient_id, date, bookings, exclude_booking_id=None):
    for booking, time_range in _counted_ranges(bookings, exclude_booking_id):
        if booking.patient_id == patient_id and booking.date == date:
            yield time_range


def has_overlapping_booking(patient_id, date, candidate, bookings, exclude_booking_id=None):
    """True if the patient already holds a counted booking overlapping ``candidate`` on ``date``"""
    return any(
        overlaps(candidate, time_range)
        for time_range in _patient_ranges(patient_id, date, bookings, exclude_booking_id)
    )


def blocked_ranges_for_patient(patient_id, date, bookings):
    """Ranges the patient already holds on ``date``"""
    return list(_patient_ranges(patient_id, date, bookings))
