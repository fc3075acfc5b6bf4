# appointments/scheduling/availability.py
"""
Dentist availability: who counts toward capacity on a date and which hours
constrain their bookable slots.
"""
import logging
from collections import namedtuple

from .ranges import TimeRange, TimeRangeError, fits_within

logger = logging.getLogger(__name__)

# Indexed by date.weekday(): 0=Monday, 6=Sunday
WEEKDAY_KEYS = ('mon', 'tue', 'wed', 'thu', 'fri', 'sat', 'sun')

STATUS_ACTIVE = 'active'
STATUS_INACTIVE = 'inactive'


class DentistAvailability(namedtuple('DentistAvailability', [
    'schedule_id',
    'code',
    'name',
    'status',
    'contract_end_date',
    'working_days',
    'hours',
])):
    """
    Read-only view of one dentist schedule entry.

    ``working_days`` holds seven booleans and ``hours`` seven optional
    ``(start, end)`` pairs, both Monday first. Hour values may be time
    objects or ``HH:MM``/``HH:MM:SS`` strings.
    """
    __slots__ = ()

    @classmethod
    def build(cls, schedule_id, days=(), hours=None, code='', name='',
              status=STATUS_ACTIVE, contract_end_date=None):
        """Build from weekday keys, e.g. ``days=('mon', 'tue')`` and ``hours={'mon': ('09:00', '12:00')}``"""
        hours = hours or {}
        working_days = tuple(key in days for key in WEEKDAY_KEYS)
        day_hours = tuple(hours.get(key) for key in WEEKDAY_KEYS)
        return cls(schedule_id, code, name, status, contract_end_date, working_days, day_hours)

    @property
    def display_code(self):
        return self.code or self.name


def weekday_index(weekday):
    """Accept 0-6 (Monday first) or a weekday key such as ``'mon'``/``'Monday'``"""
    if isinstance(weekday, int):
        if not 0 <= weekday <= 6:
            raise ValueError(f'Invalid weekday: {weekday}')
        return weekday
    key = weekday.strip().lower()[:3]
    return WEEKDAY_KEYS.index(key)


def works_on(dentist, weekday):
    return bool(dentist.working_days[weekday_index(weekday)])


def is_active_on(dentist, date):
    """
    True if this dentist counts toward capacity on ``date``.

    Every other availability check goes through this predicate.
    """
    if dentist.status != STATUS_ACTIVE:
        return False
    if dentist.contract_end_date is not None and dentist.contract_end_date < date:
        return False
    return works_on(dentist, date.weekday())


def hours_for(dentist, weekday):
    """
    Configured hours for a weekday, or None when the dentist is available
    for all clinic hours that day.

    Unparseable or inverted stored hours count as no constraint.
    """
    pair = dentist.hours[weekday_index(weekday)]
    if not pair:
        return None

    start, end = pair
    if start in (None, '') or end in (None, ''):
        return None

    try:
        return TimeRange.from_times(start, end)
    except TimeRangeError as e:
        logger.warning(
            f'Ignoring malformed hours for dentist {dentist.schedule_id} '
            f'on {WEEKDAY_KEYS[weekday_index(weekday)]}: {e}'
        )
        return None


def slot_fits_dentist_hours(dentist, date, candidate):
    """The whole candidate range must sit inside the dentist's hours, not just its start"""
    weekday = date.weekday()
    if not works_on(dentist, weekday):
        return False

    hours = hours_for(dentist, weekday)
    if hours is None:
        return True
    return fits_within(candidate, hours)


def active_dentists(roster, date):
    return [dentist for dentist in roster if is_active_on(dentist, date)]


def count_for_date(roster, date):
    return len(active_dentists(roster, date))


def codes_for_date(roster, date):
    """Display codes of the dentists on duty, falling back to names"""
    return [dentist.display_code for dentist in active_dentists(roster, date)]
