# appointments/scheduling/ranges.py
"""
Time range algebra for the 30-minute block booking system.

Ranges are half-open ``[start, end)`` intervals on a single day, stored on
appointments as ``"HH:MM-HH:MM"`` strings.
"""
from collections import namedtuple
from datetime import datetime, time

BLOCK_MINUTES = 30

TIME_FORMATS = ('%H:%M', '%H:%M:%S')


class TimeRangeError(ValueError):
    """Base class for time range problems"""


class MalformedRangeError(TimeRangeError):
    """A stored time or time range string could not be parsed"""


class InvalidRangeError(TimeRangeError):
    """A parsed range ends at or before its start"""


def parse_time(value):
    """
    Normalize a time of day to minute precision.

    Accepts ``HH:MM`` / ``HH:MM:SS`` strings, ``time`` and ``datetime``
    objects. Seconds are dropped.
    """
    if isinstance(value, datetime):
        value = value.time()
    if isinstance(value, time):
        return time(value.hour, value.minute)
    if not isinstance(value, str):
        raise MalformedRangeError(f'Unsupported time value: {value!r}')

    text = value.strip()
    for fmt in TIME_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt).time()
        except ValueError:
            continue
        return time(parsed.hour, parsed.minute)
    raise MalformedRangeError(f'Invalid time: {value!r}')


def to_minutes(value):
    """Minutes since midnight for a time or time string"""
    t = parse_time(value)
    return t.hour * 60 + t.minute


def format_minutes(minutes):
    return f'{minutes // 60:02d}:{minutes % 60:02d}'


class TimeRange(namedtuple('TimeRange', ['start', 'end'])):
    """Half-open wall-clock interval; ``start`` and ``end`` are ``time`` objects"""
    __slots__ = ()

    def __str__(self):
        return f"{self.start.strftime('%H:%M')}-{self.end.strftime('%H:%M')}"

    @classmethod
    def from_times(cls, start, end):
        """Build a validated range from times or time strings"""
        time_range = cls(parse_time(start), parse_time(end))
        if time_range.end <= time_range.start:
            raise InvalidRangeError(f'End time must be after start time: {time_range}')
        return time_range

    @classmethod
    def from_start(cls, start, minutes):
        """Range starting at ``start`` and lasting ``minutes``"""
        start_minutes = to_minutes(start)
        end_minutes = start_minutes + minutes
        if end_minutes >= 24 * 60:
            raise InvalidRangeError(f'Range starting at {start} runs past midnight')
        return cls.from_times(format_minutes(start_minutes), format_minutes(end_minutes))

    @property
    def duration_minutes(self):
        return to_minutes(self.end) - to_minutes(self.start)


def parse_range(value, validate=True):
    """
    Parse a ``"HH:MM-HH:MM"`` string into a TimeRange.

    Splits on the first ``-``. Raises MalformedRangeError when there is no
    separator or either side is not a time, and InvalidRangeError when
    ``validate`` is set and the range is empty or inverted.
    """
    if not isinstance(value, str) or '-' not in value:
        raise MalformedRangeError(f'Invalid time range: {value!r}')

    start_raw, end_raw = value.split('-', 1)
    if validate:
        return TimeRange.from_times(start_raw, end_raw)
    return TimeRange(parse_time(start_raw), parse_time(end_raw))


def overlaps(a, b):
    """Touching ranges (``a.end == b.start``) do not overlap"""
    return a.start < b.end and a.end > b.start


def fits_within(inner, outer):
    return inner.start >= outer.start and inner.end <= outer.end


def expand_to_blocks(time_range, block_minutes=BLOCK_MINUTES):
    """Block start keys (``HH:MM``) covered by ``time_range``"""
    cursor = to_minutes(time_range.start)
    end = to_minutes(time_range.end)
    blocks = []
    while cursor < end:
        blocks.append(format_minutes(cursor))
        cursor += block_minutes
    return blocks


def build_grid(open_time, close_time, lunch=None, block_minutes=BLOCK_MINUTES):
    """
    Candidate start times from opening (inclusive) to closing (exclusive).

    Starts falling inside the ``lunch`` range are left out.
    """
    cursor = to_minutes(open_time)
    close = to_minutes(close_time)
    grid = []
    while cursor < close:
        key = format_minutes(cursor)
        if lunch is None or not (lunch.start <= parse_time(key) < lunch.end):
            grid.append(key)
        cursor += block_minutes
    return grid
