# appointments/scheduling/__init__.py
"""
Pure slot allocation for the 30-minute block booking system.

Nothing in this package touches the database; callers hand in the day's
bookings, the dentist roster and the clinic's capacity grid.
"""
from .availability import (
    WEEKDAY_KEYS, DentistAvailability, active_dentists, codes_for_date,
    count_for_date, hours_for, is_active_on, slot_fits_dentist_hours,
)
from .ranges import (
    BLOCK_MINUTES, InvalidRangeError, MalformedRangeError, TimeRange,
    TimeRangeError, build_grid, expand_to_blocks, fits_within, overlaps,
    parse_range, parse_time,
)
from .slots import (
    SlotCheck, available_start_times, blocks_needed, check_capacity,
    next_block_start,
)
from .usage import (
    COUNTED_STATUSES, BookingRecord, CapacityGrid, blocked_ranges_for_patient,
    build_global_usage, build_per_dentist_usage, has_overlapping_booking,
)
