# appointments/utils.py - Booking workflow for the 30-minute block system
import logging
from datetime import time

import pytz
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from core.models import SystemSetting
from .scheduling import (
    CapacityGrid, InvalidRangeError, TimeRange, TimeRangeError, available_start_times,
    blocked_ranges_for_patient, build_global_usage, build_grid, build_per_dentist_usage,
    check_capacity, codes_for_date, count_for_date, has_overlapping_booking, next_block_start,
)
from .scheduling.ranges import to_minutes

logger = logging.getLogger(__name__)


class AppointmentConfig:
    """Helper class for appointment-related configuration"""

    @classmethod
    def get_clinic_hours(cls):
        """Get clinic operating hours"""
        return (
            SystemSetting.get_time_setting('clinic_start_time', time(8, 0)),
            SystemSetting.get_time_setting('clinic_end_time', time(18, 0)),
        )

    @classmethod
    def get_lunch_break(cls):
        """Lunch break as a TimeRange, or None when disabled or misconfigured"""
        start = SystemSetting.get_time_setting('lunch_start_time', time(12, 0))
        end = SystemSetting.get_time_setting('lunch_end_time', time(13, 0))
        try:
            return TimeRange.from_times(start, end)
        except InvalidRangeError:
            logger.warning(f'Ignoring lunch break {start}-{end}: end is not after start')
            return None

    @classmethod
    def get_max_patients_per_block(cls):
        """Upper bound on bookings per block; 0 means the dentist count decides"""
        return SystemSetting.get_int_setting('max_patients_per_block', 0)

    @classmethod
    def is_same_day_booking_enabled(cls):
        """Check if same-day booking is allowed"""
        return SystemSetting.get_bool_setting('enable_same_day_booking', True)

    @classmethod
    def get_closed_dates(cls):
        return SystemSetting.get_date_list_setting('clinic_closed_dates')

    @classmethod
    def get_clinic_now(cls):
        """Current wall-clock time at the clinic"""
        clinic_tz = pytz.timezone(settings.CLINIC_TIME_ZONE)
        return timezone.now().astimezone(clinic_tz)


def is_clinic_closed(date_obj):
    # No appointments on Sundays
    return date_obj.weekday() == 6 or date_obj in AppointmentConfig.get_closed_dates()


def get_capacity_grid(date_obj, roster=None):
    """
    Bookable 30-minute starts and per-block capacity for a date.

    Capacity is the number of dentists on duty, capped by the
    ``max_patients_per_block`` setting when it is positive.
    """
    from .models import DentistSchedule

    if is_clinic_closed(date_obj):
        return CapacityGrid((), 0)

    if roster is None:
        roster = DentistSchedule.roster()

    open_time, close_time = AppointmentConfig.get_clinic_hours()
    blocks = build_grid(open_time, close_time, lunch=AppointmentConfig.get_lunch_break())

    capacity = count_for_date(roster, date_obj)
    max_per_block = AppointmentConfig.get_max_patients_per_block()
    if max_per_block > 0:
        capacity = min(capacity, max_per_block)

    return CapacityGrid(tuple(blocks), capacity)


def get_available_slots_for_date(date_obj, service=None, patient=None, preferred_dentist=None):
    """
    Available start times for a date plus the usage they were derived from

    Returns:
        dict: {
            'slots': list of 'HH:MM',
            'capacity': int,
            'dentists': list of dentist codes on duty,
            'usage': {'HH:MM': count},
            'per_dentist': {dentist_schedule_id: {'HH:MM': count}},
            'patient_blocked': list of 'HH:MM-HH:MM' the patient already holds
                (only when a patient is given),
        }
    """
    from .models import Appointment, DentistSchedule

    roster = DentistSchedule.roster()
    grid = get_capacity_grid(date_obj, roster)
    bookings = Appointment.bookings_for_date(date_obj)
    now = AppointmentConfig.get_clinic_now()

    if date_obj < now.date():
        slots = []
    else:
        slots = available_start_times(
            grid,
            bookings,
            roster,
            date_obj,
            service.duration_minutes if service else None,
            preferred_dentist_id=preferred_dentist.pk if preferred_dentist else None,
            patient_id=patient.pk if patient else None,
            now=now,
        )

    result = {
        'slots': slots,
        'capacity': grid.capacity,
        'dentists': codes_for_date(roster, date_obj),
        'usage': build_global_usage(grid, bookings),
        'per_dentist': build_per_dentist_usage(bookings),
    }
    if patient is not None:
        result['patient_blocked'] = [
            str(time_range) for time_range in blocked_ranges_for_patient(patient.pk, date_obj, bookings)
        ]
    return result


def validate_appointment_date(appointment_date, start_time):
    """
    Validate if an appointment date and start are still bookable

    Returns:
        tuple: (is_valid, error_message)
    """
    if not appointment_date:
        return False, "Appointment date is required"

    now = AppointmentConfig.get_clinic_now()
    today = now.date()

    if appointment_date < today:
        return False, "Appointment date cannot be in the past"

    if is_clinic_closed(appointment_date):
        return False, "The clinic is closed on this date"

    try:
        start_minutes = to_minutes(start_time)
    except TimeRangeError:
        return False, f"Invalid start time: {start_time}"

    if appointment_date == today:
        if not AppointmentConfig.is_same_day_booking_enabled():
            return False, "Same-day booking is not available"
        earliest = next_block_start(now)
        if earliest is None or start_minutes < earliest:
            return False, "This time has already passed. Please choose a later slot"

    return True, "Date is valid"


def _reserve_slot(patient_id, service, appointment_date, start_time,
                  preferred_dentist_id=None, exclude_appointment_id=None):
    """
    Re-run the capacity and overlap checks while holding the date's booking
    lock. Must run inside a transaction.
    """
    from .models import Appointment, BookingDayLock, DentistSchedule

    is_valid, message = validate_appointment_date(appointment_date, start_time)
    if not is_valid:
        raise ValidationError(message)

    BookingDayLock.acquire(appointment_date)

    roster = DentistSchedule.roster()
    grid = get_capacity_grid(appointment_date, roster)
    bookings = Appointment.bookings_for_date(appointment_date)

    result = check_capacity(
        grid,
        bookings,
        roster,
        appointment_date,
        start_time,
        service.duration_minutes,
        preferred_dentist_id=preferred_dentist_id,
        exclude_booking_id=exclude_appointment_id,
    )
    if not result.ok:
        logger.warning(
            f'Rejected booking on {appointment_date} at {start_time}: {result.reason}'
        )
        raise ValidationError(result.message)

    if has_overlapping_booking(patient_id, appointment_date, result.time_range, bookings,
                               exclude_booking_id=exclude_appointment_id):
        raise ValidationError('You already have an appointment that overlaps this time.')

    return result


@transaction.atomic
def create_appointment(patient, service, appointment_date, start_time, preferred_dentist=None, reason=''):
    """
    Book a pending appointment

    Args:
        patient: Patient instance
        service: Service instance
        appointment_date: date object
        start_time: 'HH:MM' string or time object on the clinic grid
        preferred_dentist: DentistSchedule instance (optional)
        reason: str (optional)

    Returns:
        Appointment

    Raises:
        ValidationError: If the slot is unavailable or the request is invalid
    """
    from .models import Appointment

    result = _reserve_slot(
        patient.pk,
        service,
        appointment_date,
        start_time,
        preferred_dentist_id=preferred_dentist.pk if preferred_dentist else None,
    )

    appointment = Appointment.objects.create(
        patient=patient,
        service=service,
        date=appointment_date,
        time_slot=str(result.time_range),
        dentist_schedule_id=result.assigned_dentist_id,
        honor_preferred_dentist=preferred_dentist is not None,
        reason=reason,
        status='pending',
    )

    logger.info(
        f'Booked appointment {appointment.pk} for patient {patient.pk} on '
        f'{appointment_date} {appointment.time_slot} (dentist {result.assigned_dentist_id})'
    )
    return appointment


@transaction.atomic
def reschedule_appointment(appointment, new_date, new_start_time):
    """
    Move an appointment to a new date/start, ignoring its own current slot

    Raises:
        ValidationError: If the appointment cannot be moved there
    """
    if not appointment.blocks_time_slot:
        raise ValidationError(f'A {appointment.get_status_display().lower()} appointment cannot be rescheduled.')

    preferred_dentist_id = appointment.dentist_schedule_id if appointment.honor_preferred_dentist else None

    result = _reserve_slot(
        appointment.patient_id,
        appointment.service,
        new_date,
        new_start_time,
        preferred_dentist_id=preferred_dentist_id,
        exclude_appointment_id=appointment.pk,
    )

    old_slot = f'{appointment.date} {appointment.time_slot}'
    appointment.date = new_date
    appointment.time_slot = str(result.time_range)
    appointment.dentist_schedule_id = result.assigned_dentist_id
    appointment.save()

    logger.info(f'Rescheduled appointment {appointment.pk} from {old_slot} to {new_date} {appointment.time_slot}')
    return appointment
