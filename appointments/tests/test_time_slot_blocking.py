# appointments/tests/test_time_slot_blocking.py
from datetime import date, datetime, time
from unittest.mock import patch

import pytz
from django.core.exceptions import ValidationError
from django.db import connection
from django.test import TestCase
from django.test.utils import CaptureQueriesContext

from appointments.models import Appointment, BookingDayLock, DentistSchedule
from appointments.utils import (
    AppointmentConfig, create_appointment, get_available_slots_for_date,
    get_capacity_grid, reschedule_appointment,
)
from core.models import SystemSetting
from patients.models import Patient
from services.models import Service

MANILA = pytz.timezone('Asia/Manila')

MONDAY = date(2024, 6, 10)
SUNDAY = date(2024, 6, 9)


def clinic_time(*args):
    return MANILA.localize(datetime(*args))


class BookingTestCase(TestCase):
    """Shared fixtures; the clinic clock is frozen on the Friday before MONDAY"""

    now = clinic_time(2024, 6, 7, 9, 0)

    def setUp(self):
        clock = patch.object(AppointmentConfig, 'get_clinic_now', return_value=self.now)
        clock.start()
        self.addCleanup(clock.stop)

        self.dentist = DentistSchedule.objects.create(dentist_code='DR-01', dentist_name='John Doe')

        self.patient = Patient.objects.create(
            first_name='Jane',
            last_name='Smith',
            email='jane@example.com',
            contact_number='+639123456789'
        )
        self.other_patient = Patient.objects.create(first_name='Mark', last_name='Cruz')

        self.service_30min = Service.objects.create(name='Cleaning', duration_minutes=30, price=1500)
        self.service_60min = Service.objects.create(name='Root Canal', duration_minutes=60, price=5000)

    def book(self, start, service=None, patient=None, appointment_date=MONDAY, **kwargs):
        return create_appointment(
            patient or self.patient,
            service or self.service_30min,
            appointment_date,
            start,
            **kwargs
        )


class CapacityGridTest(BookingTestCase):
    """Clinic grid and capacity for a date"""

    def test_default_grid(self):
        grid = get_capacity_grid(MONDAY)
        self.assertEqual(grid.blocks[0], '08:00')
        self.assertEqual(grid.blocks[-1], '17:30')
        self.assertNotIn('12:00', grid.blocks)
        self.assertNotIn('12:30', grid.blocks)
        self.assertEqual(grid.capacity, 1)

    def test_grid_follows_settings(self):
        SystemSetting.set_setting('clinic_start_time', '09:00')
        SystemSetting.set_setting('clinic_end_time', '11:00')
        grid = get_capacity_grid(MONDAY)
        self.assertEqual(grid.blocks, ('09:00', '09:30', '10:00', '10:30'))

    def test_capacity_counts_dentists_on_duty(self):
        DentistSchedule.objects.create(dentist_code='DR-02', dentist_name='Ana Reyes')
        DentistSchedule.objects.create(dentist_code='DR-03', dentist_name='Off Monday', mon=False)
        DentistSchedule.objects.create(dentist_code='DR-04', dentist_name='Left', status='inactive')
        self.assertEqual(get_capacity_grid(MONDAY).capacity, 2)

    def test_capacity_capped_by_setting(self):
        DentistSchedule.objects.create(dentist_code='DR-02', dentist_name='Ana Reyes')
        SystemSetting.set_setting('max_patients_per_block', '1')
        self.assertEqual(get_capacity_grid(MONDAY).capacity, 1)

    def test_closed_days(self):
        self.assertFalse(get_capacity_grid(SUNDAY).is_open)
        SystemSetting.set_setting('clinic_closed_dates', '2024-06-12, 2024-06-10')
        self.assertFalse(get_capacity_grid(MONDAY).is_open)


class TimeSlotBlockingTest(BookingTestCase):
    """Booking through the transactional workflow"""

    def test_basic_time_slot_blocking(self):
        appointment = self.book('14:00')
        self.assertEqual(appointment.time_slot, '14:00-14:30')
        self.assertEqual(appointment.status, 'pending')
        self.assertEqual(appointment.dentist_schedule, self.dentist)

        with self.assertRaises(ValidationError):
            self.book('14:00', patient=self.other_patient)

    def test_accepts_time_objects(self):
        appointment = self.book(time(9, 30))
        self.assertEqual(appointment.time_slot, '09:30-10:00')

    def test_service_duration_blocking(self):
        self.book('14:00', service=self.service_60min)

        with self.assertRaises(ValidationError):
            self.book('14:30', patient=self.other_patient)

        appointment = self.book('15:00', patient=self.other_patient)
        self.assertEqual(appointment.time_slot, '15:00-15:30')

    def test_status_based_blocking(self):
        for status in ['cancelled', 'rejected', 'did_not_arrive']:
            with self.subTest(status=status):
                appointment = self.book('10:00')
                appointment.status = status
                appointment.save()

                other = self.book('10:00', patient=self.other_patient)
                self.assertTrue(other.blocks_time_slot)
                other.cancel()

    def test_cancel_frees_slot(self):
        appointment = self.book('10:00')
        appointment.cancel()
        self.assertFalse(appointment.blocks_time_slot)
        self.assertEqual(self.book('10:00', patient=self.other_patient).time_slot, '10:00-10:30')

    def test_lunch_break_blocking(self):
        with self.assertRaises(ValidationError):
            self.book('12:30')

        with self.assertRaises(ValidationError) as cm:
            self.book('11:30', service=self.service_60min)
        self.assertIn('12:00', str(cm.exception))

    def test_clinic_hours_blocking(self):
        with self.assertRaises(ValidationError):
            self.book('07:30')
        with self.assertRaises(ValidationError):
            self.book('18:00')
        with self.assertRaises(ValidationError):
            self.book('17:30', service=self.service_60min)

    def test_patient_double_booking(self):
        DentistSchedule.objects.create(dentist_code='DR-02', dentist_name='Ana Reyes')
        self.book('09:00', service=self.service_60min)

        with self.assertRaises(ValidationError) as cm:
            self.book('09:30')
        self.assertIn('overlaps', str(cm.exception))

        self.assertEqual(self.book('10:00').time_slot, '10:00-10:30')

    def test_sunday_and_closed_dates(self):
        with self.assertRaises(ValidationError) as cm:
            self.book('10:00', appointment_date=SUNDAY)
        self.assertIn('closed', str(cm.exception).lower())

    def test_past_date_blocking(self):
        with self.assertRaises(ValidationError) as cm:
            self.book('10:00', appointment_date=date(2024, 6, 6))
        self.assertIn('past', str(cm.exception).lower())

    def test_invalid_start_time(self):
        with self.assertRaises(ValidationError):
            self.book('ten o clock')
        with self.assertRaises(ValidationError):
            self.book('10:15')

    def test_no_dentist_on_duty(self):
        self.dentist.status = 'inactive'
        self.dentist.save()
        with self.assertRaises(ValidationError):
            self.book('10:00')


class PreferredDentistTest(BookingTestCase):
    """Honouring a patient's preferred dentist"""

    def setUp(self):
        super().setUp()
        self.dentist.mon_start_time = time(9, 0)
        self.dentist.mon_end_time = time(11, 0)
        self.dentist.save()
        self.second = DentistSchedule.objects.create(dentist_code='DR-02', dentist_name='Ana Reyes')

    def test_assigned_to_preferred_dentist(self):
        appointment = self.book('09:00', preferred_dentist=self.dentist)
        self.assertEqual(appointment.dentist_schedule, self.dentist)
        self.assertTrue(appointment.honor_preferred_dentist)

    def test_preferred_dentist_outside_hours(self):
        with self.assertRaises(ValidationError) as cm:
            self.book('10:30', service=self.service_60min, preferred_dentist=self.dentist)
        self.assertIn('preferred dentist', str(cm.exception))

    def test_preferred_dentist_already_booked(self):
        self.book('09:00', preferred_dentist=self.dentist)
        with self.assertRaises(ValidationError):
            self.book('09:00', patient=self.other_patient, preferred_dentist=self.dentist)

        appointment = self.book('09:00', patient=self.other_patient)
        self.assertEqual(appointment.dentist_schedule, self.second)

    def test_auto_assignment_respects_hours(self):
        appointment = self.book('14:00')
        self.assertEqual(appointment.dentist_schedule, self.second)

    def test_available_slots_for_preferred_dentist(self):
        result = get_available_slots_for_date(MONDAY, service=self.service_30min, preferred_dentist=self.dentist)
        self.assertEqual(result['slots'], ['09:00', '09:30', '10:00', '10:30'])
        self.assertEqual(result['dentists'], ['DR-01', 'DR-02'])


class SameDayBookingTest(BookingTestCase):
    """Bookings for later today"""

    now = clinic_time(2024, 6, 10, 10, 5)

    def test_past_block_today_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.book('10:00')
        self.assertEqual(self.book('10:30').time_slot, '10:30-11:00')

    def test_same_day_booking_disabled(self):
        SystemSetting.set_setting('enable_same_day_booking', 'false')
        with self.assertRaises(ValidationError) as cm:
            self.book('15:00')
        self.assertIn('same-day', str(cm.exception).lower())

    def test_available_slots_today_start_after_now(self):
        slots = get_available_slots_for_date(MONDAY)['slots']
        self.assertEqual(slots[0], '10:30')


class AvailableSlotsTest(BookingTestCase):

    def test_usage_and_slots(self):
        self.book('09:00', service=self.service_60min)
        result = get_available_slots_for_date(MONDAY, service=self.service_30min)

        self.assertEqual(result['capacity'], 1)
        self.assertEqual(result['usage']['09:00'], 1)
        self.assertEqual(result['usage']['09:30'], 1)
        self.assertEqual(result['usage']['10:00'], 0)
        self.assertEqual(result['per_dentist'], {self.dentist.pk: {'09:00': 1, '09:30': 1}})
        self.assertNotIn('09:00', result['slots'])
        self.assertNotIn('09:30', result['slots'])
        self.assertIn('10:00', result['slots'])

    def test_long_service_slots(self):
        result = get_available_slots_for_date(MONDAY, service=self.service_60min)
        self.assertNotIn('11:30', result['slots'])
        self.assertNotIn('17:30', result['slots'])
        self.assertIn('17:00', result['slots'])

    def test_patient_sees_own_bookings_blocked(self):
        DentistSchedule.objects.create(dentist_code='DR-02', dentist_name='Ana Reyes')
        self.book('09:00')
        mine = get_available_slots_for_date(MONDAY, patient=self.patient)['slots']
        theirs = get_available_slots_for_date(MONDAY, patient=self.other_patient)['slots']
        self.assertNotIn('09:00', mine)
        self.assertIn('09:00', theirs)

        blocked = get_available_slots_for_date(MONDAY, patient=self.patient)['patient_blocked']
        self.assertEqual(blocked, ['09:00-09:30'])
        self.assertEqual(get_available_slots_for_date(MONDAY, patient=self.other_patient)['patient_blocked'], [])
        self.assertNotIn('patient_blocked', get_available_slots_for_date(MONDAY))

    def test_malformed_stored_slot_does_not_block(self):
        Appointment.objects.create(
            patient=self.other_patient, service=self.service_30min, date=MONDAY,
            time_slot='garbage', status='approved',
        )
        with self.assertLogs('appointments.scheduling.usage', level='WARNING'):
            result = get_available_slots_for_date(MONDAY)
        self.assertIn('09:00', result['slots'])

    def test_past_date_has_no_slots(self):
        self.assertEqual(get_available_slots_for_date(date(2024, 6, 3))['slots'], [])


class RescheduleTest(BookingTestCase):
    """Moving an appointment excludes its own slot from usage"""

    def test_move_into_own_range(self):
        appointment = self.book('09:00', service=self.service_60min)
        moved = reschedule_appointment(appointment, MONDAY, '09:30')
        moved.refresh_from_db()
        self.assertEqual(moved.time_slot, '09:30-10:30')
        self.assertEqual(moved.dentist_schedule, self.dentist)

    def test_move_into_taken_slot(self):
        self.book('09:00', patient=self.other_patient)
        appointment = self.book('10:00')
        with self.assertRaises(ValidationError):
            reschedule_appointment(appointment, MONDAY, '09:00')
        appointment.refresh_from_db()
        self.assertEqual(appointment.time_slot, '10:00-10:30')

    def test_move_to_another_day(self):
        appointment = self.book('09:00')
        moved = reschedule_appointment(appointment, date(2024, 6, 11), '15:00')
        self.assertEqual(moved.date, date(2024, 6, 11))
        self.assertEqual(moved.time_slot, '15:00-15:30')

    def test_cancelled_cannot_be_rescheduled(self):
        appointment = self.book('09:00')
        appointment.cancel()
        with self.assertRaises(ValidationError):
            reschedule_appointment(appointment, MONDAY, '10:00')


class AppointmentModelTest(BookingTestCase):

    def test_booking_record(self):
        appointment = self.book('09:00')
        record = appointment.to_booking_record()
        self.assertEqual(record.booking_id, appointment.pk)
        self.assertEqual(record.patient_id, self.patient.pk)
        self.assertEqual(record.dentist_schedule_id, self.dentist.pk)
        self.assertTrue(record.is_counted)
        self.assertEqual(str(appointment.time_range), '09:00-09:30')

    def test_bookings_for_date_skips_non_blocking(self):
        self.book('09:00').cancel()
        self.book('10:00')
        self.assertEqual([b.time_slot for b in Appointment.bookings_for_date(MONDAY)], ['10:00-10:30'])

    def test_approve(self):
        appointment = self.book('09:00')
        appointment.approve()
        self.assertEqual(appointment.status, 'approved')
        self.assertIsNotNone(appointment.approved_at)

    def test_clean_rejects_bad_time_slot(self):
        appointment = Appointment(patient=self.patient, service=self.service_30min,
                                  date=MONDAY, time_slot='10:00-09:00')
        self.assertIsNone(appointment.time_range)
        with self.assertRaises(ValidationError):
            appointment.clean()


class BookingLockTest(BookingTestCase):
    """Bookings for a date serialise on that date's lock row"""

    def first_query_index(self, queries, fragment):
        for index, query in enumerate(queries):
            if fragment in query['sql']:
                return index
        self.fail(f'No query touching {fragment}')

    def test_lock_taken_before_bookings_are_read(self):
        with CaptureQueriesContext(connection) as ctx:
            self.book('09:00')

        lock_index = self.first_query_index(ctx.captured_queries, 'appointments_bookingdaylock')
        read_index = self.first_query_index(ctx.captured_queries, 'FROM "appointments_appointment"')
        self.assertLess(lock_index, read_index)

        if connection.features.has_select_for_update:
            self.assertIn('FOR UPDATE', ctx.captured_queries[lock_index]['sql'])

    def test_empty_day_still_gets_a_lock_row(self):
        self.assertFalse(BookingDayLock.objects.filter(date=MONDAY).exists())
        self.book('09:00')
        self.book('10:00')
        self.assertEqual(BookingDayLock.objects.filter(date=MONDAY).count(), 1)

    def test_reschedule_locks_target_date(self):
        appointment = self.book('09:00')
        reschedule_appointment(appointment, date(2024, 6, 11), '10:00')
        self.assertTrue(BookingDayLock.objects.filter(date=date(2024, 6, 11)).exists())

    def test_rejected_request_takes_no_lock(self):
        with self.assertRaises(ValidationError):
            self.book('10:00', appointment_date=SUNDAY)
        self.assertFalse(BookingDayLock.objects.exists())
