# appointments/models.py
from django.db import models
from django.core.exceptions import ValidationError
from django.utils import timezone

from .scheduling import (
    COUNTED_STATUSES, BookingRecord, DentistAvailability, TimeRangeError,
    parse_range,
)
from .scheduling.availability import STATUS_ACTIVE, STATUS_INACTIVE


class DentistSchedule(models.Model):
    """
    One dentist on the clinic roster with their weekly working days and
    optional per-day hours. Empty hours mean the dentist works all clinic
    hours on that day.
    """
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_INACTIVE, 'Inactive'),
    ]

    EMPLOYMENT_CHOICES = [
        ('full_time', 'Full Time'),
        ('part_time', 'Part Time'),
        ('locum', 'Locum'),
    ]

    dentist_code = models.CharField(max_length=20, blank=True)
    dentist_name = models.CharField(max_length=100)
    email = models.EmailField(blank=True)
    employment_type = models.CharField(max_length=20, choices=EMPLOYMENT_CHOICES, default='full_time')
    contract_end_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_ACTIVE)

    mon = models.BooleanField(default=True)
    tue = models.BooleanField(default=True)
    wed = models.BooleanField(default=True)
    thu = models.BooleanField(default=True)
    fri = models.BooleanField(default=True)
    sat = models.BooleanField(default=False)
    sun = models.BooleanField(default=False)

    mon_start_time = models.TimeField(null=True, blank=True)
    mon_end_time = models.TimeField(null=True, blank=True)
    tue_start_time = models.TimeField(null=True, blank=True)
    tue_end_time = models.TimeField(null=True, blank=True)
    wed_start_time = models.TimeField(null=True, blank=True)
    wed_end_time = models.TimeField(null=True, blank=True)
    thu_start_time = models.TimeField(null=True, blank=True)
    thu_end_time = models.TimeField(null=True, blank=True)
    fri_start_time = models.TimeField(null=True, blank=True)
    fri_end_time = models.TimeField(null=True, blank=True)
    sat_start_time = models.TimeField(null=True, blank=True)
    sat_end_time = models.TimeField(null=True, blank=True)
    sun_start_time = models.TimeField(null=True, blank=True)
    sun_end_time = models.TimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['dentist_code', 'id']
        indexes = [
            models.Index(fields=['status'], name='dentist_sched_status_idx'),
        ]

    def __str__(self):
        return f"{self.display_code} ({self.get_status_display()})"

    @property
    def display_code(self):
        return self.dentist_code or self.dentist_name

    @property
    def working_days(self):
        """Working-day flags, Monday first"""
        return (self.mon, self.tue, self.wed, self.thu, self.fri, self.sat, self.sun)

    @property
    def weekly_hours(self):
        """(start, end) per weekday, Monday first"""
        return (
            (self.mon_start_time, self.mon_end_time),
            (self.tue_start_time, self.tue_end_time),
            (self.wed_start_time, self.wed_end_time),
            (self.thu_start_time, self.thu_end_time),
            (self.fri_start_time, self.fri_end_time),
            (self.sat_start_time, self.sat_end_time),
            (self.sun_start_time, self.sun_end_time),
        )

    def clean(self):
        day_names = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']
        for day_name, (start, end) in zip(day_names, self.weekly_hours):
            if (start is None) != (end is None):
                raise ValidationError(f'{day_name} needs both a start and an end time, or neither.')
            if start is not None and end <= start:
                raise ValidationError(f'{day_name} end time must be after start time.')

    def to_availability(self):
        """Snapshot used by the slot allocation code"""
        return DentistAvailability(
            schedule_id=self.pk,
            code=self.dentist_code,
            name=self.dentist_name,
            status=self.status,
            contract_end_date=self.contract_end_date,
            working_days=self.working_days,
            hours=self.weekly_hours,
        )

    @classmethod
    def roster(cls):
        """Every schedule as availability snapshots, in assignment order"""
        return [schedule.to_availability() for schedule in cls.objects.all()]


class Appointment(models.Model):
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
        ('cancelled', 'Cancelled'),
        ('did_not_arrive', 'Did Not Arrive'),
        ('completed', 'Completed'),
    ]

    BLOCKING_STATUSES = list(COUNTED_STATUSES)
    NON_BLOCKING_STATUSES = ['rejected', 'cancelled', 'did_not_arrive']

    patient = models.ForeignKey('patients.Patient', on_delete=models.CASCADE, related_name='appointments')
    service = models.ForeignKey('services.Service', on_delete=models.PROTECT)
    dentist_schedule = models.ForeignKey(
        DentistSchedule, on_delete=models.SET_NULL, null=True, blank=True, related_name='appointments'
    )
    honor_preferred_dentist = models.BooleanField(default=False)
    date = models.DateField()
    time_slot = models.CharField(max_length=11, help_text="HH:MM-HH:MM")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    reason = models.TextField(blank=True)

    requested_at = models.DateTimeField(auto_now_add=True)
    approved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['date', 'time_slot']
        indexes = [
            models.Index(fields=['date', 'status'], name='appt_date_status_idx'),
            models.Index(fields=['patient', 'date'], name='appt_patient_date_idx'),
        ]

    def __str__(self):
        return f"{self.patient.full_name} - {self.date} {self.time_slot}"

    @property
    def time_range(self):
        try:
            return parse_range(self.time_slot)
        except TimeRangeError:
            return None

    @property
    def blocks_time_slot(self):
        """Whether this appointment blocks its time slot"""
        return self.status in self.BLOCKING_STATUSES

    def clean(self):
        try:
            parse_range(self.time_slot)
        except TimeRangeError as e:
            raise ValidationError({'time_slot': str(e)})

    def approve(self):
        """Approve the appointment"""
        self.status = 'approved'
        self.approved_at = timezone.now()
        self.save()

    def cancel(self):
        """Cancel the appointment"""
        self.status = 'cancelled'
        self.save()

    def to_booking_record(self):
        return BookingRecord(
            booking_id=self.pk,
            date=self.date,
            time_slot=self.time_slot,
            status=self.status,
            dentist_schedule_id=self.dentist_schedule_id,
            patient_id=self.patient_id,
        )

    @classmethod
    def bookings_for_date(cls, date):
        """Counted bookings on a date as BookingRecords"""
        appointments = cls.objects.filter(date=date, status__in=cls.BLOCKING_STATUSES)
        return [appointment.to_booking_record() for appointment in appointments]


class BookingDayLock(models.Model):
    """
    One row per clinic date. Bookings for a date lock its row first, so
    concurrent bookers for that date queue up even before any appointment
    exists.
    """
    date = models.DateField(unique=True)

    def __str__(self):
        return f"Booking lock {self.date}"

    @classmethod
    def acquire(cls, date):
        """Create the date's row if needed and lock it until the transaction ends"""
        lock, _ = cls.objects.select_for_update().get_or_create(date=date)
        return lock
