# appointments/management/commands/show_slot_usage.py

from datetime import datetime

from django.core.management.base import BaseCommand, CommandError

from appointments.models import Appointment, DentistSchedule
from appointments.scheduling import (
    active_dentists, available_start_times, build_global_usage,
    build_per_dentist_usage, hours_for,
)
from appointments.utils import get_capacity_grid


class Command(BaseCommand):
    help = 'Show block usage, dentists on duty and bookable start times for a date'

    def add_arguments(self, parser):
        parser.add_argument('date', help='Date to inspect (YYYY-MM-DD)')
        parser.add_argument(
            '--duration',
            type=int,
            default=30,
            help='Service duration in minutes used for the bookable start list',
        )

    def handle(self, *args, **options):
        try:
            date_obj = datetime.strptime(options['date'], '%Y-%m-%d').date()
        except ValueError:
            raise CommandError(f"Invalid date '{options['date']}', expected YYYY-MM-DD")

        roster = DentistSchedule.roster()
        grid = get_capacity_grid(date_obj, roster)

        if not grid.blocks:
            self.stdout.write(self.style.WARNING(f'Clinic is closed on {date_obj}'))
            return

        bookings = Appointment.bookings_for_date(date_obj)
        usage = build_global_usage(grid, bookings)
        dentist_usage = build_per_dentist_usage(bookings)

        on_duty = active_dentists(roster, date_obj)
        codes = [dentist.display_code for dentist in on_duty]
        self.stdout.write(f'Date: {date_obj} ({date_obj:%A})')
        self.stdout.write(f"Dentists on duty: {', '.join(codes) if codes else 'none'}")
        self.stdout.write(f'Capacity per block: {grid.capacity}')
        self.stdout.write(f'Counted bookings: {len(bookings)}')

        for dentist in on_duty:
            hours = hours_for(dentist, date_obj.weekday())
            self.stdout.write(f"  {dentist.display_code}: {hours if hours else 'all clinic hours'}")

        self.stdout.write('-' * 50)
        for key in grid.blocks:
            used = usage[key]
            line = f'{key}  {used}/{grid.capacity}'
            if used >= grid.capacity:
                line = self.style.ERROR(f'{line}  FULL')
            self.stdout.write(line)

        if dentist_usage:
            self.stdout.write('-' * 50)
            for dentist_id, blocks in sorted(dentist_usage.items()):
                booked = ', '.join(sorted(blocks))
                self.stdout.write(f'Dentist {dentist_id}: {booked}')

        starts = available_start_times(grid, bookings, roster, date_obj, options['duration'])
        self.stdout.write('-' * 50)
        self.stdout.write(
            self.style.SUCCESS(f"Bookable starts ({options['duration']} min): {', '.join(starts) or 'none'}")
        )
