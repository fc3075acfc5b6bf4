# core/management/commands/create_default_settings.py

from django.core.management.base import BaseCommand
from core.models import SystemSetting

DEFAULT_SETTINGS = [
    {
        'key': 'clinic_start_time',
        'value': '08:00',
        'description': 'Daily clinic opening time (HH:MM format)'
    },
    {
        'key': 'clinic_end_time',
        'value': '18:00',
        'description': 'Daily clinic closing time (HH:MM format)'
    },
    {
        'key': 'lunch_start_time',
        'value': '12:00',
        'description': 'Lunch break start time (HH:MM format)'
    },
    {
        'key': 'lunch_end_time',
        'value': '13:00',
        'description': 'Lunch break end time (HH:MM format)'
    },
    {
        'key': 'max_patients_per_block',
        'value': '0',
        'description': 'Maximum bookings per 30-minute block (0 = number of dentists on duty)'
    },
    {
        'key': 'enable_same_day_booking',
        'value': 'true',
        'description': 'Allow appointments to be booked for the same day'
    },
    {
        'key': 'clinic_closed_dates',
        'value': '',
        'description': 'Comma separated YYYY-MM-DD dates the clinic is closed'
    },
]


class Command(BaseCommand):
    help = 'Create default scheduling settings for the dental clinic'

    def handle(self, *args, **options):
        """Create default settings"""
        created_count = 0
        updated_count = 0

        for setting_data in DEFAULT_SETTINGS:
            setting, created = SystemSetting.objects.get_or_create(
                key=setting_data['key'],
                defaults={
                    'value': setting_data['value'],
                    'description': setting_data['description'],
                    'is_active': True
                }
            )
            
            if created:
                created_count += 1
                self.stdout.write(
                    self.style.SUCCESS(f'Created setting: {setting.key} = {setting.value}')
                )
            elif not setting.description:
                setting.description = setting_data['description']
                setting.save()
                updated_count += 1
                self.stdout.write(
                    self.style.WARNING(f'Updated description for: {setting.key}')
                )
            else:
                self.stdout.write(f'Setting already exists: {setting.key}')

        self.stdout.write(
            self.style.SUCCESS(
                f'\nDefault settings setup completed:'
                f'\n- Created: {created_count} new settings'
                f'\n- Updated: {updated_count} existing settings'
                f'\n- Total: {len(DEFAULT_SETTINGS)} settings processed'
            )
        )
