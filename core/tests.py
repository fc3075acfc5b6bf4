# core/tests.py
from datetime import date, time

from django.test import TestCase

from .models import SystemSetting


class SystemSettingTests(TestCase):
    """Typed access to key/value settings"""

    def test_missing_settings_use_defaults(self):
        self.assertIsNone(SystemSetting.get_setting('missing'))
        self.assertEqual(SystemSetting.get_int_setting('missing', 3), 3)
        self.assertTrue(SystemSetting.get_bool_setting('missing', True))
        self.assertEqual(SystemSetting.get_time_setting('missing', time(8, 0)), time(8, 0))
        self.assertEqual(SystemSetting.get_date_list_setting('missing'), set())

    def test_inactive_settings_are_ignored(self):
        setting = SystemSetting.set_setting('max_patients_per_block', '4')
        setting.is_active = False
        setting.save()
        self.assertEqual(SystemSetting.get_int_setting('max_patients_per_block', 0), 0)

    def test_set_setting_updates_existing(self):
        SystemSetting.set_setting('clinic_end_time', '18:00')
        SystemSetting.set_setting('clinic_end_time', '17:00', 'Closing time')
        self.assertEqual(SystemSetting.objects.filter(key='clinic_end_time').count(), 1)
        self.assertEqual(SystemSetting.get_time_setting('clinic_end_time'), time(17, 0))

    def test_bad_values_fall_back(self):
        SystemSetting.set_setting('max_patients_per_block', 'many')
        SystemSetting.set_setting('clinic_start_time', '8 o clock')
        SystemSetting.set_setting('enable_same_day_booking', 'maybe')
        with self.assertLogs('core.models', level='WARNING') as logs:
            self.assertEqual(SystemSetting.get_int_setting('max_patients_per_block', 0), 0)
            self.assertEqual(SystemSetting.get_time_setting('clinic_start_time', time(8, 0)), time(8, 0))
            self.assertTrue(SystemSetting.get_bool_setting('enable_same_day_booking', True))
        self.assertEqual(len(logs.output), 3)

    def test_time_setting_formats(self):
        SystemSetting.set_setting('clinic_start_time', ' 08:30 ')
        SystemSetting.set_setting('clinic_end_time', '17:45:30')
        self.assertEqual(SystemSetting.get_time_setting('clinic_start_time'), time(8, 30))
        self.assertEqual(SystemSetting.get_time_setting('clinic_end_time'), time(17, 45))

    def test_bool_setting(self):
        for value, expected in [('true', True), ('Yes', True), ('1', True), ('false', False), ('off', False)]:
            with self.subTest(value=value):
                SystemSetting.set_setting('enable_same_day_booking', value)
                self.assertEqual(SystemSetting.get_bool_setting('enable_same_day_booking'), expected)

    def test_date_list_setting(self):
        SystemSetting.set_setting('clinic_closed_dates', '2024-12-25, 2025-01-01,,not-a-date')
        with self.assertLogs('core.models', level='WARNING'):
            dates = SystemSetting.get_date_list_setting('clinic_closed_dates')
        self.assertEqual(dates, {date(2024, 12, 25), date(2025, 1, 1)})
