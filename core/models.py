# core/models.py - Key/value settings for the clinic
import logging
from datetime import datetime

from django.db import models

logger = logging.getLogger(__name__)

TRUE_VALUES = ('true', '1', 'yes', 'on')
FALSE_VALUES = ('false', '0', 'no', 'off')
TIME_FORMATS = ('%H:%M', '%H:%M:%S')


class SystemSetting(models.Model):
    """
    Clinic scheduling settings stored as text key/value pairs so staff can
    change clinic hours, lunch, block capacity and closures without a deploy.

    The typed getters never raise: a missing, inactive or unparseable value
    yields the caller's default.
    """
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'System Setting'
        verbose_name_plural = 'System Settings'
        ordering = ['key']

    def __str__(self):
        return f"{self.key}: {self.value}"

    @classmethod
    def _raw(cls, key):
        """Stripped stored text of an active setting, or None"""
        value = cls.objects.filter(key=key, is_active=True).values_list('value', flat=True).first()
        return value.strip() if value is not None else None

    @classmethod
    def _invalid(cls, key, raw, default):
        logger.warning(f"Setting {key}={raw!r} is not valid, using {default!r}")
        return default

    @classmethod
    def get_setting(cls, key, default=None):
        raw = cls._raw(key)
        return default if raw is None else raw

    @classmethod
    def get_int_setting(cls, key, default=0):
        raw = cls._raw(key)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError:
            return cls._invalid(key, raw, default)

    @classmethod
    def get_bool_setting(cls, key, default=False):
        raw = cls._raw(key)
        if raw is None:
            return default
        if raw.lower() in TRUE_VALUES:
            return True
        if raw.lower() in FALSE_VALUES:
            return False
        return cls._invalid(key, raw, default)

    @classmethod
    def get_time_setting(cls, key, default=None):
        """``HH:MM`` or ``HH:MM:SS``, returned at minute precision"""
        raw = cls._raw(key)
        if raw is None:
            return default
        for fmt in TIME_FORMATS:
            try:
                return datetime.strptime(raw, fmt).time().replace(second=0)
            except ValueError:
                continue
        return cls._invalid(key, raw, default)

    @classmethod
    def get_date_list_setting(cls, key):
        """Comma separated YYYY-MM-DD dates; unparseable entries are skipped"""
        dates = set()
        for item in (cls._raw(key) or '').split(','):
            item = item.strip()
            if not item:
                continue
            try:
                dates.add(datetime.strptime(item, '%Y-%m-%d').date())
            except ValueError:
                logger.warning(f"Ignoring bad date {item!r} in setting {key}")
        return dates

    @classmethod
    def set_setting(cls, key, value, description=''):
        """Create or update a setting and make sure it is active"""
        setting, _ = cls.objects.update_or_create(
            key=key,
            defaults={
                'value': str(value),
                'description': description,
                'is_active': True,
            }
        )
        return setting
