# services/models.py
from django.db import models

from appointments.scheduling import blocks_needed


class Service(models.Model):
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    duration_minutes = models.PositiveIntegerField(default=30, help_text="Estimated chair time in minutes")
    is_archived = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name

    @property
    def blocks_needed(self):
        """30-minute booking blocks this service occupies"""
        return blocks_needed(self.duration_minutes)
