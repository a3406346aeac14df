"""Enumerations for the catalog."""
from django.db import models


class UnitStatus(models.TextChoices):
    AVAILABLE = 'available', 'Available'
    MAINTENANCE = 'maintenance', 'In Maintenance'
    RETIRED = 'retired', 'Retired'
