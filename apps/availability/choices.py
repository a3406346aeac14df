"""Enumerations for Availability app."""
from django.db import models


class ReservationStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    CONFIRMED = 'confirmed', 'Confirmed'
    ONGOING = 'ongoing', 'Ongoing'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'
    REJECTED = 'rejected', 'Rejected'


# Statuses that always hold inventory; PENDING is added per store setting
ALWAYS_BLOCKING_STATUSES = frozenset({ReservationStatus.CONFIRMED, ReservationStatus.ONGOING})


class AvailabilityStatus(models.TextChoices):
    AVAILABLE = 'available', 'Available'
    LIMITED = 'limited', 'Limited'
    UNAVAILABLE = 'unavailable', 'Unavailable'


class AllocationMode(models.TextChoices):
    SINGLE = 'single', 'Single Combination'
    SPLIT = 'split', 'Split Across Combinations'
