"""Enumerations for store policy."""
from django.db import models


class PricingMode(models.TextChoices):
    HOUR = 'hour', 'Per Hour'
    DAY = 'day', 'Per Day'
    WEEK = 'week', 'Per Week'


# Length of one pricing unit, in minutes
PRICING_UNIT_MINUTES = {
    PricingMode.HOUR: 60,
    PricingMode.DAY: 60 * 24,
    PricingMode.WEEK: 60 * 24 * 7,
}


class TaxDisplayMode(models.TextChoices):
    INCLUSIVE = 'inclusive', 'Prices include tax'
    EXCLUSIVE = 'exclusive', 'Prices exclude tax'


class BusinessHoursReason(models.TextChoices):
    CLOSURE_PERIOD = 'closure_period', 'Closure Period'
    DAY_CLOSED = 'day_closed', 'Closed Day'
    OUTSIDE_HOURS = 'outside_hours', 'Outside Opening Hours'
