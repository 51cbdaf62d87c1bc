"""Booking management models."""
import random
import string
import time

from django.conf import settings
from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator
from decimal import Decimal

from trains.models import Train
from .allocation import CONFIRMED, WAITING

CANCELLED = 'cancelled'

MIN_PASSENGER_AGE = 1
MAX_PASSENGER_AGE = 120

PNR_ALPHABET = string.digits + string.ascii_uppercase


def _base36(number):
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(PNR_ALPHABET[remainder])
    return ''.join(reversed(digits)) or '0'


def generate_pnr():
    """Reservation reference: base36 millisecond clock followed by 6 random characters."""
    clock = _base36(int(time.time() * 1000))
    suffix = ''.join(random.choices(PNR_ALPHABET, k=6))
    return f"{clock}{suffix}"


class BookingQuerySet(models.QuerySet):

    def for_pool(self, train_id, journey_date):
        return self.filter(train_id=train_id, journey_date=journey_date)

    def confirmed(self):
        return self.filter(status=CONFIRMED)

    def active(self):
        return self.exclude(status=CANCELLED)


class Booking(models.Model):
    STATUS_CHOICES = [(CONFIRMED, 'Confirmed'), (WAITING, 'Waiting'), (CANCELLED, 'Cancelled')]

    pnr = models.CharField(max_length=16, unique=True, default=generate_pnr)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='bookings')
    train = models.ForeignKey(Train, on_delete=models.PROTECT, related_name='bookings')
    journey_date = models.DateField()
    num_passengers = models.PositiveSmallIntegerField(validators=[MinValueValidator(1)])
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])
    status = models.CharField(max_length=10, choices=STATUS_CHOICES)
    seat_numbers = models.JSONField(default=list, blank=True)
    booking_date = models.DateTimeField(auto_now_add=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    objects = BookingQuerySet.as_manager()

    class Meta:
        db_table = 'bookings'
        ordering = ['-booking_date']
        indexes = [
            models.Index(fields=['train', 'journey_date', 'status'], name='bookings_pool_status_idx'),
            models.Index(fields=['user', 'booking_date'], name='bookings_user_date_idx'),
        ]

    def __str__(self):
        return f"PNR: {self.pnr} ({self.status})"


class Passenger(models.Model):
    GENDER_CHOICES = [('M', 'Male'), ('F', 'Female'), ('O', 'Other')]
    STATUS_CHOICES = [(CONFIRMED, 'Confirmed'), (WAITING, 'Waiting')]

    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name='passengers')
    name = models.CharField(max_length=255)
    age = models.PositiveSmallIntegerField(validators=[MinValueValidator(MIN_PASSENGER_AGE), MaxValueValidator(MAX_PASSENGER_AGE)])
    gender = models.CharField(max_length=1, choices=GENDER_CHOICES)
    seat_number = models.CharField(max_length=10, null=True, blank=True)  # null iff waitlisted
    status = models.CharField(max_length=10, choices=STATUS_CHOICES)

    class Meta:
        db_table = 'passengers'
        ordering = ['booking', 'id']

    def __str__(self):
        return f"{self.name} ({self.age}{self.gender}) {self.seat_number or 'WL'}"


class CapacityPool(models.Model):
    """
    Lock row for one (train, journey date) capacity pool.

    Booking creation row-locks this record and bumps ``version`` so that
    concurrent bookings for the same pool are applied one after another.
    """
    train = models.ForeignKey(Train, on_delete=models.CASCADE, related_name='capacity_pools')
    journey_date = models.DateField()
    version = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'capacity_pools'
        constraints = [
            models.UniqueConstraint(fields=['train', 'journey_date'], name='capacity_pools_train_date_uniq'),
        ]

    def __str__(self):
        return f"{self.train.train_number} on {self.journey_date} (v{self.version})"
