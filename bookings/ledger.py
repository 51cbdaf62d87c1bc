"""
Capacity ledger: seat counts for one (train, journey date) pool.

Point-in-time reads with no caching. Called inside the booking transaction
they see the state that transaction will write against.
"""
from django.db import DEFAULT_DB_ALIAS
from django.db.models import Sum

from .models import Booking, Passenger


def confirmed_seats(train_id, journey_date, using=DEFAULT_DB_ALIAS):
    """Sum of passengers over confirmed bookings in the pool (0 if none)."""
    total = (
        Booking.objects.using(using)
        .for_pool(train_id, journey_date)
        .confirmed()
        .aggregate(total=Sum('num_passengers'))['total']
    )
    return total or 0


def confirmed_seats_by_train(train_ids, journey_date, using=DEFAULT_DB_ALIAS):
    """{train_id: confirmed seats} for several trains on one date; absent trains have 0."""
    rows = (
        Booking.objects.using(using)
        .filter(train_id__in=train_ids, journey_date=journey_date)
        .confirmed()
        .values('train_id')
        .annotate(total=Sum('num_passengers'))
    )
    return {row['train_id']: row['total'] for row in rows}


def available_seats(train, journey_date, using=DEFAULT_DB_ALIAS):
    """Seats left in the pool, floored at 0."""
    return max(0, train.total_seats - confirmed_seats(train.id, journey_date, using=using))


def held_seat_numbers(train_id, journey_date, using=DEFAULT_DB_ALIAS):
    """Seat labels held by passengers of non-cancelled bookings in the pool."""
    bookings = Booking.objects.using(using).for_pool(train_id, journey_date).active()
    return set(
        Passenger.objects.using(using)
        .filter(booking__in=bookings, seat_number__isnull=False)
        .values_list('seat_number', flat=True)
    )
