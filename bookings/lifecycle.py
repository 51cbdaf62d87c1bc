"""
Booking lifecycle store: owner-scoped reads and cancellation.
"""
import logging

from django.db import DEFAULT_DB_ALIAS
from django.db.models import Count, DateTimeField, F, Q, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from utils.exceptions import BookingNotFound

from .allocation import CONFIRMED, WAITING
from .models import Booking, CANCELLED

logger = logging.getLogger(__name__)


def _with_details(queryset):
    return queryset.select_related('train').prefetch_related('passengers').annotate(
        confirmed_count=Count('passengers', filter=Q(passengers__status=CONFIRMED)),
        waiting_count=Count('passengers', filter=Q(passengers__status=WAITING)),
    )


def list_for_user(user_id, using=DEFAULT_DB_ALIAS):
    """User's bookings with train details and passenger status counts, newest first."""
    bookings = Booking.objects.using(using).filter(user_id=user_id)
    return _with_details(bookings).order_by('-booking_date', '-id')


def get_for_user(pnr, user_id, using=DEFAULT_DB_ALIAS):
    bookings = Booking.objects.using(using).filter(pnr=pnr.upper(), user_id=user_id)
    try:
        return _with_details(bookings).get()
    except Booking.DoesNotExist:
        raise BookingNotFound()


def cancel_booking(booking_id, user_id, using=DEFAULT_DB_ALIAS):
    """
    Mark a booking cancelled.

    Cancelling twice is allowed; the first cancellation time is kept.
    Freed seats show up in the next availability read. Waitlisted bookings
    on the same pool are not promoted.
    """
    updated = Booking.objects.using(using).filter(pk=booking_id, user_id=user_id).update(
        status=CANCELLED,
        cancelled_at=Coalesce(F('cancelled_at'), Value(timezone.now(), output_field=DateTimeField())),
    )
    if updated == 0:
        raise BookingNotFound()

    logger.info("Booking %s cancelled by user %s", booking_id, user_id)
