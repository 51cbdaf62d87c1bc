from django.apps import AppConfig
from django.conf import settings


class BookingsConfig(AppConfig):
    name = 'bookings'

    def ready(self):
        from .services import BookingCoordinator

        self.coordinator = BookingCoordinator(using=settings.BOOKING_DATABASE)
