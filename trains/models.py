"""
Train catalog models: stations, trains and their route stops.

Catalog rows are reference data; bookings read them but never write them.
"""
from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal


class Station(models.Model):
    """
    A station on the network.
    Maps to the 'stations' table.
    """
    station_code = models.CharField(max_length=10, unique=True)
    station_name = models.CharField(max_length=100)
    city = models.CharField(max_length=100)

    class Meta:
        db_table = 'stations'
        ordering = ['station_name']

    def __str__(self):
        return f"{self.station_code} - {self.station_name}"


class Train(models.Model):
    """
    A train with one capacity pool per journey date.
    Maps to the 'trains' table.
    """
    train_number = models.CharField(max_length=10, unique=True)
    train_name = models.CharField(max_length=255)
    source_station = models.CharField(max_length=100)
    destination_station = models.CharField(max_length=100)
    departure_time = models.TimeField()
    arrival_time = models.TimeField()
    total_seats = models.PositiveSmallIntegerField(validators=[MinValueValidator(1)])
    fare = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'trains'
        indexes = [
            models.Index(fields=['source_station', 'destination_station'], name='trains_route_idx'),
            models.Index(fields=['is_active'], name='trains_is_active_idx'),
        ]

    def __str__(self):
        return f"{self.train_number} - {self.train_name}"


class RouteStop(models.Model):
    """
    One stop of a train's route, ordered by sequence_number.
    Maps to the 'routes' table.
    """
    train = models.ForeignKey(Train, on_delete=models.CASCADE, related_name='route_stops')
    station = models.ForeignKey(Station, on_delete=models.PROTECT, related_name='route_stops')
    sequence_number = models.PositiveSmallIntegerField()
    arrival_time = models.TimeField(null=True, blank=True)  # null at origin
    departure_time = models.TimeField(null=True, blank=True)  # null at terminus
    distance_km = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'routes'
        ordering = ['train', 'sequence_number']
        constraints = [
            models.UniqueConstraint(fields=['train', 'sequence_number'], name='routes_train_sequence_uniq'),
        ]

    def __str__(self):
        return f"{self.train.train_number} #{self.sequence_number}: {self.station.station_code}"
