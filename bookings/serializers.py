"""
Serializers for booking management.
"""
from django.conf import settings
from django.utils import timezone
from rest_framework import serializers

from .models import Booking, Passenger, MIN_PASSENGER_AGE, MAX_PASSENGER_AGE


class PassengerSerializer(serializers.ModelSerializer):
    """Serializer for Passenger model."""

    class Meta:
        model = Passenger
        fields = ['id', 'name', 'age', 'gender', 'seat_number', 'status']
        read_only_fields = fields


class PassengerInputSerializer(serializers.Serializer):
    """Serializer for passenger input during booking."""
    name = serializers.CharField(max_length=255)
    age = serializers.IntegerField(min_value=MIN_PASSENGER_AGE, max_value=MAX_PASSENGER_AGE)
    gender = serializers.ChoiceField(choices=Passenger.GENDER_CHOICES)


class BookingCreateSerializer(serializers.Serializer):
    """Validates a booking request before it reaches the coordinator."""
    train_id = serializers.IntegerField(min_value=1)
    journey_date = serializers.DateField()
    passengers = PassengerInputSerializer(many=True)

    def validate_journey_date(self, value):
        if value < timezone.localdate():
            raise serializers.ValidationError("Cannot book for past dates.")
        return value

    def validate_passengers(self, value):
        if not value:
            raise serializers.ValidationError("At least one passenger is required.")
        if len(value) > settings.BOOKING_MAX_PASSENGERS:
            raise serializers.ValidationError(
                f"Maximum {settings.BOOKING_MAX_PASSENGERS} passengers allowed per booking."
            )
        return value


class BookingResultSerializer(serializers.Serializer):
    """Outcome of one booking request."""
    pnr = serializers.CharField()
    booking_id = serializers.IntegerField()
    status = serializers.CharField()
    confirmed_passengers = serializers.IntegerField()
    waiting_passengers = serializers.IntegerField()
    seat_numbers = serializers.ListField(child=serializers.CharField())
    total_amount = serializers.DecimalField(max_digits=10, decimal_places=2)


class BookingSerializer(serializers.ModelSerializer):
    """Serializer for viewing bookings from the lifecycle store."""
    passengers = PassengerSerializer(many=True, read_only=True)
    train_details = serializers.SerializerMethodField()
    confirmed_count = serializers.IntegerField(read_only=True)
    waiting_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Booking
        fields = [
            'id', 'pnr', 'train', 'journey_date', 'num_passengers', 'total_amount',
            'status', 'seat_numbers', 'confirmed_count', 'waiting_count',
            'booking_date', 'cancelled_at', 'passengers', 'train_details'
        ]

    def get_train_details(self, obj):
        train = obj.train
        return {
            'train_number': train.train_number,
            'train_name': train.train_name,
            'source_station': train.source_station,
            'destination_station': train.destination_station,
            'departure_time': str(train.departure_time),
            'arrival_time': str(train.arrival_time),
        }
