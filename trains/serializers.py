"""
Serializers for the train catalog.
"""
from rest_framework import serializers
from .models import Train, RouteStop


class TrainSerializer(serializers.ModelSerializer):
    """Serializer for Train model."""

    class Meta:
        model = Train
        fields = [
            'id', 'train_number', 'train_name', 'source_station', 'destination_station',
            'departure_time', 'arrival_time', 'total_seats', 'fare', 'is_active', 'created_at'
        ]
        read_only_fields = ['id', 'created_at']

    def validate_train_number(self, value):
        """Validate and normalize train number."""
        if not value.replace('-', '').isalnum():
            raise serializers.ValidationError("Train number must be alphanumeric.")
        return value.upper()

    def validate(self, attrs):
        source = attrs.get('source_station', '').strip().title()
        destination = attrs.get('destination_station', '').strip().title()

        if source and source == destination:
            raise serializers.ValidationError({
                'destination_station': "Source and destination cannot be the same."
            })

        if source:
            attrs['source_station'] = source
        if destination:
            attrs['destination_station'] = destination
        return attrs


class RouteStopSerializer(serializers.ModelSerializer):
    station_code = serializers.CharField(source='station.station_code')
    station_name = serializers.CharField(source='station.station_name')
    city = serializers.CharField(source='station.city')

    class Meta:
        model = RouteStop
        fields = [
            'sequence_number', 'station_code', 'station_name', 'city',
            'arrival_time', 'departure_time', 'distance_km'
        ]


class TrainDetailSerializer(TrainSerializer):
    route_details = RouteStopSerializer(source='route_stops', many=True, read_only=True)

    class Meta(TrainSerializer.Meta):
        fields = TrainSerializer.Meta.fields + ['route_details']


class TrainSearchResultSerializer(serializers.ModelSerializer):
    """Lightweight serializer for train search results."""
    available_seats = serializers.SerializerMethodField()

    class Meta:
        model = Train
        fields = [
            'id', 'train_number', 'train_name', 'source_station', 'destination_station',
            'departure_time', 'arrival_time', 'fare', 'total_seats', 'available_seats'
        ]

    def get_available_seats(self, obj):
        """Seats left on the searched date, or None when no date was given."""
        return self.context.get('availability', {}).get(obj.id)


class AvailabilitySerializer(serializers.Serializer):
    train_id = serializers.IntegerField()
    train_number = serializers.CharField()
    journey_date = serializers.DateField()
    available_seats = serializers.IntegerField()
    total_seats = serializers.IntegerField()
