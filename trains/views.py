"""Views for the train catalog, search and seat availability."""
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny, IsAuthenticated
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample
from rest_framework import serializers as drf_serializers

from bookings import ledger
from bookings.services import parse_journey_date
from utils.exceptions import TrainNotFound

from .models import Train
from .serializers import (
    AvailabilitySerializer, TrainDetailSerializer, TrainSearchResultSerializer, TrainSerializer,
)
from .permissions import IsAdminUser


# Response serializers for Swagger
class TrainSearchResponseSerializer(drf_serializers.Serializer):
    count = drf_serializers.IntegerField()
    limit = drf_serializers.IntegerField()
    offset = drf_serializers.IntegerField()
    results = TrainSearchResultSerializer(many=True)


class TrainListResponseSerializer(drf_serializers.Serializer):
    count = drf_serializers.IntegerField()
    results = TrainSerializer(many=True)


def get_active_train(train_id, queryset=None):
    queryset = queryset if queryset is not None else Train.objects.all()
    try:
        return queryset.get(pk=train_id, is_active=True)
    except Train.DoesNotExist:
        raise TrainNotFound()


class TrainSearchView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(
        summary="Search trains between stations",
        description=(
            "Search active trains by source and destination station name. When a date is "
            "given, each result carries the seats still available on that date."
        ),
        parameters=[
            OpenApiParameter(name='source', type=str, required=True, description='Source station (e.g., Delhi)'),
            OpenApiParameter(name='destination', type=str, required=True, description='Destination station (e.g., Mumbai)'),
            OpenApiParameter(name='date', type=str, required=False, description='Journey date (YYYY-MM-DD)'),
            OpenApiParameter(name='limit', type=int, required=False, description='Results per page (default: 10, max: 100)'),
            OpenApiParameter(name='offset', type=int, required=False, description='Pagination offset (default: 0)'),
        ],
        responses={200: TrainSearchResponseSerializer},
        tags=["Trains"]
    )
    def get(self, request):
        source = request.query_params.get('source', '').strip()
        destination = request.query_params.get('destination', '').strip()
        date = request.query_params.get('date')

        if not source or not destination:
            return Response({'error': 'Both source and destination are required.'}, status=status.HTTP_400_BAD_REQUEST)

        try:
            limit = min(max(int(request.query_params.get('limit', 10)), 1), 100)
            offset = max(int(request.query_params.get('offset', 0)), 0)
        except ValueError:
            limit, offset = 10, 0

        queryset = Train.objects.filter(
            source_station__icontains=source,
            destination_station__icontains=destination,
            is_active=True
        ).order_by('departure_time', 'train_number')

        total_count = queryset.count()
        trains = list(queryset[offset:offset + limit])

        availability = {}
        if date:
            journey_date = parse_journey_date(date)
            confirmed = ledger.confirmed_seats_by_train([t.id for t in trains], journey_date)
            availability = {
                t.id: max(0, t.total_seats - confirmed.get(t.id, 0)) for t in trains
            }

        return Response({
            'count': total_count, 'limit': limit, 'offset': offset,
            'results': TrainSearchResultSerializer(trains, many=True, context={'availability': availability}).data
        })


class TrainDetailView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(
        summary="Get train details",
        description="Returns a train with its route stops in sequence order",
        responses={200: TrainDetailSerializer},
        tags=["Trains"]
    )
    def get(self, request, train_id):
        train = get_active_train(train_id, Train.objects.prefetch_related('route_stops__station'))
        return Response(TrainDetailSerializer(train).data)


class TrainAvailabilityView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(
        summary="Get seat availability",
        description="Seats still available on a train for one journey date, and its total capacity",
        parameters=[
            OpenApiParameter(name='date', type=str, required=True, description='Journey date (YYYY-MM-DD)'),
        ],
        responses={200: AvailabilitySerializer},
        tags=["Trains"]
    )
    def get(self, request, train_id):
        date = request.query_params.get('date')
        if not date:
            return Response({'error': 'Date parameter is required.'}, status=status.HTTP_400_BAD_REQUEST)

        journey_date = parse_journey_date(date)
        train = get_active_train(train_id)

        return Response(AvailabilitySerializer({
            'train_id': train.id,
            'train_number': train.train_number,
            'journey_date': journey_date,
            'available_seats': ledger.available_seats(train, journey_date),
            'total_seats': train.total_seats,
        }).data)


class TrainManageView(APIView):
    permission_classes = [IsAuthenticated, IsAdminUser]

    @extend_schema(
        summary="Create train (Admin only)",
        description="Add a train to the catalog. Requires admin privileges.",
        request=TrainSerializer,
        responses={201: TrainSerializer},
        examples=[
            OpenApiExample(
                "Create Train",
                value={
                    "train_number": "12951",
                    "train_name": "Mumbai Rajdhani",
                    "source_station": "New Delhi",
                    "destination_station": "Mumbai Central",
                    "departure_time": "16:55:00",
                    "arrival_time": "08:35:00",
                    "total_seats": 500,
                    "fare": "2500.00"
                },
                request_only=True
            )
        ],
        tags=["Trains (Admin)"]
    )
    def post(self, request):
        serializer = TrainSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        train = serializer.save()
        return Response(TrainSerializer(train).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="List all trains (Admin only)",
        description="Get list of all active trains. Requires admin privileges.",
        responses={200: TrainListResponseSerializer},
        tags=["Trains (Admin)"]
    )
    def get(self, request):
        trains = Train.objects.filter(is_active=True).order_by('train_number')
        return Response({'count': trains.count(), 'results': TrainSerializer(trains, many=True).data})
