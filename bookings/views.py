"""Views for booking management."""
from django.apps import apps
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample, inline_serializer
from rest_framework import serializers as drf_serializers

from . import lifecycle
from .serializers import BookingSerializer, BookingCreateSerializer, BookingResultSerializer


# Response serializers for Swagger
class BookingResponseSerializer(drf_serializers.Serializer):
    message = drf_serializers.CharField()
    booking = BookingResultSerializer()


class BookingListResponseSerializer(drf_serializers.Serializer):
    count = drf_serializers.IntegerField()
    results = BookingSerializer(many=True)


ErrorResponseSerializer = inline_serializer(name='BookingError', fields={
    'error': drf_serializers.CharField(),
    'code': drf_serializers.CharField(),
    'nothing_booked': drf_serializers.BooleanField(required=False),
})


class BookingCreateView(APIView):
    """Create a new booking."""
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Book seats on a train",
        description=(
            "Books passengers on a train for a journey date. Passengers are seated in "
            "request order while seats remain; the rest are waitlisted. Every passenger "
            "is charged the full fare."
        ),
        request=BookingCreateSerializer,
        responses={
            201: BookingResponseSerializer,
            404: ErrorResponseSerializer,
            409: ErrorResponseSerializer,
            500: ErrorResponseSerializer,
        },
        examples=[
            OpenApiExample(
                "Book 2 passengers",
                value={
                    "train_id": 1,
                    "journey_date": "2026-12-01",
                    "passengers": [
                        {"name": "Ravi Kumar", "age": 34, "gender": "M"},
                        {"name": "Meena Kumar", "age": 31, "gender": "F"}
                    ]
                },
                request_only=True
            )
        ],
        tags=["Bookings"]
    )
    def post(self, request):
        serializer = BookingCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        coordinator = apps.get_app_config('bookings').coordinator
        result = coordinator.create_booking(
            user_id=request.user.id,
            train_id=data['train_id'],
            journey_date=data['journey_date'],
            passengers=[dict(p) for p in data['passengers']],
        )

        if result.waiting_passengers:
            message = (
                f"Booking created: {result.confirmed_passengers} confirmed, "
                f"{result.waiting_passengers} waitlisted"
            )
        else:
            message = 'Booking confirmed successfully'

        return Response({
            'message': message,
            'booking': BookingResultSerializer(result).data
        }, status=status.HTTP_201_CREATED)


class MyBookingsView(APIView):
    """Get user's booking history."""
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get my bookings",
        description="Returns all bookings of the authenticated user with train details, newest first",
        responses={200: BookingListResponseSerializer},
        tags=["Bookings"]
    )
    def get(self, request):
        bookings = lifecycle.list_for_user(request.user.id)
        serializer = BookingSerializer(bookings, many=True)

        return Response({
            'count': len(serializer.data),
            'results': serializer.data
        })


class BookingDetailView(APIView):
    """Get booking by PNR."""
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get booking by PNR",
        description="Returns booking details for the given PNR. Users can only view their own bookings.",
        parameters=[
            OpenApiParameter(name='pnr', type=str, location='path', description='Booking PNR')
        ],
        responses={200: BookingSerializer, 404: ErrorResponseSerializer},
        tags=["Bookings"]
    )
    def get(self, request, pnr):
        booking = lifecycle.get_for_user(pnr, request.user.id)
        return Response(BookingSerializer(booking).data)


class BookingCancelView(APIView):
    """Cancel one of the caller's bookings."""
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Cancel a booking",
        description=(
            "Marks the booking cancelled. Its seats become available to new bookings. "
            "Cancelling an already cancelled booking succeeds."
        ),
        request=None,
        parameters=[
            OpenApiParameter(name='booking_id', type=int, location='path', description='Booking ID')
        ],
        responses={
            200: inline_serializer(name='CancelResponse', fields={'message': drf_serializers.CharField()}),
            404: ErrorResponseSerializer,
        },
        tags=["Bookings"]
    )
    def post(self, request, booking_id):
        lifecycle.cancel_booking(booking_id, request.user.id)
        return Response({'message': 'Booking cancelled successfully'})
