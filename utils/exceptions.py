"""
Booking error taxonomy and the DRF exception handler that renders it.
"""
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler


class BookingError(APIException):
    """Base class for failures raised at the booking boundary."""
    # Set by the booking coordinator on errors it raises; nothing was committed.
    nothing_booked = False


class ResourceNotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Resource not found.'
    default_code = 'not_found'


class TrainNotFound(ResourceNotFound):
    default_detail = 'Train not found.'
    default_code = 'train_not_found'


class BookingNotFound(ResourceNotFound):
    default_detail = 'Booking not found.'
    default_code = 'booking_not_found'


class InvalidInput(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid booking data.'
    default_code = 'invalid_input'


class ConflictOrRace(BookingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Seat availability changed while booking. Please try again.'
    default_code = 'conflict'


class PersistenceFailure(BookingError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Booking could not be saved. Nothing was booked.'
    default_code = 'persistence_failure'


def api_exception_handler(exc, context):
    """
    Wrap DRF's default handler so booking errors share one response shape:

        {"error": "...", "code": "..."}

    Errors raised while creating a booking also carry ``"nothing_booked": true``.
    """
    response = exception_handler(exc, context)

    if response is not None and isinstance(exc, BookingError):
        data = {'error': str(exc.detail), 'code': exc.detail.code}
        if exc.nothing_booked:
            data['nothing_booked'] = True
        response.data = data

    return response
