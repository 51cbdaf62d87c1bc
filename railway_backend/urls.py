"""
URL configuration for railway_backend project.
"""
from django.contrib import admin
from django.db import DatabaseError, connection
from django.urls import path, include
from django.http import JsonResponse
from django.utils import timezone
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView, SpectacularRedocView


def api_root(request):
    """Root API endpoint showing available endpoints."""
    return JsonResponse({
        'message': 'Welcome to the Railway Booking API',
        'version': '1.0',
        'documentation': {
            'swagger_ui': '/api/docs/',
            'redoc': '/api/docs/redoc/',
            'openapi_schema': '/api/schema/',
        },
        'endpoints': {
            'auth': '/api/register/, /api/login/, /api/token/refresh/, /api/profile/',
            'trains': '/api/trains/search/, /api/trains/<id>/, /api/trains/<id>/availability/',
            'bookings': '/api/bookings/, /api/bookings/my/, /api/bookings/<pnr>/, /api/bookings/<id>/cancel/',
            'health': '/api/health/',
        }
    })


def health(request):
    """Liveness check including a round trip to the relational database."""
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
    except DatabaseError as e:
        return JsonResponse({
            'status': 'ERROR',
            'message': 'Database connection failed',
            'error': str(e),
        }, status=500)

    return JsonResponse({
        'status': 'OK',
        'message': 'Server is running',
        'database': 'Connected',
        'timestamp': timezone.now().isoformat(),
    })


urlpatterns = [
    path('', api_root, name='api_root'),
    path('admin/', admin.site.urls),

    # API Documentation (Swagger UI)
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/docs/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),

    # API Endpoints
    path('api/health/', health, name='health'),
    path('api/', include('core.urls')),
    path('api/trains/', include('trains.urls')),
    path('api/bookings/', include('bookings.urls')),
]
