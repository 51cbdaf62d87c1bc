from django.contrib import admin
from .models import Booking, Passenger, CapacityPool


class PassengerInline(admin.TabularInline):
    model = Passenger
    extra = 0
    readonly_fields = ['seat_number', 'status']


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ['pnr', 'user', 'train', 'journey_date', 'num_passengers', 'total_amount', 'status', 'booking_date']
    list_filter = ['status', 'journey_date']
    search_fields = ['pnr', 'user__email', 'train__train_number']
    readonly_fields = ['pnr', 'seat_numbers', 'booking_date', 'cancelled_at']
    inlines = [PassengerInline]
    ordering = ['-booking_date']


@admin.register(Passenger)
class PassengerAdmin(admin.ModelAdmin):
    list_display = ['name', 'age', 'gender', 'seat_number', 'status', 'booking']
    list_filter = ['status', 'gender']
    search_fields = ['name', 'booking__pnr']


@admin.register(CapacityPool)
class CapacityPoolAdmin(admin.ModelAdmin):
    list_display = ['train', 'journey_date', 'version', 'updated_at']
    list_filter = ['journey_date']
    search_fields = ['train__train_number']
    readonly_fields = ['version', 'updated_at']
