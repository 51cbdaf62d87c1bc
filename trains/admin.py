from django.contrib import admin
from .models import Station, Train, RouteStop


class RouteStopInline(admin.TabularInline):
    model = RouteStop
    extra = 0
    ordering = ['sequence_number']


@admin.register(Station)
class StationAdmin(admin.ModelAdmin):
    list_display = ['station_code', 'station_name', 'city']
    search_fields = ['station_code', 'station_name', 'city']
    ordering = ['station_name']


@admin.register(Train)
class TrainAdmin(admin.ModelAdmin):
    list_display = [
        'train_number', 'train_name', 'source_station', 'destination_station',
        'departure_time', 'arrival_time', 'total_seats', 'fare', 'is_active'
    ]
    list_filter = ['is_active', 'source_station', 'destination_station']
    search_fields = ['train_number', 'train_name']
    inlines = [RouteStopInline]
    ordering = ['train_number']
