"""
Management command to seed the database with sample data.

Usage:
    python manage.py seed_db           # Seed with default data
    python manage.py seed_db --clear   # Clear existing data first
"""
from datetime import time, timedelta
from decimal import Decimal
from django.apps import apps
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from core.models import User
from trains.models import Station, Train, RouteStop
from bookings.models import Booking, Passenger, CapacityPool


STATIONS = [
    ('NDLS', 'New Delhi', 'Delhi'),
    ('MMCT', 'Mumbai Central', 'Mumbai'),
    ('HWH', 'Howrah Junction', 'Kolkata'),
    ('MAS', 'Chennai Central', 'Chennai'),
    ('SBC', 'KSR Bengaluru', 'Bengaluru'),
    ('BRC', 'Vadodara Junction', 'Vadodara'),
    ('KOTA', 'Kota Junction', 'Kota'),
    ('DHN', 'Dhanbad Junction', 'Dhanbad'),
]

# number, name, source, destination, departure, arrival, seats, fare, stops
TRAINS = [
    ('12951', 'Mumbai Rajdhani', 'NDLS', 'MMCT', time(16, 55), time(8, 35), 500, Decimal('2500.00'),
     [('NDLS', 0), ('KOTA', 465), ('BRC', 991), ('MMCT', 1384)]),
    ('12301', 'Howrah Rajdhani', 'HWH', 'NDLS', time(16, 50), time(10, 0), 450, Decimal('2200.00'),
     [('HWH', 0), ('DHN', 259), ('NDLS', 1447)]),
    ('12627', 'Karnataka Express', 'SBC', 'NDLS', time(19, 20), time(9, 0), 600, Decimal('1800.00'),
     [('SBC', 0), ('NDLS', 2365)]),
    ('12007', 'Chennai Shatabdi', 'MAS', 'SBC', time(6, 0), time(11, 0), 300, Decimal('800.00'),
     [('MAS', 0), ('SBC', 359)]),
]


class Command(BaseCommand):
    help = 'Seed the database with sample data for testing'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before seeding',
        )

    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self.clear_data()

        self.stdout.write('Seeding database...')

        with transaction.atomic():
            users = self.create_users()
            stations = self.create_stations()
            trains = self.create_trains(stations)

        self.create_sample_bookings(users, trains)

        self.stdout.write(self.style.SUCCESS('Database seeded successfully!'))
        self.print_summary()

    def clear_data(self):
        Passenger.objects.all().delete()
        Booking.objects.all().delete()
        CapacityPool.objects.all().delete()
        RouteStop.objects.all().delete()
        Train.objects.all().delete()
        Station.objects.all().delete()
        User.objects.filter(is_superuser=False).delete()
        self.stdout.write(self.style.WARNING('  Cleared all non-superuser data'))

    def create_users(self):
        users = []

        admin, created = User.objects.get_or_create(
            email='admin@railway.com',
            defaults={'name': 'Admin User', 'is_admin': True, 'is_staff': True}
        )
        if created:
            admin.set_password('Admin@123')
            admin.save()
            self.stdout.write('  Created admin: admin@railway.com / Admin@123')
        users.append(admin)

        for email, name in [('ravi@example.com', 'Ravi Kumar'), ('meena@example.com', 'Meena Iyer')]:
            user, created = User.objects.get_or_create(email=email, defaults={'name': name})
            if created:
                user.set_password('User@123')
                user.save()
                self.stdout.write(f'  Created user: {email} / User@123')
            users.append(user)

        return users

    def create_stations(self):
        stations = {}
        for code, name, city in STATIONS:
            station, _ = Station.objects.get_or_create(
                station_code=code,
                defaults={'station_name': name, 'city': city}
            )
            stations[code] = station
        self.stdout.write(f'  {len(stations)} stations ready')
        return stations

    def create_trains(self, stations):
        trains = []
        for number, name, source, dest, dep, arr, seats, fare, stops in TRAINS:
            train, created = Train.objects.get_or_create(
                train_number=number,
                defaults={
                    'train_name': name,
                    'source_station': stations[source].station_name,
                    'destination_station': stations[dest].station_name,
                    'departure_time': dep,
                    'arrival_time': arr,
                    'total_seats': seats,
                    'fare': fare,
                }
            )
            trains.append(train)
            if not created:
                continue

            for sequence, (code, distance) in enumerate(stops, start=1):
                RouteStop.objects.create(
                    train=train,
                    station=stations[code],
                    sequence_number=sequence,
                    departure_time=dep if sequence == 1 else None,
                    arrival_time=arr if sequence == len(stops) else None,
                    distance_km=distance,
                )
            self.stdout.write(f'  Created train: {number} - {name}')

        return trains

    def create_sample_bookings(self, users, trains):
        coordinator = apps.get_app_config('bookings').coordinator
        journey_date = timezone.localdate() + timedelta(days=7)
        regular_users = [u for u in users if not u.is_admin]

        for user, train in zip(regular_users, trains):
            if Booking.objects.filter(user=user).exists():
                continue
            result = coordinator.create_booking(
                user_id=user.id,
                train_id=train.id,
                journey_date=journey_date,
                passengers=[
                    {'name': user.name, 'age': 34, 'gender': 'M'},
                    {'name': f'{user.name.split()[0]} Jr', 'age': 9, 'gender': 'F'},
                ],
            )
            self.stdout.write(f'  Created booking {result.pnr} ({result.status}) seats {result.seat_numbers}')

    def print_summary(self):
        self.stdout.write('\n' + '=' * 50)
        self.stdout.write('Database Summary:')
        self.stdout.write(f'  Users: {User.objects.count()}')
        self.stdout.write(f'  Stations: {Station.objects.count()}')
        self.stdout.write(f'  Trains: {Train.objects.count()}')
        self.stdout.write(f'  Bookings: {Booking.objects.count()}')
        self.stdout.write('=' * 50)
        self.stdout.write('\nTest Credentials:')
        self.stdout.write('  Admin: admin@railway.com / Admin@123')
        self.stdout.write('  User:  ravi@example.com / User@123')
        self.stdout.write('=' * 50 + '\n')
