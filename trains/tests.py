"""
Tests for trains app.
Tests cover: Catalog models, Search API, Train details, Seat availability, Admin-only access.
"""
from decimal import Decimal
from datetime import date, time, timedelta
from unittest.mock import MagicMock, patch

from django.apps import apps
from django.contrib.auth import get_user_model
from django.db import IntegrityError
from django.test import TestCase
from rest_framework.test import APITestCase
from rest_framework import status

from trains.models import Station, Train, RouteStop
from bookings.services import BookingCoordinator

User = get_user_model()

JOURNEY_DATE = date.today() + timedelta(days=5)


def make_train(number='12951', name='Mumbai Rajdhani', source='New Delhi',
               destination='Mumbai Central', total_seats=10, **kwargs):
    return Train.objects.create(
        train_number=number,
        train_name=name,
        source_station=source,
        destination_station=destination,
        departure_time=kwargs.pop('departure_time', time(16, 55)),
        arrival_time=time(8, 35),
        total_seats=total_seats,
        fare=Decimal('2500.00'),
        **kwargs
    )


# UNIT TESTS - Models

class TrainModelTests(TestCase):

    def test_create_train(self):
        train = make_train()

        self.assertEqual(train.train_number, '12951')
        self.assertEqual(train.total_seats, 10)
        self.assertTrue(train.is_active)
        self.assertEqual(str(train), '12951 - Mumbai Rajdhani')

    def test_train_number_unique(self):
        make_train(number='UNIQUE01')

        with self.assertRaises(IntegrityError):
            make_train(number='UNIQUE01', name='Another')


class RouteStopModelTests(TestCase):

    def setUp(self):
        self.train = make_train()
        self.delhi = Station.objects.create(station_code='NDLS', station_name='New Delhi', city='Delhi')
        self.kota = Station.objects.create(station_code='KOTA', station_name='Kota Junction', city='Kota')

    def test_stops_ordered_by_sequence(self):
        RouteStop.objects.create(train=self.train, station=self.kota, sequence_number=2, distance_km=465)
        RouteStop.objects.create(train=self.train, station=self.delhi, sequence_number=1)

        codes = [stop.station.station_code for stop in self.train.route_stops.all()]
        self.assertEqual(codes, ['NDLS', 'KOTA'])

    def test_sequence_unique_per_train(self):
        RouteStop.objects.create(train=self.train, station=self.delhi, sequence_number=1)

        with self.assertRaises(IntegrityError):
            RouteStop.objects.create(train=self.train, station=self.kota, sequence_number=1)


# INTEGRATION TESTS - API

class CatalogAPITestCase(APITestCase):

    def setUp(self):
        log_store = patch.object(apps.get_app_config('utils'), 'log_store', MagicMock())
        log_store.start()
        self.addCleanup(log_store.stop)

        self.user = User.objects.create_user(email='user@example.com', password='x', name='User')
        self.train = make_train(total_seats=4)


class TrainSearchAPITests(CatalogAPITestCase):

    def test_search_requires_both_stations(self):
        response = self.client.get('/api/trains/search/', {'source': 'Delhi'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_search_matches_partial_names(self):
        make_train(number='12301', name='Howrah Rajdhani', source='Howrah Junction', destination='New Delhi')
        make_train(number='12953', name='August Kranti', departure_time=time(17, 40))

        response = self.client.get('/api/trains/search/', {'source': 'delhi', 'destination': 'mumbai'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual([r['train_number'] for r in response.data['results']], ['12951', '12953'])
        self.assertIsNone(response.data['results'][0]['available_seats'])

    def test_search_excludes_inactive_trains(self):
        make_train(number='99999', is_active=False)

        response = self.client.get('/api/trains/search/', {'source': 'Delhi', 'destination': 'Mumbai'})

        self.assertEqual(response.data['count'], 1)

    def test_search_with_date_reports_availability(self):
        BookingCoordinator().create_booking(
            self.user.id, self.train.id, JOURNEY_DATE,
            [{'name': 'A', 'age': 30, 'gender': 'M'}, {'name': 'B', 'age': 28, 'gender': 'F'}]
        )

        response = self.client.get('/api/trains/search/', {
            'source': 'Delhi', 'destination': 'Mumbai', 'date': JOURNEY_DATE.isoformat()
        })

        self.assertEqual(response.data['results'][0]['available_seats'], 2)

    def test_search_pagination(self):
        for i in range(3):
            make_train(number=f'2000{i}', name=f'Extra {i}', departure_time=time(18 + i, 0))

        response = self.client.get('/api/trains/search/', {
            'source': 'Delhi', 'destination': 'Mumbai', 'limit': 2, 'offset': 1
        })

        self.assertEqual(response.data['count'], 4)
        self.assertEqual(len(response.data['results']), 2)
        self.assertEqual(response.data['results'][0]['train_number'], '20000')


class TrainDetailAPITests(CatalogAPITestCase):

    def test_detail_includes_route(self):
        delhi = Station.objects.create(station_code='NDLS', station_name='New Delhi', city='Delhi')
        mumbai = Station.objects.create(station_code='MMCT', station_name='Mumbai Central', city='Mumbai')
        RouteStop.objects.create(train=self.train, station=mumbai, sequence_number=2, distance_km=1384)
        RouteStop.objects.create(train=self.train, station=delhi, sequence_number=1)

        response = self.client.get(f'/api/trains/{self.train.id}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [stop['station_code'] for stop in response.data['route_details']],
            ['NDLS', 'MMCT']
        )

    def test_detail_unknown_train(self):
        response = self.client.get('/api/trains/99999/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'train_not_found')


class TrainAvailabilityAPITests(CatalogAPITestCase):

    def _availability(self, train_id, date_param):
        params = {'date': date_param} if date_param else {}
        return self.client.get(f'/api/trains/{train_id}/availability/', params)

    def test_availability_of_empty_pool(self):
        response = self._availability(self.train.id, JOURNEY_DATE.isoformat())

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['available_seats'], 4)
        self.assertEqual(response.data['total_seats'], 4)

    def test_availability_reflects_bookings_and_cancellations(self):
        from bookings import lifecycle

        result = BookingCoordinator().create_booking(
            self.user.id, self.train.id, JOURNEY_DATE,
            [{'name': 'A', 'age': 30, 'gender': 'M'}, {'name': 'B', 'age': 28, 'gender': 'F'},
             {'name': 'C', 'age': 9, 'gender': 'F'}]
        )
        self.assertEqual(self._availability(self.train.id, JOURNEY_DATE.isoformat()).data['available_seats'], 1)

        lifecycle.cancel_booking(result.booking_id, self.user.id)

        self.assertEqual(self._availability(self.train.id, JOURNEY_DATE.isoformat()).data['available_seats'], 4)

    def test_availability_is_per_date(self):
        BookingCoordinator().create_booking(
            self.user.id, self.train.id, JOURNEY_DATE, [{'name': 'A', 'age': 30, 'gender': 'M'}]
        )

        other_day = (JOURNEY_DATE + timedelta(days=1)).isoformat()
        self.assertEqual(self._availability(self.train.id, other_day).data['available_seats'], 4)

    def test_availability_requires_date(self):
        response = self._availability(self.train.id, None)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_availability_rejects_malformed_date(self):
        response = self._availability(self.train.id, '31-12-2026')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_input')
        self.assertNotIn('nothing_booked', response.data)

    def test_availability_unknown_train(self):
        response = self._availability(99999, JOURNEY_DATE.isoformat())
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class TrainManageAPITests(CatalogAPITestCase):

    payload = {
        'train_number': '12302',
        'train_name': 'New Delhi Rajdhani',
        'source_station': 'howrah junction',
        'destination_station': 'new delhi',
        'departure_time': '16:50:00',
        'arrival_time': '10:00:00',
        'total_seats': 450,
        'fare': '2200.00',
    }

    def setUp(self):
        super().setUp()
        self.admin = User.objects.create_user(email='admin@example.com', password='x', name='Admin', is_admin=True)

    def test_non_admin_forbidden(self):
        self.client.force_authenticate(user=self.user)

        response = self.client.post('/api/trains/', self.payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_creates_train(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.post('/api/trains/', self.payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        train = Train.objects.get(train_number='12302')
        self.assertEqual(train.source_station, 'Howrah Junction')
        self.assertEqual(train.fare, Decimal('2200.00'))

    def test_same_source_and_destination_rejected(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.post('/api/trains/', {
            **self.payload, 'destination_station': 'Howrah Junction'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('destination_station', response.data)

    def test_admin_lists_trains(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.get('/api/trains/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
