"""
Tests for bookings app.
Tests cover: Seat allocation, Capacity ledger, Booking coordinator,
Lifecycle store, Booking API, Concurrency scenarios.
"""
import threading
from decimal import Decimal
from datetime import date, time, timedelta
from unittest.mock import MagicMock, patch

from django.apps import apps
from django.contrib.auth import get_user_model
from django.db import DatabaseError, IntegrityError, OperationalError, connection
from django.db.models import Sum
from django.test import SimpleTestCase, TestCase, TransactionTestCase
from rest_framework.test import APITestCase
from rest_framework import status

from trains.models import Train
from bookings import ledger, lifecycle
from bookings.allocation import CONFIRMED, WAITING, allocate_seats, format_seat_label
from bookings.models import Booking, Passenger, CapacityPool, CANCELLED, generate_pnr
from bookings.services import BookingCoordinator
from utils.exceptions import (
    BookingNotFound, ConflictOrRace, InvalidInput, PersistenceFailure, TrainNotFound,
)

User = get_user_model()

JOURNEY_DATE = date.today() + timedelta(days=7)


def make_train(number='12345', total_seats=10, fare='500.00', **kwargs):
    return Train.objects.create(
        train_number=number,
        train_name=kwargs.pop('train_name', 'Test Express'),
        source_station='New Delhi',
        destination_station='Mumbai Central',
        departure_time=time(16, 55),
        arrival_time=time(8, 35),
        total_seats=total_seats,
        fare=Decimal(fare),
        **kwargs
    )


def passengers(*names):
    return [{'name': name, 'age': 30, 'gender': 'M'} for name in names]


# =============================================================================
# UNIT TESTS - Allocation engine
# =============================================================================

class AllocateSeatsTests(SimpleTestCase):

    def test_all_passengers_fit(self):
        allocation = allocate_seats(5, passengers('A', 'B', 'C'), Decimal('100.00'))

        self.assertEqual(allocation.status, CONFIRMED)
        self.assertEqual(allocation.seat_numbers, ['S1', 'S2', 'S3'])
        self.assertEqual(allocation.confirmed_count, 3)
        self.assertEqual(allocation.waiting_count, 0)

    def test_overflow_is_waitlisted_in_input_order(self):
        allocation = allocate_seats(1, passengers('A', 'B', 'C'), Decimal('100.00'), first_seat=4)

        self.assertEqual(allocation.status, WAITING)
        self.assertEqual([d.passenger['name'] for d in allocation.decisions], ['A', 'B', 'C'])
        self.assertEqual([d.seat_number for d in allocation.decisions], ['S4', None, None])
        self.assertEqual([d.status for d in allocation.decisions], [CONFIRMED, WAITING, WAITING])

    def test_no_seats_left_waitlists_everyone(self):
        allocation = allocate_seats(0, passengers('A', 'B'), Decimal('100.00'))

        self.assertEqual(allocation.status, WAITING)
        self.assertEqual(allocation.seat_numbers, [])
        self.assertEqual(allocation.waiting_count, 2)

    def test_negative_availability_counts_as_zero(self):
        allocation = allocate_seats(-3, passengers('A'), Decimal('100.00'))
        self.assertEqual(allocation.seat_numbers, [])

    def test_total_is_flat_per_head(self):
        seated = allocate_seats(5, passengers('A', 'B'), Decimal('250.50'))
        waitlisted = allocate_seats(0, passengers('A', 'B'), Decimal('250.50'))

        self.assertEqual(seated.total_amount, Decimal('501.00'))
        self.assertEqual(waitlisted.total_amount, Decimal('501.00'))

    def test_taken_labels_are_skipped(self):
        allocation = allocate_seats(
            2, passengers('A', 'B'), Decimal('10'), first_seat=2, taken={'S2', 'S4'}
        )
        self.assertEqual(allocation.seat_numbers, ['S3', 'S5'])

    def test_custom_prefix(self):
        self.assertEqual(format_seat_label(12, prefix='B'), 'B12')
        allocation = allocate_seats(1, passengers('A'), Decimal('10'), prefix='C')
        self.assertEqual(allocation.seat_numbers, ['C1'])


class PNRGenerationTests(SimpleTestCase):

    def test_pnr_alphanumeric_uppercase(self):
        pnr = generate_pnr()
        self.assertTrue(pnr.isalnum())
        self.assertEqual(pnr, pnr.upper())
        self.assertLessEqual(len(pnr), 16)

    def test_pnr_uniqueness(self):
        pnrs = set(generate_pnr() for _ in range(200))
        self.assertEqual(len(pnrs), 200)


# =============================================================================
# UNIT TESTS - Capacity ledger
# =============================================================================

class CapacityLedgerTests(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(email='ledger@example.com', password='x', name='Ledger')
        self.train = make_train(total_seats=5)

    def _booking(self, num_passengers, status, journey_date=JOURNEY_DATE, seats=()):
        booking = Booking.objects.create(
            user=self.user, train=self.train, journey_date=journey_date,
            num_passengers=num_passengers, total_amount=Decimal('0.00'),
            status=status, seat_numbers=list(seats)
        )
        for i in range(num_passengers):
            seat = seats[i] if i < len(seats) else None
            Passenger.objects.create(
                booking=booking, name=f'P{i}', age=30, gender='F',
                seat_number=seat, status=CONFIRMED if seat else WAITING
            )
        return booking

    def test_empty_pool_has_zero_confirmed(self):
        self.assertEqual(ledger.confirmed_seats(self.train.id, JOURNEY_DATE), 0)
        self.assertEqual(ledger.available_seats(self.train, JOURNEY_DATE), 5)

    def test_only_confirmed_bookings_count(self):
        self._booking(2, CONFIRMED, seats=['S1', 'S2'])
        self._booking(1, WAITING)
        self._booking(1, CANCELLED, seats=['S3'])

        self.assertEqual(ledger.confirmed_seats(self.train.id, JOURNEY_DATE), 2)
        self.assertEqual(ledger.available_seats(self.train, JOURNEY_DATE), 3)

    def test_dates_are_independent_pools(self):
        self._booking(3, CONFIRMED, seats=['S1', 'S2', 'S3'])
        self.assertEqual(ledger.confirmed_seats(self.train.id, JOURNEY_DATE + timedelta(days=1)), 0)

    def test_available_never_negative(self):
        self._booking(7, CONFIRMED)
        self.assertEqual(ledger.available_seats(self.train, JOURNEY_DATE), 0)

    def test_held_seat_numbers_exclude_cancelled(self):
        self._booking(2, CONFIRMED, seats=['S1', 'S2'])
        self._booking(2, WAITING, seats=['S3'])
        self._booking(1, CANCELLED, seats=['S4'])

        self.assertEqual(ledger.held_seat_numbers(self.train.id, JOURNEY_DATE), {'S1', 'S2', 'S3'})

    def test_confirmed_by_train(self):
        other = make_train(number='54321', total_seats=5)
        self._booking(2, CONFIRMED, seats=['S1', 'S2'])

        totals = ledger.confirmed_seats_by_train([self.train.id, other.id], JOURNEY_DATE)
        self.assertEqual(totals, {self.train.id: 2})


# =============================================================================
# UNIT TESTS - Booking coordinator
# =============================================================================

class BookingCoordinatorTests(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(email='coord@example.com', password='x', name='Coord')
        self.coordinator = BookingCoordinator()

    def test_second_booking_is_waitlisted_when_train_is_full(self):
        train = make_train(total_seats=2, fare='100.00')

        first = self.coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, passengers('A1', 'A2'))
        second = self.coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, passengers('B1'))

        self.assertEqual(first.status, CONFIRMED)
        self.assertEqual(first.seat_numbers, ['S1', 'S2'])
        self.assertEqual(first.total_amount, Decimal('200.00'))

        self.assertEqual(second.status, WAITING)
        self.assertEqual(second.seat_numbers, [])
        self.assertEqual(second.confirmed_passengers, 0)
        self.assertEqual(second.waiting_passengers, 1)
        self.assertEqual(second.total_amount, Decimal('100.00'))
        waitlisted = Passenger.objects.get(booking_id=second.booking_id)
        self.assertIsNone(waitlisted.seat_number)
        self.assertEqual(waitlisted.status, WAITING)

    def test_three_passengers_on_empty_train(self):
        train = make_train(total_seats=5)

        result = self.coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, passengers('A', 'B', 'C'))

        self.assertEqual(result.status, CONFIRMED)
        self.assertEqual(result.seat_numbers, ['S1', 'S2', 'S3'])
        self.assertEqual(ledger.available_seats(train, JOURNEY_DATE), 2)

    def test_rows_written_match_result(self):
        train = make_train(total_seats=2)

        result = self.coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, passengers('A', 'B', 'C'))

        booking = Booking.objects.get(pk=result.booking_id)
        self.assertEqual(booking.pnr, result.pnr)
        self.assertEqual(booking.num_passengers, booking.passengers.count())
        self.assertEqual(booking.seat_numbers, ['S1', 'S2'])
        self.assertEqual(booking.status, WAITING)
        self.assertEqual(
            list(booking.passengers.values_list('name', 'seat_number', 'status')),
            [('A', 'S1', CONFIRMED), ('B', 'S2', CONFIRMED), ('C', None, WAITING)]
        )
        self.assertTrue(CapacityPool.objects.filter(train=train, journey_date=JOURNEY_DATE, version=1).exists())

    def test_seat_counter_continues_after_previous_bookings(self):
        train = make_train(total_seats=10)
        self.coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, passengers('A', 'B'))

        result = self.coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, passengers('C'))

        self.assertEqual(result.seat_numbers, ['S3'])

    def test_journey_date_as_iso_string(self):
        train = make_train()
        result = self.coordinator.create_booking(
            self.user.id, train.id, JOURNEY_DATE.isoformat(), passengers('A')
        )
        self.assertEqual(Booking.objects.get(pk=result.booking_id).journey_date, JOURNEY_DATE)

    def test_unknown_train(self):
        with self.assertRaises(TrainNotFound):
            self.coordinator.create_booking(self.user.id, 99999, JOURNEY_DATE, passengers('A'))

    def test_inactive_train(self):
        train = make_train(is_active=False)
        with self.assertRaises(TrainNotFound):
            self.coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, passengers('A'))

    def test_empty_passenger_list(self):
        train = make_train()
        with self.assertRaises(InvalidInput):
            self.coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, [])
        self.assertFalse(Booking.objects.exists())

    def test_passenger_missing_fields(self):
        train = make_train()
        with self.assertRaises(InvalidInput):
            self.coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, [{'name': 'A', 'age': 30}])

    def test_malformed_passengers_rejected_before_any_write(self):
        train = make_train()
        malformed = [
            [{'name': 'A', 'age': -1, 'gender': 'M'}],
            [{'name': 'A', 'age': 0, 'gender': 'M'}],
            [{'name': 'A', 'age': 121, 'gender': 'F'}],
            [{'name': 'A', 'age': '30', 'gender': 'F'}],
            [{'name': 'A', 'age': True, 'gender': 'F'}],
            [{'name': 'A', 'age': 30, 'gender': 'X'}],
            [{'name': 'A' * 256, 'age': 30, 'gender': 'M'}],
            ['Alice'],
            passengers('A') + [None],
            {'name': 'A', 'age': 30, 'gender': 'M'},
            'Alice',
        ]

        with patch.object(self.coordinator, '_book_once') as book_once:
            for pax in malformed:
                with self.subTest(passengers=pax):
                    with self.assertRaises(InvalidInput) as ctx:
                        self.coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, pax)
                    self.assertTrue(ctx.exception.nothing_booked)

        book_once.assert_not_called()
        self.assertFalse(Booking.objects.exists())

    def test_malformed_date(self):
        train = make_train()
        with self.assertRaises(InvalidInput):
            self.coordinator.create_booking(self.user.id, train.id, 'next tuesday', passengers('A'))

    def test_cancellation_frees_capacity_for_new_requests(self):
        train = make_train(total_seats=2, fare='100.00')
        first = self.coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, passengers('A1', 'A2'))

        before_cancel = ledger.available_seats(train, JOURNEY_DATE)
        lifecycle.cancel_booking(first.booking_id, self.user.id)

        self.assertEqual(before_cancel, 0)
        self.assertEqual(ledger.available_seats(train, JOURNEY_DATE), 2)

        again = self.coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, passengers('C1', 'C2'))
        self.assertEqual(again.status, CONFIRMED)

    def test_seat_labels_not_reused_after_earlier_cancellation(self):
        train = make_train(total_seats=3)
        first = self.coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, passengers('A'))
        second = self.coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, passengers('B'))
        lifecycle.cancel_booking(first.booking_id, self.user.id)

        third = self.coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, passengers('C', 'D'))

        self.assertEqual(third.status, CONFIRMED)
        self.assertEqual(len(third.seat_numbers), 2)
        self.assertFalse(set(third.seat_numbers) & set(second.seat_numbers))

    def test_waitlisted_booking_not_promoted_on_cancel(self):
        train = make_train(total_seats=1)
        first = self.coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, passengers('A'))
        waiting = self.coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, passengers('B'))

        lifecycle.cancel_booking(first.booking_id, self.user.id)

        self.assertEqual(Booking.objects.get(pk=waiting.booking_id).status, WAITING)

    def test_conflict_is_retried(self):
        train = make_train()
        real_write = self.coordinator._write_booking
        calls = []

        def flaky_write(*args):
            calls.append(args)
            if len(calls) == 1:
                raise OperationalError('database is locked')
            return real_write(*args)

        with patch.object(self.coordinator, '_write_booking', side_effect=flaky_write):
            result = self.coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, passengers('A'))

        self.assertEqual(len(calls), 2)
        self.assertEqual(result.seat_numbers, ['S1'])
        self.assertEqual(Booking.objects.count(), 1)

    def test_conflict_surfaces_after_retries_exhausted(self):
        train = make_train()
        coordinator = BookingCoordinator(max_retries=2, retry_backoff=0)

        with patch.object(coordinator, '_write_booking', side_effect=IntegrityError('duplicate pnr')) as write:
            with self.assertRaises(ConflictOrRace) as ctx:
                coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, passengers('A'))

        # first attempt plus two retries
        self.assertEqual(write.call_count, 3)
        self.assertTrue(ctx.exception.nothing_booked)

    def test_zero_retries_means_single_attempt(self):
        train = make_train()
        coordinator = BookingCoordinator(max_retries=0)

        with patch.object(coordinator, '_write_booking', side_effect=OperationalError('database is locked')) as write:
            with self.assertRaises(ConflictOrRace):
                coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, passengers('A'))

        self.assertEqual(write.call_count, 1)

    def test_retries_back_off_with_growing_jitter(self):
        train = make_train()
        coordinator = BookingCoordinator(max_retries=3, retry_backoff=0.1)

        with patch.object(coordinator, '_write_booking', side_effect=OperationalError('database is locked')), \
                patch('bookings.services.time.sleep') as sleep:
            with self.assertRaises(ConflictOrRace):
                coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, passengers('A'))

        delays = [call.args[0] for call in sleep.call_args_list]
        self.assertEqual(len(delays), 3)
        for delay, ceiling in zip(delays, [0.1, 0.2, 0.4]):
            self.assertGreaterEqual(delay, 0)
            self.assertLessEqual(delay, ceiling)

    def test_pool_locks_released_after_use(self):
        train = make_train()
        coordinator = BookingCoordinator(max_retries=0)
        for offset in range(5):
            coordinator.create_booking(
                self.user.id, train.id, JOURNEY_DATE + timedelta(days=offset), passengers('A')
            )
        with patch.object(coordinator, '_write_booking', side_effect=OperationalError('database is locked')):
            with self.assertRaises(ConflictOrRace):
                coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, passengers('B'))

        self.assertEqual(coordinator._pool_locks, {})

    def test_partial_write_is_rolled_back(self):
        train = make_train()

        with patch('django.db.models.query.QuerySet.bulk_create', side_effect=DatabaseError('disk full')):
            with self.assertRaises(PersistenceFailure):
                self.coordinator.create_booking(self.user.id, train.id, JOURNEY_DATE, passengers('A', 'B'))

        self.assertFalse(Booking.objects.exists())
        self.assertFalse(Passenger.objects.exists())


# =============================================================================
# UNIT TESTS - Lifecycle store
# =============================================================================

class BookingLifecycleTests(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(email='owner@example.com', password='x', name='Owner')
        self.other = User.objects.create_user(email='other@example.com', password='x', name='Other')
        self.train = make_train(total_seats=2)
        self.coordinator = BookingCoordinator()

    def test_list_newest_first_with_counts(self):
        first = self.coordinator.create_booking(self.user.id, self.train.id, JOURNEY_DATE, passengers('A'))
        second = self.coordinator.create_booking(self.user.id, self.train.id, JOURNEY_DATE, passengers('B', 'C'))
        self.coordinator.create_booking(self.other.id, self.train.id, JOURNEY_DATE, passengers('X'))

        bookings = list(lifecycle.list_for_user(self.user.id))

        self.assertEqual([b.id for b in bookings], [second.booking_id, first.booking_id])
        self.assertEqual((bookings[0].confirmed_count, bookings[0].waiting_count), (1, 1))
        self.assertEqual((bookings[1].confirmed_count, bookings[1].waiting_count), (1, 0))
        self.assertEqual(bookings[0].train.train_number, '12345')

    def test_cancel_is_idempotent(self):
        result = self.coordinator.create_booking(self.user.id, self.train.id, JOURNEY_DATE, passengers('A'))

        lifecycle.cancel_booking(result.booking_id, self.user.id)
        first_cancelled_at = Booking.objects.get(pk=result.booking_id).cancelled_at
        lifecycle.cancel_booking(result.booking_id, self.user.id)

        booking = Booking.objects.get(pk=result.booking_id)
        self.assertEqual(booking.status, CANCELLED)
        self.assertIsNotNone(first_cancelled_at)
        self.assertEqual(booking.cancelled_at, first_cancelled_at)

    def test_cancel_requires_ownership(self):
        result = self.coordinator.create_booking(self.user.id, self.train.id, JOURNEY_DATE, passengers('A'))

        with self.assertRaises(BookingNotFound):
            lifecycle.cancel_booking(result.booking_id, self.other.id)
        with self.assertRaises(BookingNotFound):
            lifecycle.cancel_booking(99999, self.user.id)

        self.assertNotIn('nothing_booked', response.data)
        self.assertEqual(Booking.objects.get(pk=result.booking_id).status, CONFIRMED)

    def test_get_by_pnr_is_owner_scoped(self):
        result = self.coordinator.create_booking(self.user.id, self.train.id, JOURNEY_DATE, passengers('A'))

        booking = lifecycle.get_for_user(result.pnr.lower(), self.user.id)
        self.assertEqual(booking.id, result.booking_id)

        with self.assertRaises(BookingNotFound):
            lifecycle.get_for_user(result.pnr, self.other.id)


# =============================================================================
# INTEGRATION TESTS - Booking API
# =============================================================================

class BookingAPITests(APITestCase):
    """Integration tests for booking flow."""

    def setUp(self):
        log_store = patch.object(apps.get_app_config('utils'), 'log_store', MagicMock())
        log_store.start()
        self.addCleanup(log_store.stop)

        self.user = User.objects.create_user(
            email='user@example.com',
            password='UserPass123!',
            name='Test User'
        )
        self.train = make_train(total_seats=3, fare='500.00')

        # Login
        response = self.client.post('/api/login/', {
            'email': 'user@example.com',
            'password': 'UserPass123!'
        }, format='json')
        self.token = response.data['tokens']['access']
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {self.token}')

    def _book(self, *names, train_id=None, journey_date=None):
        return self.client.post('/api/bookings/', {
            'train_id': train_id or self.train.id,
            'journey_date': (journey_date or JOURNEY_DATE).isoformat(),
            'passengers': [
                {'name': name, 'age': 30, 'gender': 'F'} for name in names
            ]
        }, format='json')

    def test_create_booking_success(self):
        response = self._book('Asha', 'Ravi')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        booking = response.data['booking']
        self.assertEqual(booking['status'], 'confirmed')
        self.assertEqual(booking['seat_numbers'], ['S1', 'S2'])
        self.assertEqual(booking['confirmed_passengers'], 2)
        self.assertEqual(booking['waiting_passengers'], 0)
        self.assertEqual(booking['total_amount'], '1000.00')
        self.assertTrue(Booking.objects.filter(pnr=booking['pnr'], user=self.user).exists())

    def test_create_booking_partially_waitlisted(self):
        response = self._book('A', 'B', 'C', 'D')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        booking = response.data['booking']
        self.assertEqual(booking['status'], 'waiting')
        self.assertEqual(booking['confirmed_passengers'], 3)
        self.assertEqual(booking['waiting_passengers'], 1)
        self.assertEqual(booking['total_amount'], '2000.00')
        self.assertIn('waitlisted', response.data['message'])

    def test_unknown_train_returns_404(self):
        response = self._book('A', train_id=99999)

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'train_not_found')
        self.assertTrue(response.data['nothing_booked'])

    def test_empty_passengers_rejected(self):
        response = self._book()

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('passengers', response.data)

    def test_too_many_passengers_rejected(self):
        response = self._book(*[f'P{i}' for i in range(7)])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_passenger_rejected(self):
        response = self.client.post('/api/bookings/', {
            'train_id': self.train.id,
            'journey_date': JOURNEY_DATE.isoformat(),
            'passengers': [{'name': 'Old', 'age': 150, 'gender': 'X'}]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_past_date_rejected(self):
        response = self._book('A', journey_date=date.today() - timedelta(days=2))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('journey_date', response.data)

    def test_conflict_returns_409(self):
        coordinator = apps.get_app_config('bookings').coordinator
        with patch.object(coordinator, 'create_booking', side_effect=ConflictOrRace()):
            response = self._book('A')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'conflict')

    def test_booking_unauthenticated(self):
        self.client.credentials()
        response = self._book('A')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_get_my_bookings(self):
        self._book('A', 'B')
        self._book('C', 'D')

        response = self.client.get('/api/bookings/my/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        latest = response.data['results'][0]
        self.assertEqual(latest['confirmed_count'], 1)
        self.assertEqual(latest['waiting_count'], 1)
        self.assertEqual(latest['train_details']['train_number'], '12345')
        self.assertEqual(len(latest['passengers']), 2)

    def test_get_booking_by_pnr(self):
        pnr = self._book('A').data['booking']['pnr']

        response = self.client.get(f'/api/bookings/{pnr}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pnr'], pnr)

    def test_get_unknown_pnr(self):
        response = self.client.get('/api/bookings/NOPE1234/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'booking_not_found')
        self.assertNotIn('nothing_booked', response.data)

    def test_cancel_booking(self):
        booking_id = self._book('A').data['booking']['booking_id']

        response = self.client.post(f'/api/bookings/{booking_id}/cancel/')
        repeat = self.client.post(f'/api/bookings/{booking_id}/cancel/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(repeat.status_code, status.HTTP_200_OK)
        self.assertEqual(Booking.objects.get(pk=booking_id).status, CANCELLED)

    def test_cannot_cancel_someone_elses_booking(self):
        other = User.objects.create_user(email='other@example.com', password='x', name='Other')
        result = BookingCoordinator().create_booking(other.id, self.train.id, JOURNEY_DATE, passengers('X'))

        response = self.client.post(f'/api/bookings/{result.booking_id}/cancel/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertNotIn('nothing_booked', response.data)
        self.assertEqual(Booking.objects.get(pk=result.booking_id).status, CONFIRMED)


# =============================================================================
# CONCURRENCY TESTS - Race Conditions
# =============================================================================

class BookingConcurrencyTests(TransactionTestCase):
    """
    Many simultaneous bookings against one small capacity pool.
    Uses TransactionTestCase so each thread commits for real.
    """

    def setUp(self):
        self.user = User.objects.create_user(email='race@example.com', password='x', name='Race')
        self.train = make_train(number='RACE001', total_seats=3)
        self.coordinator = BookingCoordinator()

    def _run_concurrently(self, requests, coordinator_per_request=False):
        """Fire all requests at once; with ``coordinator_per_request`` each thread acts as its own worker."""
        results, errors = [], []
        barrier = threading.Barrier(len(requests))

        def book(pax):
            coordinator = BookingCoordinator() if coordinator_per_request else self.coordinator
            try:
                barrier.wait()
                results.append(coordinator.create_booking(
                    self.user.id, self.train.id, JOURNEY_DATE, pax
                ))
            except Exception as e:
                errors.append(e)
            finally:
                connection.close()

        threads = [threading.Thread(target=book, args=(pax,)) for pax in requests]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        return results, errors

    def _assert_no_shared_seats(self):
        seats = list(
            Passenger.objects.filter(
                booking__train=self.train, booking__journey_date=JOURNEY_DATE, seat_number__isnull=False
            ).exclude(booking__status=CANCELLED).values_list('seat_number', flat=True)
        )
        self.assertEqual(len(seats), len(set(seats)))
        return seats

    def test_concurrent_single_seat_bookings_never_oversell(self):
        results, errors = self._run_concurrently([passengers(f'P{i}') for i in range(8)])

        self.assertEqual(errors, [])
        self.assertEqual(len(results), 8)
        self.assertEqual(sum(1 for r in results if r.status == CONFIRMED), 3)
        self.assertEqual(sum(1 for r in results if r.status == WAITING), 5)
        self.assertEqual(ledger.confirmed_seats(self.train.id, JOURNEY_DATE), 3)
        self.assertEqual(sorted(self._assert_no_shared_seats()), ['S1', 'S2', 'S3'])

    def test_concurrent_group_bookings_never_oversell(self):
        results, errors = self._run_concurrently([passengers(f'G{i}a', f'G{i}b') for i in range(5)])

        self.assertEqual(errors, [])
        # One group fits whole; every later group sees one seat left and is partly waitlisted
        self.assertEqual(sum(1 for r in results if r.status == CONFIRMED), 1)
        self.assertEqual(sum(1 for r in results if r.status == WAITING), 4)
        confirmed_total = Booking.objects.filter(
            train=self.train, journey_date=JOURNEY_DATE, status=CONFIRMED
        ).aggregate(total=Sum('num_passengers'))['total']
        self.assertLessEqual(confirmed_total, self.train.total_seats)
        self._assert_no_shared_seats()
        self.assertEqual(CapacityPool.objects.get(train=self.train, journey_date=JOURNEY_DATE).version, 5)

    def test_separate_workers_serialize_on_the_database(self):
        results, errors = self._run_concurrently(
            [passengers(f'W{i}') for i in range(8)], coordinator_per_request=True
        )

        self.assertEqual(errors, [])
        self.assertEqual(len(results), 8)
        self.assertEqual(sum(1 for r in results if r.status == CONFIRMED), 3)
        self.assertEqual(sorted(self._assert_no_shared_seats()), ['S1', 'S2', 'S3'])
        self.assertEqual(ledger.available_seats(self.train, JOURNEY_DATE), 0)
        self.assertEqual(CapacityPool.objects.get(train=self.train, journey_date=JOURNEY_DATE).version, 8)
