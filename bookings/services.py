"""
Booking transaction coordinator.

Runs one capacity read, one seat allocation and the resulting writes as a
single atomic unit per (train, journey date) pool.
"""
import logging
import random
import threading
import time
from collections.abc import Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, DatabaseError, IntegrityError, OperationalError, transaction
from django.db.models import F

from trains.models import Train
from utils.exceptions import BookingError, ConflictOrRace, InvalidInput, PersistenceFailure, TrainNotFound

from . import ledger
from .allocation import allocate_seats
from .models import Booking, CapacityPool, Passenger, MIN_PASSENGER_AGE, MAX_PASSENGER_AGE

logger = logging.getLogger(__name__)

PASSENGER_FIELDS = ('name', 'age', 'gender')
GENDERS = {code for code, _ in Passenger.GENDER_CHOICES}


@dataclass(frozen=True)
class BookingResult:
    pnr: str
    booking_id: int
    status: str
    confirmed_passengers: int
    waiting_passengers: int
    seat_numbers: List[str] = field(default_factory=list)
    total_amount: Decimal = Decimal('0.00')


def parse_journey_date(value):
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise InvalidInput(f"Invalid journey date '{value}'. Use YYYY-MM-DD.")


def _check_passengers(passengers):
    if not isinstance(passengers, (list, tuple)):
        raise InvalidInput('Passengers must be a list.')
    if not passengers:
        raise InvalidInput('At least one passenger is required.')

    for position, passenger in enumerate(passengers, start=1):
        if not isinstance(passenger, Mapping):
            raise InvalidInput(f"Passenger {position} must be an object with name, age and gender.")

        missing = [key for key in PASSENGER_FIELDS if passenger.get(key) in (None, '')]
        if missing:
            raise InvalidInput(f"Passenger {position} is missing: {', '.join(missing)}.")

        name, age, gender = (passenger[key] for key in PASSENGER_FIELDS)
        if not isinstance(name, str) or len(name) > 255:
            raise InvalidInput(f"Passenger {position}: name must be text of at most 255 characters.")
        # bool is an int subclass
        if isinstance(age, bool) or not isinstance(age, int) or not MIN_PASSENGER_AGE <= age <= MAX_PASSENGER_AGE:
            raise InvalidInput(
                f"Passenger {position}: age must be a whole number from {MIN_PASSENGER_AGE} to {MAX_PASSENGER_AGE}."
            )
        if gender not in GENDERS:
            raise InvalidInput(f"Passenger {position}: gender must be one of {', '.join(sorted(GENDERS))}.")


class _PoolLock:
    __slots__ = ('lock', 'users')

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class BookingCoordinator:
    """
    Creates bookings without double-assigning seats.

    One instance lives for the whole process (see ``BookingsConfig``). Work
    on the same pool is serialized three ways: an in-process lock per pool
    key, a ``SELECT ... FOR UPDATE`` on the pool's ``CapacityPool`` row, and
    a version check on that row before commit. Losing a race raises
    ``ConflictOrRace``, which is retried up to ``max_retries`` more times
    after a jittered exponential backoff.
    """

    def __init__(self, using=DEFAULT_DB_ALIAS, max_retries=None, retry_backoff=None, seat_prefix=None):
        self.using = using
        self.max_retries = settings.BOOKING_MAX_RETRIES if max_retries is None else max_retries
        if retry_backoff is None:
            retry_backoff = settings.BOOKING_RETRY_BACKOFF_MS / 1000
        self.retry_backoff = retry_backoff
        self.seat_prefix = seat_prefix or settings.SEAT_LABEL_PREFIX
        self._pool_locks = {}
        self._pool_locks_guard = threading.Lock()

    @contextmanager
    def _pool_lock(self, train_id, journey_date):
        """Hold the in-process lock for one pool; the entry is dropped once nobody holds or waits on it."""
        key = (train_id, journey_date)
        with self._pool_locks_guard:
            entry = self._pool_locks.get(key)
            if entry is None:
                entry = self._pool_locks[key] = _PoolLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._pool_locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._pool_locks[key]

    def _backoff(self, retry):
        time.sleep(random.uniform(0, self.retry_backoff * 2 ** (retry - 1)))

    def create_booking(self, user_id, train_id, journey_date, passengers):
        """
        Book ``passengers`` on a train for a journey date.

        Every error raised here is flagged ``nothing_booked``: no booking
        or passenger row was committed.

        Raises:
            InvalidInput: empty or malformed passenger list, bad date.
            TrainNotFound: no active train with ``train_id``.
            ConflictOrRace: the pool kept changing underneath every attempt.
            PersistenceFailure: any other database error; nothing was written.
        """
        try:
            return self._create_booking(user_id, train_id, journey_date, passengers)
        except BookingError as e:
            e.nothing_booked = True
            raise

    def _create_booking(self, user_id, train_id, journey_date, passengers):
        _check_passengers(passengers)
        journey_date = parse_journey_date(journey_date)
        try:
            train_id = int(train_id)
        except (TypeError, ValueError):
            raise TrainNotFound()

        retry = 0
        while True:
            try:
                with self._pool_lock(train_id, journey_date):
                    result = self._book_once(user_id, train_id, journey_date, passengers)
            except ConflictOrRace:
                if retry >= self.max_retries:
                    logger.error(
                        "Booking gave up after %d attempts for train %s on %s",
                        retry + 1, train_id, journey_date
                    )
                    raise
                retry += 1
                logger.warning(
                    "Booking conflict for train %s on %s, retrying (retry %d of %d)",
                    train_id, journey_date, retry, self.max_retries
                )
                self._backoff(retry)
                continue

            logger.info(
                "Booking %s created: train %s on %s, %d confirmed, %d waiting",
                result.pnr, train_id, journey_date,
                result.confirmed_passengers, result.waiting_passengers
            )
            return result

    def _book_once(self, user_id, train_id, journey_date, passengers):
        try:
            with transaction.atomic(using=self.using):
                return self._write_booking(user_id, train_id, journey_date, passengers)
        except IntegrityError as e:
            # Duplicate PNR or a pool row created concurrently
            raise ConflictOrRace() from e
        except OperationalError as e:
            # Lock timeouts, deadlocks, serialization failures
            raise ConflictOrRace() from e
        except DatabaseError as e:
            logger.exception("Booking persistence failed for train %s on %s", train_id, journey_date)
            raise PersistenceFailure() from e

    def _write_booking(self, user_id, train_id, journey_date, passengers):
        using = self.using
        try:
            train = Train.objects.using(using).get(pk=train_id, is_active=True)
        except Train.DoesNotExist:
            raise TrainNotFound()

        pool = self._lock_pool(train, journey_date)

        confirmed = ledger.confirmed_seats(train.id, journey_date, using=using)
        allocation = allocate_seats(
            available_seats=train.total_seats - confirmed,
            passengers=passengers,
            fare_per_seat=train.fare,
            first_seat=confirmed + 1,
            taken=ledger.held_seat_numbers(train.id, journey_date, using=using),
            prefix=self.seat_prefix,
        )

        booking = Booking.objects.using(using).create(
            user_id=user_id,
            train=train,
            journey_date=journey_date,
            num_passengers=len(passengers),
            total_amount=allocation.total_amount,
            status=allocation.status,
            seat_numbers=allocation.seat_numbers,
        )
        Passenger.objects.using(using).bulk_create([
            Passenger(
                booking=booking,
                name=decision.passenger['name'],
                age=decision.passenger['age'],
                gender=decision.passenger['gender'],
                seat_number=decision.seat_number,
                status=decision.status,
            )
            for decision in allocation.decisions
        ])

        updated = CapacityPool.objects.using(using).filter(
            pk=pool.pk, version=pool.version
        ).update(version=F('version') + 1)
        if updated == 0:
            raise ConflictOrRace()

        return BookingResult(
            pnr=booking.pnr,
            booking_id=booking.id,
            status=allocation.status,
            confirmed_passengers=allocation.confirmed_count,
            waiting_passengers=allocation.waiting_count,
            seat_numbers=allocation.seat_numbers,
            total_amount=allocation.total_amount,
        )

    def _lock_pool(self, train, journey_date):
        pools = CapacityPool.objects.using(self.using)
        pool, _ = pools.get_or_create(train=train, journey_date=journey_date)
        return pools.select_for_update().get(pk=pool.pk)
