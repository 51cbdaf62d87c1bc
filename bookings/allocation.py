"""
Seat allocation and waitlisting.

Pure functions: no database access, no Django imports. Given how many seats
remain in a capacity pool, where the seat counter starts, and an ordered
passenger list, decide which passengers get a seat and which are waitlisted.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from itertools import count
from typing import List, Optional

CONFIRMED = 'confirmed'
WAITING = 'waiting'

DEFAULT_SEAT_PREFIX = 'S'


@dataclass(frozen=True)
class SeatDecision:
    passenger: dict
    seat_number: Optional[str]
    status: str


@dataclass(frozen=True)
class Allocation:
    decisions: List[SeatDecision] = field(default_factory=list)
    total_amount: Decimal = Decimal('0.00')

    @property
    def status(self):
        """``confirmed`` only when every passenger holds a seat."""
        if all(d.status == CONFIRMED for d in self.decisions):
            return CONFIRMED
        return WAITING

    @property
    def seat_numbers(self):
        return [d.seat_number for d in self.decisions if d.seat_number is not None]

    @property
    def confirmed_count(self):
        return len(self.seat_numbers)

    @property
    def waiting_count(self):
        return len(self.decisions) - self.confirmed_count


def format_seat_label(number, prefix=DEFAULT_SEAT_PREFIX):
    return f"{prefix}{number}"


def _seat_labels(first_seat, taken, prefix):
    """Yield labels from an increasing counter, skipping labels in ``taken``."""
    for number in count(first_seat):
        label = format_seat_label(number, prefix)
        if label not in taken:
            yield label


def allocate_seats(available_seats, passengers, fare_per_seat,
                   first_seat=1, taken=frozenset(), prefix=DEFAULT_SEAT_PREFIX):
    """
    Assign seats greedily in input order.

    The first ``min(len(passengers), available_seats)`` passengers get seat
    labels drawn from a counter starting at ``first_seat``; everyone after
    them is waitlisted with no seat. Labels already in ``taken`` are never
    handed out. Every passenger pays the full fare, seated or not.

    Args:
        available_seats: Seats left in the pool. Negative values count as 0.
        passengers: Ordered passenger dicts (name, age, gender).
        fare_per_seat: Decimal fare charged per passenger.
        first_seat: Counter seed, normally confirmed seats + 1.
        taken: Seat labels already held in the pool.
        prefix: Seat label prefix.

    Returns:
        Allocation with one SeatDecision per passenger, in input order.
    """
    seats_to_assign = min(len(passengers), max(0, available_seats))
    labels = _seat_labels(first_seat, frozenset(taken), prefix)

    decisions = []
    for index, passenger in enumerate(passengers):
        if index < seats_to_assign:
            decisions.append(SeatDecision(passenger, next(labels), CONFIRMED))
        else:
            decisions.append(SeatDecision(passenger, None, WAITING))

    total_amount = Decimal(fare_per_seat) * len(passengers)
    return Allocation(decisions=decisions, total_amount=total_amount)
