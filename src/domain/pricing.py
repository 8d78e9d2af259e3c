from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from src.domain.entities import Reservation


CENT = Decimal("0.01")
SECONDS_PER_HOUR = Decimal(3600)


def duration_hours(start_time: datetime, end_time: datetime) -> Decimal:
    """Real-valued hours between two instants; never rounded up to whole hours."""
    seconds = Decimal(str((end_time - start_time).total_seconds()))
    return seconds / SECONDS_PER_HOUR


def compute_cost(start_time: datetime, end_time: datetime, price_per_hour: Decimal) -> Decimal:
    hours = duration_hours(start_time, end_time)
    cost = (hours * Decimal(str(price_per_hour))).quantize(CENT, rounding=ROUND_HALF_UP)
    return max(cost, Decimal("0.00"))


def settle_cost(reservation: Reservation, price_per_hour: Decimal) -> None:
    """Charge a completed stay from arrival to departure.

    The booked window is closed at the departure so that ``end_time`` and
    ``total_cost`` describe the same stay.
    """
    departure = reservation.actual_departure
    arrival = reservation.actual_arrival or reservation.start_time
    if departure > reservation.start_time:
        reservation.end_time = departure
    reservation.total_cost = compute_cost(arrival, departure, price_per_hour)
    reservation.cost_is_provisional = False
