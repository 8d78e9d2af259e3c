from datetime import datetime, timedelta, timezone
from decimal import Decimal
from freezegun import freeze_time

from src.domain.entities import Reservation
from src.domain.pricing import compute_cost, duration_hours, settle_cost
from src.shared.utils import utc_now


START = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)


def test_two_hours_at_fifteen():
    assert compute_cost(START, START + timedelta(hours=2), Decimal("15.00")) == Decimal("30.00")


def test_fractional_hours_are_not_rounded_up():
    # 1h30 at 15.00/h
    assert compute_cost(START, START + timedelta(minutes=90), Decimal("15.00")) == Decimal("22.50")
    assert duration_hours(START, START + timedelta(minutes=90)) == Decimal("1.5")


def test_cost_rounds_half_up_to_cents():
    # 20 minutes at 10.00/h = 3.333...
    assert compute_cost(START, START + timedelta(minutes=20), Decimal("10.00")) == Decimal("3.33")
    # 1 minute at 0.30/h = 0.005
    assert compute_cost(START, START + timedelta(minutes=1), Decimal("0.30")) == Decimal("0.01")


def test_cost_never_negative():
    assert compute_cost(START, START - timedelta(hours=1), Decimal("15.00")) == Decimal("0.00")


def test_float_rate_is_accepted():
    assert compute_cost(START, START + timedelta(hours=3), 12.5) == Decimal("37.50")


@freeze_time("2024-01-01 10:15:00")
def test_cost_until_now():
    arrival = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
    assert utc_now() == datetime(2024, 1, 1, 10, 15, tzinfo=timezone.utc)
    assert compute_cost(arrival, utc_now(), Decimal("15.00")) == Decimal("33.75")


def test_settle_cost_ends_the_stay_at_departure():
    reservation = Reservation(
        parking_lot_id=1, company_id=1, vehicle_id=1, driver_id=1,
        start_time=START, end_time=START + timedelta(hours=24), total_cost=Decimal("0.00"),
        actual_arrival=START, actual_departure=START + timedelta(minutes=45), cost_is_provisional=True,
    )
    settle_cost(reservation, Decimal("20.00"))

    assert reservation.end_time == START + timedelta(minutes=45)
    assert reservation.total_cost == Decimal("15.00")
    assert reservation.cost_is_provisional is False
