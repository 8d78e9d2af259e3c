import pytest
from datetime import datetime, timezone, timedelta
from decimal import Decimal
from sqlalchemy import create_engine, Column, Integer
from sqlalchemy.orm import sessionmaker, declarative_base
from src.shared.custom_types import UTCDateTime, Money
from unittest.mock import MagicMock

Base = declarative_base()

class SampleRow(Base):
    __tablename__ = "sample_table"
    id = Column(Integer, primary_key=True)
    utc_datetime_col = Column(UTCDateTime)
    amount_col = Column(Money)

@pytest.fixture(scope="function")
def db_session_custom_types():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)

def test_utc_datetime_aware_to_db_and_back(db_session_custom_types):
    session = db_session_custom_types
    now_aware = datetime.now(timezone.utc).replace(microsecond=0)

    instance = SampleRow(utc_datetime_col=now_aware)
    session.add(instance)
    session.commit()
    session.expire_all()

    retrieved_instance = session.query(SampleRow).first()
    assert retrieved_instance.utc_datetime_col == now_aware
    assert retrieved_instance.utc_datetime_col.tzinfo == timezone.utc

def test_utc_datetime_naive_is_taken_as_utc(db_session_custom_types):
    session = db_session_custom_types
    naive = datetime(2024, 1, 1, 8, 0, 0)

    instance = SampleRow(utc_datetime_col=naive)
    session.add(instance)
    session.commit()
    session.expire_all()

    retrieved_instance = session.query(SampleRow).first()
    assert retrieved_instance.utc_datetime_col == naive.replace(tzinfo=timezone.utc)

def test_utc_datetime_none_value(db_session_custom_types):
    session = db_session_custom_types

    instance = SampleRow(utc_datetime_col=None, amount_col=None)
    session.add(instance)
    session.commit()
    session.expire_all()

    retrieved_instance = session.query(SampleRow).first()
    assert retrieved_instance.utc_datetime_col is None
    assert retrieved_instance.amount_col is None

def test_utc_datetime_different_timezone_to_db_and_back(db_session_custom_types):
    session = db_session_custom_types
    # Sao Paulo, UTC-3
    brt = timezone(timedelta(hours=-3))
    now_brt = datetime.now(brt).replace(microsecond=0)
    now_utc_expected = now_brt.astimezone(timezone.utc)

    instance = SampleRow(utc_datetime_col=now_brt)
    session.add(instance)
    session.commit()
    session.expire_all()

    retrieved_instance = session.query(SampleRow).first()
    assert retrieved_instance.utc_datetime_col == now_utc_expected
    assert retrieved_instance.utc_datetime_col.tzinfo == timezone.utc

def test_utc_datetime_process_bind_param_keeps_tz_off_sqlite():
    utc_type = UTCDateTime()
    brt = timezone(timedelta(hours=-3))
    local_dt = datetime(2024, 1, 1, 5, 0, 0, tzinfo=brt)

    mock_dialect = MagicMock()
    mock_dialect.name = 'postgresql'

    processed_value = utc_type.process_bind_param(local_dt, mock_dialect)
    assert processed_value.tzinfo == timezone.utc
    assert processed_value == datetime(2024, 1, 1, 8, 0, 0, tzinfo=timezone.utc)

def test_utc_datetime_process_bind_param_sqlite_is_naive():
    utc_type = UTCDateTime()
    mock_dialect = MagicMock()
    mock_dialect.name = 'sqlite'

    processed_value = utc_type.process_bind_param(datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc), mock_dialect)
    assert processed_value.tzinfo is None
    assert processed_value == datetime(2024, 1, 1, 8, 0)

def test_utc_datetime_load_dialect_impl_non_sqlite():
    utc_type = UTCDateTime()
    mock_dialect = MagicMock()
    mock_dialect.name = 'postgresql'
    mock_dialect.type_descriptor.return_value = "mock_type_descriptor"

    result = utc_type.load_dialect_impl(mock_dialect)
    assert result == "mock_type_descriptor"
    mock_dialect.type_descriptor.assert_called_once()
    args, kwargs = mock_dialect.type_descriptor.call_args
    assert isinstance(args[0], UTCDateTime.impl)
    assert args[0].timezone is True

def test_money_round_trip_through_cents(db_session_custom_types):
    session = db_session_custom_types

    instance = SampleRow(amount_col=Decimal("37.50"))
    session.add(instance)
    session.commit()
    session.expire_all()

    retrieved_instance = session.query(SampleRow).first()
    assert retrieved_instance.amount_col == Decimal("37.50")
    assert isinstance(retrieved_instance.amount_col, Decimal)

def test_money_binds_integer_cents():
    money = Money()
    assert money.process_bind_param(Decimal("15.00"), None) == 1500
    assert money.process_bind_param(Decimal("0.005"), None) == 1
    assert money.process_bind_param(12.345, None) == 1235
    assert money.process_bind_param(0, None) == 0
    assert money.process_result_value(3333, None) == Decimal("33.33")
