import threading
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from coursepay.database import Base
from coursepay.errors import StorageError
from coursepay.ledger import PurchaseLedger
from coursepay.models import Purchase

SQLALCHEMY_DATABASE_URL = "sqlite:///./test_ledger.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={
                       "check_same_thread": False, "timeout": 30})
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def ledger():
    return PurchaseLedger(TestingSessionLocal)


def count(payment_id):
    db = TestingSessionLocal()
    n = db.query(Purchase).filter_by(external_payment_id=payment_id).count()
    db.close()
    return n


def test_record_purchase_creates_row(ledger):
    result = ledger.record_purchase("u1", "c1", "777", "approved", Decimal("49.99"))

    assert result.created is True
    assert result.duplicate is False
    purchase = ledger.find_by_payment_id("777")
    assert purchase.purchaser_id == "u1"
    assert purchase.course_id == "c1"
    assert purchase.amount == Decimal("49.99")
    assert purchase.recorded_at is not None


def test_second_insert_for_same_payment_is_duplicate(ledger):
    ledger.record_purchase("u1", "c1", "777", "approved", Decimal("49.99"))
    result = ledger.record_purchase("u1", "c1", "777", "approved", Decimal("49.99"))

    assert result.created is False
    assert result.duplicate is True
    assert count("777") == 1


def test_same_buyer_and_course_with_another_payment_is_recorded(ledger):
    ledger.record_purchase("u1", "c1", "777", "approved", Decimal("49.99"))
    result = ledger.record_purchase("u1", "c1", "800", "approved", Decimal("49.99"))

    assert result.created is True
    assert len(ledger.purchases_for("u1")) == 2


def test_concurrent_deliveries_record_once(ledger):
    workers = 8
    barrier = threading.Barrier(workers)
    results, errors = [], []

    def deliver():
        barrier.wait()
        try:
            results.append(ledger.record_purchase("u1", "c1", "777", "approved", Decimal("49.99")))
        except StorageError as exc:
            errors.append(exc)

    threads = [threading.Thread(target=deliver) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert sum(1 for r in results if r.created) == 1
    assert sum(1 for r in results if r.duplicate) == workers - 1
    assert count("777") == 1


def test_storage_failure_raises_storage_error(mocker):
    session = mocker.Mock()
    session.commit.side_effect = OperationalError("INSERT", {}, Exception("database is locked"))
    ledger = PurchaseLedger(lambda: session)

    with pytest.raises(StorageError) as exc_info:
        ledger.record_purchase("u1", "c1", "777", "approved", Decimal("49.99"))

    assert exc_info.value.details["external_payment_id"] == "777"
    session.rollback.assert_called_once()
    session.close.assert_called_once()


def test_purchases_for_only_returns_own_records(ledger):
    ledger.record_purchase("u1", "c1", "777", "approved", Decimal("49.99"))
    ledger.record_purchase("u2", "c1", "778", "approved", Decimal("49.99"))

    purchases = ledger.purchases_for("u1")

    assert [p.external_payment_id for p in purchases] == ["777"]
