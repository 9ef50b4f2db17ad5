import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from coursepay.errors import StorageError
from coursepay.models import Purchase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerResult:
    created: bool
    duplicate: bool = False


class PurchaseLedger:
    """Durable purchase records, at most one per external payment ID.

    Uniqueness is enforced by the ``purchases.external_payment_id`` unique
    constraint, never by a read-then-write check, so concurrent deliveries of
    the same notification cannot both insert.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def record_purchase(self, purchaser_id: str, course_id: str, external_payment_id: str,
                        status: str, amount: Decimal) -> LedgerResult:
        db = self.session_factory()
        try:
            db.add(Purchase(
                purchaser_id=purchaser_id,
                course_id=course_id,
                external_payment_id=external_payment_id,
                status=status,
                amount=amount,
            ))
            db.commit()
            return LedgerResult(created=True)
        except IntegrityError as exc:
            db.rollback()
            # Only a clash on the payment ID counts as a duplicate
            if self._exists(db, external_payment_id):
                logger.info("Purchase for payment %s already recorded", external_payment_id)
                return LedgerResult(created=False, duplicate=True)
            raise StorageError(
                f"Purchase for payment {external_payment_id} violates a ledger constraint.",
                {"external_payment_id": external_payment_id, "error": str(exc.orig)},
            ) from exc
        except SQLAlchemyError as exc:
            db.rollback()
            raise StorageError(
                f"Could not record purchase for payment {external_payment_id}.",
                {"external_payment_id": external_payment_id, "error": str(exc)},
            ) from exc
        finally:
            db.close()

    @staticmethod
    def _exists(db, external_payment_id: str) -> bool:
        try:
            return db.query(Purchase.id).filter_by(external_payment_id=external_payment_id).first() is not None
        except SQLAlchemyError as exc:
            raise StorageError(
                f"Could not check purchase for payment {external_payment_id}.",
                {"external_payment_id": external_payment_id, "error": str(exc)},
            ) from exc

    def find_by_payment_id(self, external_payment_id: str) -> Optional[Purchase]:
        db = self.session_factory()
        try:
            return db.query(Purchase).filter_by(external_payment_id=external_payment_id).first()
        finally:
            db.close()

    def purchases_for(self, purchaser_id: str) -> List[Purchase]:
        db = self.session_factory()
        try:
            return (
                db.query(Purchase)
                .filter_by(purchaser_id=purchaser_id)
                .order_by(Purchase.recorded_at.desc(), Purchase.id.desc())
                .all()
            )
        finally:
            db.close()
