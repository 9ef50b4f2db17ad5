"""Webhook reconciliation: from a processor notification to a purchase record.

A notification only says "payment X changed". The reconciler always fetches
payment X from the gateway and acts on that state, so replays and
out-of-order deliveries converge on the same ledger contents.

Lifecycle of one notification::

    received -> filtered                      (not a payment event)
             -> fetch_failed                  (gateway error, retry)
             -> payment_not_found             (unknown payment, surfaced)
             -> ignored                       (status is not approved)
             -> metadata_missing              (approved but unattributable)
             -> recorded | already_recorded   (ledger write)
             -> storage_failed                (ledger unavailable, retry)
"""
import logging
from dataclasses import dataclass, field
from enum import Enum

from coursepay.errors import DataIntegrityError, GatewayError, NotFoundError, StorageError
from coursepay.schemas import PaymentNotification, PaymentStatus

logger = logging.getLogger(__name__)

PAYMENT_EVENT_TYPE = "payment"
KNOWN_STATUSES = frozenset(status.value for status in PaymentStatus)


class Outcome(str, Enum):
    FILTERED = "filtered"
    FETCH_FAILED = "fetch_failed"
    PAYMENT_NOT_FOUND = "payment_not_found"
    IGNORED = "ignored"
    METADATA_MISSING = "metadata_missing"
    RECORDED = "recorded"
    ALREADY_RECORDED = "already_recorded"
    STORAGE_FAILED = "storage_failed"


RETRYABLE_OUTCOMES = frozenset({Outcome.FETCH_FAILED, Outcome.STORAGE_FAILED})


@dataclass(frozen=True)
class ReconcileResult:
    accepted: bool
    outcome: Outcome
    detail: dict = field(default_factory=dict)

    @property
    def retryable(self) -> bool:
        return self.outcome in RETRYABLE_OUTCOMES


class WebhookReconciler:
    def __init__(self, gateway, ledger):
        self.gateway = gateway
        self.ledger = ledger

    def reconcile(self, notification: PaymentNotification) -> ReconcileResult:
        payment_id = notification.external_payment_id
        if notification.event_type != PAYMENT_EVENT_TYPE or not payment_id:
            logger.info("Skipping notification %s: type=%r payment id=%r",
                        notification.event_id, notification.event_type, payment_id)
            return ReconcileResult(accepted=True, outcome=Outcome.FILTERED)

        logger.info("Reconciling payment %s (event %s, action %s)",
                    payment_id, notification.event_id, notification.action)
        try:
            payment = self.gateway.fetch_payment_by_id(payment_id)
        except NotFoundError as exc:
            logger.error("Payment %s is unknown to the gateway: %s %s", payment_id, exc.message, exc.details)
            return ReconcileResult(accepted=False, outcome=Outcome.PAYMENT_NOT_FOUND, detail=exc.to_dict())
        except GatewayError as exc:
            logger.error("Could not fetch payment %s: %s %s", payment_id, exc.message, exc.details)
            return ReconcileResult(accepted=False, outcome=Outcome.FETCH_FAILED, detail=exc.to_dict())

        if payment.status not in KNOWN_STATUSES:
            logger.warning("Payment %s has unrecognised status %r", payment_id, payment.status)

        if not payment.is_approved:
            logger.info("Payment %s has status %r. No purchase recorded.", payment_id, payment.status)
            return ReconcileResult(accepted=True, outcome=Outcome.IGNORED, detail={"status": payment.status})

        metadata = payment.metadata
        if not metadata.is_complete or payment.amount is None:
            error = DataIntegrityError(
                f"Payment {payment.external_payment_id} is approved but cannot be attributed: "
                "purchaser_id, course_id or amount is missing.",
                {
                    "payment_id": payment.external_payment_id,
                    "metadata": metadata.model_dump(),
                    "amount": None if payment.amount is None else str(payment.amount),
                },
            )
            logger.error("DataIntegrityError: %s %s", error.message, error.details)
            return ReconcileResult(accepted=False, outcome=Outcome.METADATA_MISSING, detail=error.to_dict())

        try:
            result = self.ledger.record_purchase(
                purchaser_id=metadata.purchaser_id,
                course_id=metadata.course_id,
                external_payment_id=payment.external_payment_id,
                status=payment.status,
                amount=payment.amount,
            )
        except StorageError as exc:
            logger.error("Payment %s approved but the purchase could not be saved: %s %s",
                         payment.external_payment_id, exc.message, exc.details)
            return ReconcileResult(accepted=False, outcome=Outcome.STORAGE_FAILED, detail=exc.to_dict())

        if result.duplicate:
            return ReconcileResult(accepted=True, outcome=Outcome.ALREADY_RECORDED)

        logger.info("Purchase recorded: payment %s, purchaser %s, course %s, amount %s",
                    payment.external_payment_id, metadata.purchaser_id, metadata.course_id, payment.amount)
        return ReconcileResult(accepted=True, outcome=Outcome.RECORDED)
