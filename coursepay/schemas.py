from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PaymentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    AUTHORIZED = "authorized"
    IN_PROCESS = "in_process"
    IN_MEDIATION = "in_mediation"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    CHARGED_BACK = "charged_back"


def _to_decimal(value):
    if value is None:
        return None
    return Decimal(str(value))


def _clean_id(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class PaymentMetadata(BaseModel):
    """Reconciliation keys carried through the gateway untouched."""
    model_config = ConfigDict(frozen=True)

    purchaser_id: Optional[str] = None
    course_id: Optional[str] = None

    @field_validator("purchaser_id", "course_id", mode="before")
    @classmethod
    def _stringify(cls, value):
        return _clean_id(value)

    @property
    def is_complete(self) -> bool:
        return bool(self.purchaser_id and self.course_id)


class ReturnUrls(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: str
    failure: str
    pending: str


class PaymentIntent(BaseModel):
    model_config = ConfigDict(frozen=True)

    course_id: str
    purchaser_id: str
    title: str
    amount: Decimal
    currency: str
    payer_email: str
    return_urls: ReturnUrls
    notification_url: str
    metadata: PaymentMetadata


class CreatedPreference(BaseModel):
    id: str
    redirect_url: str


class PaymentNotification(BaseModel):
    """A "something changed, go look" signal from the processor."""

    event_id: Optional[str] = None
    event_type: Optional[str] = None
    action: Optional[str] = None
    external_payment_id: Optional[str] = None
    timestamp: Optional[str] = None

    @classmethod
    def from_webhook(cls, body: dict, query: dict = None) -> "PaymentNotification":
        query = query or {}
        data = body.get("data") if isinstance(body.get("data"), dict) else {}

        event_type = body.get("type") or body.get("topic") or query.get("type") or query.get("topic")
        payment_id = data.get("id") or query.get("data.id")

        # Legacy IPN: {"topic": "payment", "resource": ".../v1/payments/123"} or ?topic=payment&id=123
        if payment_id is None and (body.get("topic") or query.get("topic")):
            resource = body.get("resource")
            if resource is not None:
                payment_id = str(resource).rstrip("/").rsplit("/", 1)[-1]
            else:
                payment_id = query.get("id")

        return cls(
            event_id=_clean_id(body.get("id")),
            event_type=event_type,
            action=body.get("action"),
            external_payment_id=_clean_id(payment_id),
            timestamp=body.get("date_created"),
        )


class RemotePaymentRecord(BaseModel):
    """Authoritative payment state as reported by the gateway."""

    external_payment_id: str
    status: str
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    metadata: PaymentMetadata = Field(default_factory=PaymentMetadata)

    @classmethod
    def from_gateway(cls, payment: dict) -> "RemotePaymentRecord":
        return cls(
            external_payment_id=str(payment["id"]),
            status=payment.get("status") or "",
            amount=_to_decimal(payment.get("transaction_amount")),
            currency=payment.get("currency_id"),
            metadata=PaymentMetadata.model_validate(payment.get("metadata") or {}),
        )

    @property
    def is_approved(self) -> bool:
        return self.status == PaymentStatus.APPROVED.value
