import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

from coursepay.catalog import fetch_course_by_id, get_user_email_by_id
from coursepay.errors import (
    CourseNotFound,
    CourseUnavailable,
    GatewayError,
    PaymentError,
    PurchaserContactUnresolved,
)
from coursepay.schemas import PaymentIntent, PaymentMetadata, ReturnUrls

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurchaseIntentResult:
    success: bool
    preference_id: Optional[str] = None
    redirect_url: Optional[str] = None
    reason: Optional[PaymentError] = None


def valid_price(price) -> Optional[Decimal]:
    """Return the price as a Decimal if it is a finite number above zero."""
    if price is None or isinstance(price, bool):
        return None
    try:
        value = Decimal(str(price))
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value


class PreferenceBuilder:
    """Turns a (course, purchaser) pair into a checkout preference at the gateway."""

    def __init__(self, gateway, session_factory, app_url: str, currency: str):
        self.gateway = gateway
        self.session_factory = session_factory
        self.app_url = app_url.rstrip("/")
        self.currency = currency

    def create_purchase_intent(self, course_id: str, purchaser_id: str) -> PurchaseIntentResult:
        logger.info("Creating payment preference for course %s, purchaser %s", course_id, purchaser_id)
        try:
            intent = self.build_intent(course_id, purchaser_id)
            preference = self.gateway.create_payment_intent(intent)
        except GatewayError as exc:
            logger.error("Gateway error creating preference for course %s: %s %s",
                         course_id, exc.message, exc.details)
            return PurchaseIntentResult(success=False, reason=exc)
        except PaymentError as exc:
            logger.warning("Cannot create preference for course %s: %s", course_id, exc.message)
            return PurchaseIntentResult(success=False, reason=exc)

        return PurchaseIntentResult(
            success=True,
            preference_id=preference.id,
            redirect_url=preference.redirect_url,
        )

    def build_intent(self, course_id: str, purchaser_id: str) -> PaymentIntent:
        db = self.session_factory()
        try:
            course = fetch_course_by_id(db, course_id)
            if course is None:
                raise CourseNotFound(f"Course with ID {course_id} not found.", {"course_id": course_id})

            price = valid_price(course.price)
            if price is None:
                raise CourseUnavailable(
                    "Course price is invalid. Payment cannot proceed.",
                    {"course_id": course_id, "price": None if course.price is None else str(course.price)},
                )

            email = get_user_email_by_id(db, purchaser_id)
            if not email:
                raise PurchaserContactUnresolved(
                    f"Email not found for user ID {purchaser_id}.",
                    {"purchaser_id": purchaser_id},
                )
            title = course.title
        finally:
            db.close()

        course_url = f"{self.app_url}/courses/{course_id}"
        return PaymentIntent(
            course_id=course_id,
            purchaser_id=purchaser_id,
            title=title,
            amount=price,
            currency=self.currency,
            payer_email=email,
            return_urls=ReturnUrls(
                success=f"{course_url}/access?status=success",
                failure=f"{course_url}?status=failure",
                pending=f"{course_url}?status=pending",
            ),
            notification_url=f"{self.app_url}/payments/webhook?source_news=webhooks",
            metadata=PaymentMetadata(purchaser_id=purchaser_id, course_id=course_id),
        )
