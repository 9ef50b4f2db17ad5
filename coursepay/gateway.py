import logging

import mercadopago
import requests
from mercadopago.config import RequestOptions

from coursepay.errors import GatewayError, PaymentNotFound
from coursepay.schemas import CreatedPreference, PaymentIntent, RemotePaymentRecord

logger = logging.getLogger(__name__)


class MercadoPagoGateway:
    """Thin adapter over the Mercado Pago SDK.

    One instance is built at startup and shared; it holds its own credentials
    instead of configuring the SDK globally.
    """

    def __init__(self, sdk, sandbox: bool = False):
        self.sdk = sdk
        self.sandbox = sandbox

    @classmethod
    def from_settings(cls, settings):
        options = RequestOptions(
            connection_timeout=settings.gateway_timeout,
            max_retries=settings.gateway_max_retries,
        )
        sdk = mercadopago.SDK(settings.mercado_pago_access_token, request_options=options)
        return cls(sdk, sandbox=settings.mercado_pago_sandbox)

    def create_payment_intent(self, intent: PaymentIntent) -> CreatedPreference:
        body = {
            "items": [
                {
                    "id": intent.course_id,
                    "title": intent.title,
                    "quantity": 1,
                    "unit_price": float(intent.amount),
                    "currency_id": intent.currency,
                }
            ],
            "payer": {"email": intent.payer_email},
            "back_urls": intent.return_urls.model_dump(),
            "auto_return": "approved",
            "notification_url": intent.notification_url,
            "metadata": intent.metadata.model_dump(),
        }

        try:
            result = self.sdk.preference().create(body)
        except requests.RequestException as exc:
            raise GatewayError(
                "Could not reach Mercado Pago to create the preference.",
                {"error": str(exc)},
            ) from exc

        status, response = result.get("status"), result.get("response") or {}
        if status not in (200, 201) or not response.get("id"):
            raise GatewayError(
                "Mercado Pago rejected the payment preference.",
                {"status": status, "response": response},
            )

        redirect_url = response.get("sandbox_init_point") if self.sandbox else response.get("init_point")
        if not redirect_url:
            raise GatewayError(
                "Mercado Pago returned a preference without a checkout URL.",
                {"status": status, "response": response},
            )

        logger.info("Mercado Pago preference created: %s", response["id"])
        return CreatedPreference(id=str(response["id"]), redirect_url=redirect_url)

    def fetch_payment_by_id(self, payment_id: str) -> RemotePaymentRecord:
        try:
            result = self.sdk.payment().get(payment_id)
        except requests.RequestException as exc:
            raise GatewayError(
                f"Could not reach Mercado Pago to fetch payment {payment_id}.",
                {"payment_id": payment_id, "error": str(exc)},
            ) from exc

        status, response = result.get("status"), result.get("response") or {}
        if status == 404:
            raise PaymentNotFound(
                f"Payment {payment_id} not found at Mercado Pago.",
                {"payment_id": payment_id, "response": response},
            )
        if status != 200 or "id" not in response:
            raise GatewayError(
                f"Mercado Pago failed to return payment {payment_id}.",
                {"payment_id": payment_id, "status": status, "response": response},
            )

        return RemotePaymentRecord.from_gateway(response)
