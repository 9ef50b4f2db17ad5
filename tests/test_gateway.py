from decimal import Decimal

import pytest
import requests

from coursepay.errors import GatewayError, PaymentNotFound
from coursepay.gateway import MercadoPagoGateway
from coursepay.schemas import PaymentIntent, PaymentMetadata, ReturnUrls


def make_intent():
    return PaymentIntent(
        course_id="c1",
        purchaser_id="u1",
        title="Intro to Python",
        amount=Decimal("49.99"),
        currency="ARS",
        payer_email="learner@example.com",
        return_urls=ReturnUrls(success="https://s", failure="https://f", pending="https://p"),
        notification_url="https://hook",
        metadata=PaymentMetadata(purchaser_id="u1", course_id="c1"),
    )


def test_create_payment_intent(mocker):
    sdk = mocker.Mock()
    sdk.preference.return_value.create.return_value = {
        "status": 201,
        "response": {"id": "pref_1", "init_point": "https://pay/pref_1",
                     "sandbox_init_point": "https://sandbox/pref_1"},
    }

    created = MercadoPagoGateway(sdk).create_payment_intent(make_intent())

    assert created.id == "pref_1"
    assert created.redirect_url == "https://pay/pref_1"
    body = sdk.preference.return_value.create.call_args.args[0]
    assert body["auto_return"] == "approved"
    assert body["back_urls"] == {"success": "https://s", "failure": "https://f", "pending": "https://p"}


def test_sandbox_uses_sandbox_checkout(mocker):
    sdk = mocker.Mock()
    sdk.preference.return_value.create.return_value = {
        "status": 201,
        "response": {"id": "pref_1", "init_point": "https://pay/pref_1",
                     "sandbox_init_point": "https://sandbox/pref_1"},
    }

    created = MercadoPagoGateway(sdk, sandbox=True).create_payment_intent(make_intent())

    assert created.redirect_url == "https://sandbox/pref_1"


def test_create_payment_intent_transport_error(mocker):
    sdk = mocker.Mock()
    sdk.preference.return_value.create.side_effect = requests.ConnectionError("connection refused")

    with pytest.raises(GatewayError) as exc_info:
        MercadoPagoGateway(sdk).create_payment_intent(make_intent())

    assert "connection refused" in exc_info.value.details["error"]


def test_fetch_payment_by_id(mocker):
    sdk = mocker.Mock()
    sdk.payment.return_value.get.return_value = {
        "status": 200,
        "response": {
            "id": 777,
            "status": "approved",
            "transaction_amount": 49.99,
            "currency_id": "ARS",
            "metadata": {"purchaser_id": "u1", "course_id": "c1"},
        },
    }

    payment = MercadoPagoGateway(sdk).fetch_payment_by_id("777")

    assert payment.external_payment_id == "777"
    assert payment.is_approved
    assert payment.amount == Decimal("49.99")
    assert payment.metadata.purchaser_id == "u1"
    assert payment.metadata.course_id == "c1"


@pytest.mark.parametrize("payment_id", ["2", "3", "5", "8"])
def test_fetch_never_fakes_status(mocker, payment_id):
    sdk = mocker.Mock()
    sdk.payment.return_value.get.return_value = {
        "status": 200,
        "response": {"id": int(payment_id), "status": "rejected", "transaction_amount": 1},
    }

    payment = MercadoPagoGateway(sdk).fetch_payment_by_id(payment_id)

    sdk.payment.return_value.get.assert_called_once_with(payment_id)
    assert payment.status == "rejected"


def test_fetch_not_found(mocker):
    sdk = mocker.Mock()
    sdk.payment.return_value.get.return_value = {"status": 404, "response": {"message": "Payment not found"}}

    with pytest.raises(PaymentNotFound):
        MercadoPagoGateway(sdk).fetch_payment_by_id("999")


def test_fetch_server_error(mocker):
    sdk = mocker.Mock()
    sdk.payment.return_value.get.return_value = {"status": 503, "response": {}}

    with pytest.raises(GatewayError) as exc_info:
        MercadoPagoGateway(sdk).fetch_payment_by_id("777")

    assert exc_info.value.details["status"] == 503


def test_fetch_timeout(mocker):
    sdk = mocker.Mock()
    sdk.payment.return_value.get.side_effect = requests.Timeout("read timed out")

    with pytest.raises(GatewayError):
        MercadoPagoGateway(sdk).fetch_payment_by_id("777")
