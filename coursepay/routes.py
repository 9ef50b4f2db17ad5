import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError
from starlette.concurrency import run_in_threadpool

from coursepay.auth import verify_token
from coursepay.config import settings
from coursepay.database import get_session_factory
from coursepay.errors import NotFoundError, ValidationError
from coursepay.ledger import PurchaseLedger
from coursepay.preferences import PreferenceBuilder
from coursepay.reconciler import Outcome, WebhookReconciler
from coursepay.schemas import PaymentNotification
from coursepay.webhook_auth import WebhookAuthenticator

logger = logging.getLogger(__name__)

router = APIRouter()

WEBHOOK_STATUS = {
    Outcome.FILTERED: 200,
    Outcome.IGNORED: 200,
    Outcome.RECORDED: 200,
    Outcome.ALREADY_RECORDED: 200,
    Outcome.METADATA_MISSING: 422,
    Outcome.PAYMENT_NOT_FOUND: 404,
    Outcome.FETCH_FAILED: 500,
    Outcome.STORAGE_FAILED: 500,
}


class PreferenceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    course_id: str = Field(..., alias="courseId", min_length=1)


def get_gateway(request: Request):
    return request.app.state.gateway


def get_ledger(session_factory=Depends(get_session_factory)):
    return PurchaseLedger(session_factory)


def get_preference_builder(gateway=Depends(get_gateway), session_factory=Depends(get_session_factory)):
    return PreferenceBuilder(gateway, session_factory, settings.app_url, settings.payment_currency)


def get_reconciler(gateway=Depends(get_gateway), ledger=Depends(get_ledger)):
    return WebhookReconciler(gateway, ledger)


def get_webhook_authenticator():
    return WebhookAuthenticator(settings.webhook_user_agent_marker)


@router.post("/payments/preference")
def create_preference(
    request: PreferenceRequest,
    purchaser_id: str = Depends(verify_token),
    builder: PreferenceBuilder = Depends(get_preference_builder),
):
    result = builder.create_purchase_intent(request.course_id, purchaser_id)

    if result.success:
        return {
            "preferenceId": result.preference_id,
            "redirectUrl": result.redirect_url,
            "message": "Payment preference created successfully.",
        }

    reason = result.reason
    if isinstance(reason, ValidationError):
        return JSONResponse(
            status_code=400,
            content={"message": reason.message, "errors": reason.to_dict()},
        )
    status_code = 404 if isinstance(reason, NotFoundError) else 500
    return JSONResponse(
        status_code=status_code,
        content={"message": reason.message, "errorDetails": reason.to_dict()},
    )


@router.post("/payments/webhook")
async def payment_webhook(
    request: Request,
    authenticator: WebhookAuthenticator = Depends(get_webhook_authenticator),
    reconciler: WebhookReconciler = Depends(get_reconciler),
):
    if not authenticator.is_authentic(request.headers):
        return JSONResponse(status_code=403, content={"message": "Unauthorized webhook request."})

    try:
        body = json.loads(await request.body())
    except ValueError:
        logger.error("Webhook body is not valid JSON")
        return JSONResponse(status_code=400, content={"message": "Invalid request body: Could not parse JSON."})
    if not isinstance(body, dict):
        return JSONResponse(status_code=400, content={"message": "Invalid request body: expected a JSON object."})

    try:
        notification = PaymentNotification.from_webhook(body, dict(request.query_params))
    except SchemaError as exc:
        logger.error("Webhook body has unexpected field types: %s", exc.errors())
        return JSONResponse(status_code=400, content={"message": "Invalid request body: unexpected field types."})
    result = await run_in_threadpool(reconciler.reconcile, notification)

    return JSONResponse(
        status_code=WEBHOOK_STATUS[result.outcome],
        content={"ok": result.accepted, "outcome": result.outcome.value},
    )


@router.get("/purchases")
def list_purchases(
    purchaser_id: str = Depends(verify_token),
    ledger: PurchaseLedger = Depends(get_ledger),
):
    return [
        {
            "courseId": purchase.course_id,
            "externalPaymentId": purchase.external_payment_id,
            "status": purchase.status,
            "amount": str(purchase.amount),
            "recordedAt": purchase.recorded_at.isoformat() if purchase.recorded_at else None,
        }
        for purchase in ledger.purchases_for(purchaser_id)
    ]


@router.get("/health")
def health():
    return {"status": "ok"}
