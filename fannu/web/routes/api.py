"""API Routes - JSON endpoints for VIP joins, booking requests and payment callbacks"""

import hashlib
import hmac
import json
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ...actions import (
    ActionResult,
    CONFLICT,
    DATABASE_ERROR,
    INVALID_STATE,
    NOT_FOUND,
    VALIDATION_ERROR,
    create_booking_request,
    handle_payment_webhook,
    join_vip,
)
from ...config import settings

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("security")

router = APIRouter(prefix="/api")

STATUS_BY_CODE = {
    VALIDATION_ERROR: 400,
    INVALID_STATE: 400,
    NOT_FOUND: 404,
    CONFLICT: 409,
    DATABASE_ERROR: 500,
}


def error_response(status_code: int, code: str, message: str, details: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message, "details": details or {}}},
    )


def _failure(result: ActionResult) -> JSONResponse:
    code = result.code or DATABASE_ERROR
    return error_response(STATUS_BY_CODE.get(code, 500), code, result.error, result.field_errors)


async def _json_body(request: Request):
    """Request body as a dict, or None when it is not a JSON object"""
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _invalid_body() -> JSONResponse:
    return error_response(400, VALIDATION_ERROR, "Request body must be a JSON object")


@router.post("/v1/vip")
async def api_join_vip(request: Request):
    body = await _json_body(request)
    if body is None:
        return _invalid_body()

    result = join_vip(body)
    if not result.success:
        return _failure(result)

    subscription = result.data
    if result.already_subscribed:
        return error_response(409, "ALREADY_SUBSCRIBED", "This number is already on the VIP list", {
            "confirmation_id": result.confirmation_id,
        })

    content = {
        "success": True,
        "confirmation_id": result.confirmation_id,
        "subscription": {
            "id": subscription.id,
            "creator_id": subscription.creator_id,
            "channel": subscription.channel.value,
            "status": subscription.status.value,
        },
    }
    if result.resubscribed:
        content["reactivated"] = True
        return JSONResponse(status_code=200, content=content)
    return JSONResponse(status_code=201, content=content)


@router.post("/v1/bookings")
async def api_create_booking(request: Request):
    body = await _json_body(request)
    if body is None:
        return _invalid_body()

    result = create_booking_request(body)
    if not result.success:
        return _failure(result)

    booking = result.data
    return JSONResponse(status_code=201, content={
        "id": booking.id,
        "reference_code": booking.reference_code,
        "status": booking.status.value,
        "track_url": f"{settings.base_url.rstrip('/')}/track/{booking.reference_code}",
    })


def sign_payload(raw_body: bytes, secret: str) -> str:
    """Hex HMAC-SHA512 of the raw request body"""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha512).hexdigest()


@router.post("/v1/payments/webhook")
async def api_payment_webhook(request: Request):
    if not settings.payment_webhook_secret:
        security_logger.error("PAYMENT_WEBHOOK_SECRET not configured; webhook refused")
        return error_response(503, "NOT_CONFIGURED", "Payment webhook is not configured")

    raw_body = await request.body()
    signature = request.headers.get(settings.payment_signature_header)
    if not signature:
        return error_response(400, VALIDATION_ERROR, "Missing payment signature")
    expected = sign_payload(raw_body, settings.payment_webhook_secret)
    if not hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8")):
        security_logger.warning("Invalid payment webhook signature from %s", request.client.host)
        return error_response(401, "INVALID_SIGNATURE", "Invalid payment signature")

    try:
        body = json.loads(raw_body)
    except ValueError:
        return _invalid_body()
    if not isinstance(body, dict):
        return _invalid_body()

    psp_ref = body.get("psp_ref")
    status = body.get("status")
    if not isinstance(psp_ref, str) or not isinstance(status, str):
        return error_response(400, VALIDATION_ERROR, "psp_ref and status are required")

    result = handle_payment_webhook(psp_ref, status.lower())
    if not result.success:
        return _failure(result)
    return {"received": True}


@router.get("/health")
async def health_check():
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}
