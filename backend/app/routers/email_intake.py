"""
Notification intake router.

Receives vendor notification emails forwarded by the mail trigger and turns
them into leads or bookings via IngestionHandler.

Environment variables
---------------------
TRUSTED_SENDER_DOMAIN     Vendor domain notifications must come from
                          (default: "convertlabs.io").
INTAKE_TIMEZONE           IANA timezone booking times are written in
                          (default: "UTC").

Endpoints:
  POST    /notifications   — parse one notification (JSON: subject, body, from, tenant_id)
  OPTIONS /notifications   — CORS pre-flight

Response contract:
  200 {"success": false, "message": ...}  — nothing to do for this email
                                           or an invalid payload
  200 {"success": true, "type": ...}      — lead or booking recorded
  500 {"success": false, "error": ...}    — record store failure; safe to retry
"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.db import supabase_admin
from app.models.inbound_email import InboundEmail
from app.services.ingestion import IngestionHandler
from app.services.persistence import PersistenceGateway, SupabaseGateway

logger = logging.getLogger(__name__)

router = APIRouter()

NOTIFICATIONS_PATH = "/notifications"

# The forwarding trigger calls from arbitrary origins
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def get_gateway() -> PersistenceGateway:
    """Record store dependency; overridden with an in-memory gateway in tests."""
    return SupabaseGateway(supabase_admin)


@router.options(NOTIFICATIONS_PATH)
async def notifications_preflight() -> Response:
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post(NOTIFICATIONS_PATH)
def receive_notification(
    email: InboundEmail,
    gateway: PersistenceGateway = Depends(get_gateway),
) -> JSONResponse:
    """
    Parse a forwarded vendor notification into a lead or a booking.

    Irrelevant emails are answered with 200 and success=false so the trigger
    does not retry them. Any unexpected failure is answered with 500.
    """
    try:
        result = IngestionHandler(gateway).handle(email)
    except Exception as exc:
        logger.error(f"Failed to process notification for tenant {email.tenant_id}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(exc)},
            headers=CORS_HEADERS,
        )

    return JSONResponse(content=result, headers=CORS_HEADERS)


async def notification_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Answer a malformed notification payload with a 200 no-op.

    Retrying the same payload can never succeed, so the trigger is told
    there is nothing to do. Other routes keep FastAPI's default 422.
    """
    if not request.url.path.endswith(NOTIFICATIONS_PATH):
        return await request_validation_exception_handler(request, exc)

    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'][1:]) or 'body'}: {error['msg']}"
        for error in exc.errors()
    )
    logger.warning(f"Rejected notification payload: {problems}")
    return JSONResponse(
        content={"success": False, "message": f"Invalid notification payload: {problems}"},
        headers=CORS_HEADERS,
    )
