"""Email router - The send-email relay endpoints"""

import logging
from typing import TypeVar

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from ...auth import CallerIdentity, get_current_caller
from ...config import CORS_HEADERS
from ...errors import EmailRelayError, bad_request
from .schemas import (
    BulkEmailRequest,
    EmailPreviewRequest,
    EmailSendRequest,
)
from .service import EmailRelayService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/send-email", tags=["Email"])

ModelT = TypeVar("ModelT", bound=BaseModel)


def get_relay_service(request: Request) -> EmailRelayService:
    """Dependency injection for EmailRelayService"""
    state = request.app.state
    return EmailRelayService(
        settings=state.settings,
        auth_client=state.auth_client,
        provider=state.email_provider,
        recorder=state.activity_recorder,
        rate_limiter=state.rate_limiter,
    )


async def parse_body(request: Request, model: type[ModelT]) -> ModelT:
    """
    Parse the JSON body into `model`.

    Done inside the handler rather than as a FastAPI body parameter so that
    authentication always runs before the payload is looked at.
    """
    try:
        payload = await request.json()
    except ValueError as e:
        raise bad_request("Request body must be valid JSON") from e

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        errors = [
            {"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors(include_url=False)
        ]
        raise bad_request("Invalid request body", details=errors) from e


def relay_response(content: dict, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=CORS_HEADERS)


@router.options("")
@router.options("/bulk")
@router.options("/preview")
async def preflight():
    """Answer pre-flight probes before any authentication"""
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("")
async def send_email(
    request: Request,
    caller: CallerIdentity = Depends(get_current_caller),
    service: EmailRelayService = Depends(get_relay_service),
):
    """Relay a single email on behalf of the authenticated caller"""
    data = await parse_body(request, EmailSendRequest)
    try:
        result = await service.send(data, caller)
    except EmailRelayError:
        raise
    except Exception as e:
        logger.exception(f"❌ Error in send-email relay: {e}")
        raise EmailRelayError(500, str(e) or "Unknown error occurred") from e

    return relay_response(result.model_dump(exclude_none=True))


@router.api_route("", methods=["GET", "HEAD", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def unsupported_method(request: Request):
    logger.warning(f"⚠️ Unsupported method {request.method} on /send-email")
    raise EmailRelayError(405, "Method not allowed", headers={"Allow": "POST, OPTIONS"})


@router.post("/bulk")
async def send_bulk_emails(
    request: Request,
    caller: CallerIdentity = Depends(get_current_caller),
    service: EmailRelayService = Depends(get_relay_service),
):
    """Send several emails sequentially; per-item failures are reported, not raised"""
    data = await parse_body(request, BulkEmailRequest)
    try:
        result = await service.send_bulk(data.emails, caller)
    except EmailRelayError:
        raise
    except Exception as e:
        logger.exception(f"❌ Error in bulk send-email relay: {e}")
        raise EmailRelayError(500, str(e) or "Unknown error occurred") from e

    return relay_response(result.model_dump(mode="json", by_alias=True, exclude_none=True))


@router.post("/preview")
async def preview_email(
    request: Request,
    caller: CallerIdentity = Depends(get_current_caller),
    service: EmailRelayService = Depends(get_relay_service),
):
    """Render the HTML a body would be sent as, without sending anything"""
    data = await parse_body(request, EmailPreviewRequest)
    return relay_response(service.preview(data.body).model_dump())
