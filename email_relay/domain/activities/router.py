"""Activity router - History of the caller's logged actions"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from ...auth import CallerIdentity, get_current_caller
from ...config import ACTIVITY_CORS_HEADERS
from ...errors import EmailRelayError
from .repository import ActivityStoreError
from .schemas import ActivityResponse
from .service import ActivityRecorder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/activities", tags=["Activities"])


def get_activity_recorder(request: Request) -> ActivityRecorder:
    return request.app.state.activity_recorder


@router.options("")
async def activities_preflight():
    return Response(status_code=200, headers=ACTIVITY_CORS_HEADERS)


@router.get("", response_model=list[ActivityResponse])
async def list_activities(
    response: Response,
    type: Optional[str] = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    caller: CallerIdentity = Depends(get_current_caller),
    recorder: ActivityRecorder = Depends(get_activity_recorder),
):
    """Recent activity for the current user, newest first"""
    response.headers.update(ACTIVITY_CORS_HEADERS)
    try:
        return await recorder.recent(caller.id, caller.access_token, type, limit)
    except ActivityStoreError as e:
        logger.error(f"❌ Failed to load activities for {caller.id}: {e}")
        raise EmailRelayError(502, "Activity history temporarily unavailable") from e
