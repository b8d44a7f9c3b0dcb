"""Activity service - Best-effort audit logging"""

import logging
from dataclasses import dataclass
from typing import Optional

from .repository import ActivityStore
from .schemas import ActivityResponse, email_sent_activity

logger = logging.getLogger(__name__)


@dataclass
class AuditOutcome:
    """
    Result of a fire-and-forget audit write.

    The relay logs a failed outcome and moves on; it is never turned into an
    error for the caller because the email has already been delivered.
    """

    recorded: bool
    error: Optional[str] = None


class ActivityRecorder:
    def __init__(self, store: ActivityStore):
        self.store = store

    async def record_email_sent(
        self,
        subject: str,
        to: str,
        message_id: Optional[str],
        user_id: str,
        access_token: str,
    ) -> AuditOutcome:
        try:
            activity = email_sent_activity(subject, to, message_id, user_id)
            await self.store.insert(activity, access_token)
        except Exception as e:
            logger.error(f"Failed to log activity (non-critical): {e}")
            return AuditOutcome(recorded=False, error=str(e))

        return AuditOutcome(recorded=True)

    async def recent(
        self,
        user_id: str,
        access_token: str,
        activity_type: Optional[str] = None,
        limit: int = 20,
    ) -> list[ActivityResponse]:
        return await self.store.list_for_user(user_id, access_token, activity_type, limit)
