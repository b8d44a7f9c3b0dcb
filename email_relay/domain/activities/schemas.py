"""Activity domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

EMAIL_SENT = "email_sent"


class ActivityCreate(BaseModel):
    """Activity row as written by the relay"""

    type: str
    title: str
    description: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    user_id: str


class ActivityResponse(BaseModel):
    id: str
    type: str
    title: str
    description: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    user_id: str
    created_at: Optional[datetime] = None


def email_sent_activity(
    subject: str, to: str, message_id: Optional[str], user_id: str
) -> ActivityCreate:
    """Build the audit row for a delivered email"""
    description = f"To: {to}"
    if message_id:
        description += f"\nMessage ID: {message_id}"

    return ActivityCreate(
        type=EMAIL_SENT,
        title=f"Email sent: {subject}",
        description=description,
        entity_type="email",
        entity_id=message_id,
        user_id=user_id,
    )
