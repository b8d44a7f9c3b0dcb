import uuid

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.sql import func

from .database import Base


def generate_activity_id():
    return str(uuid.uuid4())


class Activity(Base):
    """Mirror of the hosted `activities` table for the database-backed store"""

    __tablename__ = "activities"

    id = Column(String(36), primary_key=True, default=generate_activity_id)
    type = Column(String(50), nullable=False, index=True)  # e.g. email_sent
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    entity_type = Column(String(50), nullable=True)
    entity_id = Column(String(255), nullable=True)
    user_id = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
