"""Activity repository - Stores for the activity (audit) log"""

import logging
from typing import Optional, Protocol

import httpx
from sqlalchemy.orm import sessionmaker

from ...auth import SupabaseAuthClient
from ...models import Activity
from .schemas import ActivityCreate, ActivityResponse

logger = logging.getLogger(__name__)


class ActivityStoreError(Exception):
    """Raised when an activity row cannot be written or read"""


class ActivityStore(Protocol):
    async def insert(self, activity: ActivityCreate, access_token: str) -> None: ...

    async def list_for_user(
        self,
        user_id: str,
        access_token: str,
        activity_type: Optional[str] = None,
        limit: int = 20,
    ) -> list[ActivityResponse]: ...


class SupabaseActivityStore:
    """Writes to the hosted `activities` table through PostgREST"""

    def __init__(self, auth_client: SupabaseAuthClient):
        self.auth_client = auth_client

    async def insert(self, activity: ActivityCreate, access_token: str) -> None:
        headers = self.auth_client.headers(access_token)
        headers["Prefer"] = "return=minimal"

        try:
            async with self.auth_client.client() as client:
                response = await client.post(
                    "/rest/v1/activities",
                    json=[activity.model_dump()],
                    headers=headers,
                )
        except httpx.HTTPError as e:
            raise ActivityStoreError(f"Activity insert failed: {e}") from e

        if response.status_code >= 300:
            raise ActivityStoreError(
                f"Activity insert rejected: HTTP {response.status_code} {response.text[:200]}"
            )

    async def list_for_user(
        self,
        user_id: str,
        access_token: str,
        activity_type: Optional[str] = None,
        limit: int = 20,
    ) -> list[ActivityResponse]:
        params = {
            "select": "*",
            "user_id": f"eq.{user_id}",
            "order": "created_at.desc",
            "limit": str(limit),
        }
        if activity_type:
            params["type"] = f"eq.{activity_type}"

        try:
            async with self.auth_client.client() as client:
                response = await client.get(
                    "/rest/v1/activities",
                    params=params,
                    headers=self.auth_client.headers(access_token),
                )
            response.raise_for_status()
            rows = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ActivityStoreError(f"Activity lookup failed: {e}") from e

        return [ActivityResponse(**row) for row in rows]


class SqlActivityStore:
    """Writes to a local SQL `activities` table (SQLAlchemy)"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def insert(self, activity: ActivityCreate, access_token: str) -> None:
        db = self.session_factory()
        try:
            db.add(Activity(**activity.model_dump()))
            db.commit()
        except Exception as e:
            db.rollback()
            raise ActivityStoreError(f"Activity insert failed: {e}") from e
        finally:
            db.close()

    async def list_for_user(
        self,
        user_id: str,
        access_token: str,
        activity_type: Optional[str] = None,
        limit: int = 20,
    ) -> list[ActivityResponse]:
        db = self.session_factory()
        try:
            query = db.query(Activity).filter(Activity.user_id == user_id)
            if activity_type:
                query = query.filter(Activity.type == activity_type)
            rows = query.order_by(Activity.created_at.desc()).limit(limit).all()
            return [
                ActivityResponse(
                    id=row.id,
                    type=row.type,
                    title=row.title,
                    description=row.description,
                    entity_type=row.entity_type,
                    entity_id=row.entity_id,
                    user_id=row.user_id,
                    created_at=row.created_at,
                )
                for row in rows
            ]
        finally:
            db.close()


class DisabledActivityStore:
    """Used when ACTIVITY_STORE=disabled"""

    async def insert(self, activity: ActivityCreate, access_token: str) -> None:
        logger.debug(f"Activity logging disabled, dropping '{activity.title}'")

    async def list_for_user(
        self,
        user_id: str,
        access_token: str,
        activity_type: Optional[str] = None,
        limit: int = 20,
    ) -> list[ActivityResponse]:
        return []
