"""User service: the token store behind Google logins."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import StoreError
from ..models.user import User

logger = logging.getLogger(__name__)


@dataclass
class LoginProfile:
    """Identity and tokens returned by the provider for one login."""
    external_id: str
    name: Optional[str]
    email: Optional[str]
    access_token: str
    refresh_token: Optional[str] = None


class UserService:
    """Service for reading and upserting users."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        """Get a user by ID."""
        try:
            result = await self.db.execute(
                select(User).where(User.id == user_id)
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to load user {user_id}: {e}")
            raise StoreError() from e
        return result.scalar_one_or_none()

    async def get_user_by_external_id(self, external_id: str) -> Optional[User]:
        """Get a user by provider subject id."""
        try:
            result = await self.db.execute(
                select(User).where(User.external_id == external_id)
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to load user by external id: {e}")
            raise StoreError() from e
        return result.scalar_one_or_none()

    async def count_users(self) -> int:
        """Count stored users."""
        result = await self.db.execute(select(func.count()).select_from(User))
        return result.scalar_one()

    def _build_upsert(self, profile: LoginProfile):
        """Build a single insert-or-update statement keyed on external_id.

        ``refresh_token`` keeps the stored value when the provider omits it.
        """
        values = {
            "external_id": profile.external_id,
            "name": profile.name,
            "email": profile.email,
            "access_token": profile.access_token,
            "refresh_token": profile.refresh_token,
            "created_at": datetime.utcnow(),
            "updated_at": datetime.utcnow(),
        }
        table = User.__table__
        dialect = self.db.get_bind().dialect.name

        if dialect == "mysql":
            stmt = mysql.insert(table).values(**values)
            incoming = stmt.inserted
            return stmt.on_duplicate_key_update(
                name=incoming.name,
                email=incoming.email,
                access_token=incoming.access_token,
                refresh_token=func.coalesce(incoming.refresh_token, table.c.refresh_token),
                updated_at=incoming.updated_at,
            )

        if dialect == "postgresql":
            stmt = postgresql.insert(table).values(**values)
        elif dialect == "sqlite":
            stmt = sqlite.insert(table).values(**values)
        else:
            raise StoreError(f"Unsupported database dialect: {dialect}")

        incoming = stmt.excluded
        return stmt.on_conflict_do_update(
            index_elements=[table.c.external_id],
            set_={
                "name": incoming.name,
                "email": incoming.email,
                "access_token": incoming.access_token,
                "refresh_token": func.coalesce(incoming.refresh_token, table.c.refresh_token),
                "updated_at": incoming.updated_at,
            },
        )

    async def upsert_from_login(self, profile: LoginProfile) -> User:
        """Create the user on first login, refresh profile and tokens after.

        Runs as one statement so concurrent logins by the same identity
        cannot produce duplicate rows.
        """
        try:
            await self.db.execute(self._build_upsert(profile))
            await self.db.flush()
            # The upsert bypasses the identity map; overwrite this row only
            result = await self.db.execute(
                select(User)
                .where(User.external_id == profile.external_id)
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to upsert user: {e}")
            raise StoreError() from e

        user = result.scalar_one_or_none()
        if user is None:
            raise StoreError()
        return user
