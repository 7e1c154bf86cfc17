"""Named queries for user accounts and refresh tokens."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import or_

from hrms.auth.models import RefreshToken, UserAccount
from hrms.common.repository import Repository


class UserAccountRepository(Repository[UserAccount]):
    model = UserAccount

    async def get_by_username(self, username: str) -> Optional[UserAccount]:
        return await self.first_or_default(UserAccount.username == username)

    async def username_or_email_taken(self, username: str, email: str) -> Optional[str]:
        """Return the name of the clashing field, or None."""
        existing = await self.first_or_default(
            or_(UserAccount.username == username, UserAccount.email == email),
        )
        if existing is None:
            return None
        return "username" if existing.username == username else "email"


class RefreshTokenRepository(Repository[RefreshToken]):
    model = RefreshToken

    async def get_by_token(self, token: str) -> Optional[RefreshToken]:
        return await self.first_or_default(RefreshToken.token == token)

    async def active_for_user(self, user_id: uuid.UUID) -> Sequence[RefreshToken]:
        return await self.find(
            RefreshToken.user_id == user_id,
            RefreshToken.revoked_at.is_(None),
            RefreshToken.expires_at > datetime.now(timezone.utc),
        )
