from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.domain.enums import TokenStatus
from docvault.infrastructure.persistence.models.download_token import DownloadToken
from docvault.infrastructure.persistence.repositories.base import BaseRepository


class DownloadTokenRepository(BaseRepository[DownloadToken]):
    """
    Repository for single-use download tokens.

    State changes are conditional UPDATE statements so that concurrent
    validators race on the database row, not on objects in memory.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(db, DownloadToken)

    async def get_by_token(self, token: str) -> DownloadToken | None:
        result = await self.db.execute(
            select(DownloadToken)
            .where(DownloadToken.token == token)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def consume(self, token: str, now: datetime) -> bool:
        """
        Atomically mark an issued, unexpired token as consumed.

        Returns True for exactly one caller per token.
        """
        result = await self.db.execute(
            update(DownloadToken)
            .where(
                DownloadToken.token == token,
                DownloadToken.status == TokenStatus.ISSUED,
                DownloadToken.expires_at > now,
            )
            .values(status=TokenStatus.CONSUMED, used_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def mark_expired(self, token: str) -> bool:
        """ISSUED -> EXPIRED; no-op for tokens already in a final state"""
        result = await self.db.execute(
            update(DownloadToken)
            .where(DownloadToken.token == token, DownloadToken.status == TokenStatus.ISSUED)
            .values(status=TokenStatus.EXPIRED)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def delete_expired(self, now: datetime) -> int:
        """Delete every token whose expiry is before now, whatever its status"""
        result = await self.db.execute(
            delete(DownloadToken)
            .where(DownloadToken.expires_at < now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
