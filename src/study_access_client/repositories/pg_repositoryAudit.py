# Файл: study_access_client/repositories/pg_repositoryAudit.py

import logging
from typing import Any, Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from study_access_client.db import AuditEventORM
from study_access_client.db.base import get_session
from study_access_client.exceptions import DatabaseError
from study_access_client.models.context import RequestContext

logger = logging.getLogger(__name__)


class AuditRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def write(self, ctx: RequestContext, action: str, body: Dict[str, Any]) -> None:
        event = AuditEventORM(action=action, actor=ctx.uid, body=body)
        async for session in get_session(self._session_factory):
            try:
                session.add(event)
                await session.commit()
                logger.info(f"Audit event '{action}' written for actor {ctx.uid}")
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to write audit event: {e}") from e

    async def write_and_forget(self, ctx: RequestContext, action: str, body: Dict[str, Any]) -> None:
        """Ошибка записи аудита не должна ронять основную операцию: только логируем."""
        try:
            await self.write(ctx, action, body)
        except DatabaseError as e:
            logger.error(f"Audit event '{action}' was not written: {e}")
