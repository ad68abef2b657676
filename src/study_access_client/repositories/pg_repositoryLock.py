# Файл: study_access_client/repositories/pg_repositoryLock.py

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy import delete, func
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from study_access_client.config import PropagationConfig
from study_access_client.db import LockORM
from study_access_client.db.base import get_session
from study_access_client.exceptions import DatabaseError, LockError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LockRepository:
    """
    Распределенная write-блокировка на таблице locks.
    Захват - условный upsert: строка перезаписывается, только если прежняя блокировка истекла.
    Работает между процессами, поэтому in-process мьютексы здесь не подходят.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], config: PropagationConfig | None = None):
        self._session_factory = session_factory
        self._config = config or PropagationConfig()

    async def obtain_write_lock(self, lock_id: str, expires_in: Optional[int] = None) -> Optional[str]:
        """Одна попытка захвата. Возвращает lock_id при успехе и None, если блокировка занята."""
        ttl = expires_in or self._config.lock_expires_in
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)
        stmt = (
            insert(LockORM)
            .values(id=lock_id, expires_at=expires_at)
            .on_conflict_do_update(
                index_elements=[LockORM.id],
                set_={"expires_at": expires_at},
                where=LockORM.expires_at < func.now(),
            )
            .returning(LockORM.id)
        )
        async for session in get_session(self._session_factory):
            try:
                result = await session.execute(stmt)
                acquired = result.scalar_one_or_none()
                await session.commit()
                return acquired
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to obtain lock '{lock_id}': {e}") from e

    async def release_write_lock(self, lock_id: str) -> None:
        async for session in get_session(self._session_factory):
            try:
                await session.execute(delete(LockORM).where(LockORM.id == lock_id))
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise DatabaseError(f"Failed to release lock '{lock_id}': {e}") from e

    async def try_write_lock_and_run(
        self,
        lock_id: str,
        fn: Callable[[], Awaitable[T]],
        *,
        expires_in: Optional[int] = None,
        attempts: Optional[int] = None,
    ) -> T:
        """
        Захватывает блокировку (с ограниченным числом попыток), выполняет fn и
        освобождает блокировку в любом случае. Не удалось захватить - LockError.
        """
        attempts = attempts or self._config.lock_attempts
        acquired = None
        for attempt in range(attempts):
            acquired = await self.obtain_write_lock(lock_id, expires_in)
            if acquired:
                break
            if attempt < attempts - 1:
                await asyncio.sleep(self._config.lock_retry_delay)
        if not acquired:
            logger.warning(f"Could not obtain lock '{lock_id}' after {attempts} attempt(s)")
            raise LockError("Could not obtain a lock")

        try:
            return await fn()
        finally:
            await self.release_write_lock(lock_id)
