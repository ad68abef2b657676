# Файл: study_access_client/repositories/pg_repositoryEnvironment.py

import logging
from typing import List, Optional

from sqlalchemy import select, not_
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from study_access_client.db import EnvironmentScORM
from study_access_client.db.base import get_session
from study_access_client.exceptions import DatabaseError, NotFoundError
from study_access_client.models.environment import INACTIVE_STATUSES, EnvironmentSc

logger = logging.getLogger(__name__)


class EnvironmentRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_active_envs_for_user(self, uid: str) -> List[EnvironmentSc]:
        """Окружения пользователя, кроме TERMINATING / TERMINATED и любых *FAILED*."""
        stmt = (
            select(EnvironmentScORM)
            .where(
                EnvironmentScORM.created_by == uid,
                EnvironmentScORM.status.not_in(INACTIVE_STATUSES),
                not_(EnvironmentScORM.status.contains("FAILED")),
            )
            .order_by(EnvironmentScORM.created_at)
        )
        async for session in get_session(self._session_factory):
            result = await session.execute(stmt)
            return [orm.to_pydantic() for orm in result.scalars().all()]

    async def find(self, env_id: str) -> Optional[EnvironmentSc]:
        async for session in get_session(self._session_factory):
            orm = await session.get(EnvironmentScORM, env_id)
            return orm.to_pydantic() if orm else None

    async def must_find(self, env_id: str) -> EnvironmentSc:
        env = await self.find(env_id)
        if env is None:
            raise NotFoundError(f"environment with id \"{env_id}\" does not exist")
        return env

    async def save(self, env: EnvironmentSc) -> EnvironmentSc:
        values = dict(
            name=env.name,
            created_by=env.created_by,
            status=env.status,
            study_ids=list(env.study_ids),
            outputs=list(env.outputs),
            project_id=env.project_id,
            cfn_execution_role_arn=env.cfn_execution_role_arn,
            role_external_id=env.role_external_id,
        )
        stmt = (
            insert(EnvironmentScORM)
            .values(id=env.id, **values)
            .on_conflict_do_update(index_elements=[EnvironmentScORM.id], set_=values)
            .returning(EnvironmentScORM)
        )
        async for session in get_session(self._session_factory):
            try:
                result = await session.execute(stmt)
                orm = result.scalar_one()
                await session.commit()
                logger.info(f"Saved environment '{env.id}' (status {env.status})")
                return orm.to_pydantic()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Failed to save environment '{env.id}': {e}")
                raise DatabaseError(f"Failed to save environment: {e}") from e
