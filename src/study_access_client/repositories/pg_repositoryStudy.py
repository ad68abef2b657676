# Файл: study_access_client/repositories/pg_repositoryStudy.py

import logging
from typing import List, Optional

from sqlalchemy import select, update, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from study_access_client.db import StudyORM
from study_access_client.db.base import get_session
from study_access_client.exceptions import ConflictError, DatabaseError, NotFoundError
from study_access_client.models.study import StudyCreate, StudyInDB

logger = logging.getLogger(__name__)


class StudyRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def check_connection(self):
        async for session in get_session(self._session_factory):
            try:
                await session.execute(text("SELECT 1"))
            except SQLAlchemyError as e:
                raise DatabaseError(f"PostgreSQL is not reachable: {e}") from e

    async def find(self, study_id: str) -> Optional[StudyInDB]:
        async for session in get_session(self._session_factory):
            orm = await session.get(StudyORM, study_id)
            return orm.to_pydantic() if orm else None

    async def must_find(self, study_id: str) -> StudyInDB:
        study = await self.find(study_id)
        if study is None:
            raise NotFoundError(f"Study with id '{study_id}' does not exist")
        return study

    async def list_by_ids(self, study_ids: List[str]) -> List[StudyInDB]:
        """Исследования по списку id; порядок ответа совпадает с порядком study_ids, отсутствующие пропускаются."""
        if not study_ids:
            return []
        async for session in get_session(self._session_factory):
            result = await session.execute(select(StudyORM).where(StudyORM.id.in_(study_ids)))
            by_id = {orm.id: orm.to_pydantic() for orm in result.scalars().all()}
            return [by_id[sid] for sid in study_ids if sid in by_id]

    async def create(self, study: StudyCreate, created_by: str) -> StudyInDB:
        orm = StudyORM(
            id=study.id,
            name=study.name,
            category=study.category.value,
            access_type=study.access_type.value,
            project_id=study.project_id,
            resources=[r.model_dump(by_alias=True) for r in study.resources],
            rev=0,
            created_by=created_by,
            updated_by=created_by,
        )
        async for session in get_session(self._session_factory):
            try:
                session.add(orm)
                await session.commit()
                await session.refresh(orm)
                logger.info(f"Created study '{orm.id}' ({orm.category})")
                return orm.to_pydantic()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError(f"Study with id '{study.id}' already exists") from e
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Failed to create study '{study.id}': {e}")
                raise DatabaseError(f"Failed to create study: {e}") from e

    async def update(self, study: StudyInDB, updated_by: str) -> StudyInDB:
        """
        Обновляет исследование с оптимистической блокировкой по rev.
        Если rev в базе уже другой, кидает ConflictError.
        """
        stmt = (
            update(StudyORM)
            .where(StudyORM.id == study.id, StudyORM.rev == study.rev)
            .values(
                name=study.name,
                access_type=study.access_type.value,
                project_id=study.project_id,
                resources=[r.model_dump(by_alias=True) for r in study.resources],
                rev=StudyORM.rev + 1,
                updated_by=updated_by,
            )
            .returning(StudyORM)
        )
        async for session in get_session(self._session_factory):
            try:
                result = await session.execute(stmt)
                orm = result.scalar_one_or_none()
                if orm is None:
                    await session.rollback()
                    raise ConflictError(f"Study '{study.id}' was just updated before your request could be processed")
                await session.commit()
                logger.info(f"Updated study '{study.id}' to rev {orm.rev}")
                return orm.to_pydantic()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Failed to update study '{study.id}': {e}")
                raise DatabaseError(f"Failed to update study: {e}") from e
