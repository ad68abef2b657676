# Файл: study_access_client/repositories/pg_repositoryStudyPermission.py

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from study_access_client.db import StudyPermissionORM, UserStudyPermissionORM
from study_access_client.db.base import get_session
from study_access_client.db.uow import AsyncUnitOfWork
from study_access_client.exceptions import ConflictError, DatabaseError
from study_access_client.models.permissions import StudyPermissions, UserPermissions

logger = logging.getLogger(__name__)

_STUDY_SETS = ("admin_users", "readonly_users", "readwrite_users", "writeonly_users")
_USER_SETS = ("admin_access", "readonly_access", "readwrite_access", "writeonly_access")


def study_lock_key(study_id: str) -> str:
    return f"study_permissions|Study:{study_id}"


class StudyPermissionRepository:
    """
    Две логические таблицы: права по исследованию и зеркальные права по пользователю.
    Запись всегда идет в обе таблицы в одной транзакции.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def find_by_study(self, study_id: str) -> Optional[StudyPermissions]:
        async for session in get_session(self._session_factory):
            orm = await session.get(StudyPermissionORM, study_id)
            return orm.to_pydantic() if orm else None

    async def find_by_user(self, uid: str) -> Optional[UserPermissions]:
        async for session in get_session(self._session_factory):
            orm = await session.get(UserStudyPermissionORM, uid)
            return orm.to_pydantic() if orm else None

    async def find_users(self, uids: Iterable[str]) -> Dict[str, UserPermissions]:
        """Записи пользователей по uid; для пользователя без записи возвращается пустая."""
        uids = list(dict.fromkeys(uids))
        found: Dict[str, UserPermissions] = {}
        if uids:
            async for session in get_session(self._session_factory):
                result = await session.execute(
                    select(UserStudyPermissionORM).where(UserStudyPermissionORM.uid.in_(uids))
                )
                found = {orm.uid: orm.to_pydantic() for orm in result.scalars().all()}
        return {uid: found.get(uid) or UserPermissions(uid=uid) for uid in uids}

    async def create(self, study: StudyPermissions, users: List[UserPermissions]) -> StudyPermissions:
        """Первичная запись прав. Если запись для исследования уже есть - ConflictError."""
        try:
            async with AsyncUnitOfWork(self._session_factory) as uow:
                uow.session.add(StudyPermissionORM(
                    study_id=study.study_id,
                    created_by=study.created_by,
                    updated_by=study.updated_by,
                    **{name: list(getattr(study, name)) for name in _STUDY_SETS},
                ))
                await uow.session.flush()
                for user in users:
                    await uow.session.execute(self._upsert_user(user))
            logger.info(f"Created permissions record for study '{study.study_id}'")
            return study
        except IntegrityError as e:
            raise ConflictError(f"Permissions record for study '{study.study_id}' already exists") from e
        except SQLAlchemyError as e:
            logger.error(f"Failed to create permissions for study '{study.study_id}': {e}")
            raise DatabaseError(f"Failed to create study permissions: {e}") from e

    async def save(self, study: StudyPermissions, users: List[UserPermissions]) -> StudyPermissions:
        """
        Сохраняет запись исследования и все затронутые записи пользователей атомарно.
        Параллельные сохранения одного исследования сериализуются advisory-lock'ом.
        """
        try:
            async with AsyncUnitOfWork(self._session_factory) as uow:
                await uow.advisory_lock(study_lock_key(study.study_id))
                await uow.session.execute(self._upsert_study(study))
                for user in users:
                    await uow.session.execute(self._upsert_user(user))
            logger.info(f"Saved permissions for study '{study.study_id}' ({len(users)} user record(s))")
            return study
        except SQLAlchemyError as e:
            logger.error(f"Failed to save permissions for study '{study.study_id}': {e}")
            raise DatabaseError(f"Failed to save study permissions: {e}") from e

    @staticmethod
    def _upsert_study(study: StudyPermissions):
        values = {name: list(getattr(study, name)) for name in _STUDY_SETS}
        stmt = insert(StudyPermissionORM).values(
            study_id=study.study_id, created_by=study.created_by, updated_by=study.updated_by, **values
        )
        return stmt.on_conflict_do_update(
            index_elements=[StudyPermissionORM.study_id],
            set_={**values, "updated_by": study.updated_by},
        )

    @staticmethod
    def _upsert_user(user: UserPermissions):
        values = {name: list(getattr(user, name)) for name in _USER_SETS}
        stmt = insert(UserStudyPermissionORM).values(uid=user.uid, **values)
        return stmt.on_conflict_do_update(index_elements=[UserStudyPermissionORM.uid], set_=values)
