# Файл: study_access_client/services/permission_store.py

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from ..exceptions import ForbiddenError, NotFoundError, PolicyViolationError, ValidationError
from ..models import (
    NON_ADMIN_LEVELS,
    WILDCARD_UID,
    AccessType,
    PermissionLevel,
    RequestContext,
    StudyCategory,
    StudyInDB,
    StudyPermissions,
    UpdateRequest,
    UserEntry,
    UserPermissions,
)
from ..repositories.pg_repositoryStudyPermission import study_lock_key

logger = logging.getLogger(__name__)

# Какие уровни можно выдавать при данном accessType исследования
_GRANTABLE = {
    AccessType.readonly: {PermissionLevel.readonly},
    AccessType.writeonly: {PermissionLevel.writeonly},
    AccessType.readwrite: set(NON_ADMIN_LEVELS),
}
_IMMUTABLE_CATEGORIES = (StudyCategory.open_data, StudyCategory.my_studies)

MUTATING_ACTIONS = ("POST", "PUT", "PATCH", "DELETE")
WRITE_USER_ACTIONS = ("UPLOAD",)
NON_MUTATING_ACTIONS = ("GET",)


def _union(current: List[str], added: List[str]) -> List[str]:
    return list(dict.fromkeys(list(current) + list(added)))


def _pull(current: List[str], removed: List[str]) -> List[str]:
    removed = set(removed)
    return [item for item in current if item not in removed]


def resolve_wildcard(entity: StudyPermissions, request: UpdateRequest) -> UpdateRequest:
    """
    {uid: "*", permissionLevel: admin} в usersToRemove заменяется на по одной записи
    для каждого текущего admin. Список usersToRemove запроса меняется на месте:
    вызывающий код (аудит, распространение) должен видеть конкретные uid.
    """
    resolved: List[UserEntry] = []
    for entry in request.users_to_remove:
        if entry.uid == WILDCARD_UID and entry.permission_level == PermissionLevel.admin:
            resolved.extend(UserEntry(uid=uid, permission_level=PermissionLevel.admin) for uid in entity.admin_users)
        else:
            resolved.append(entry)
    request.users_to_remove[:] = resolved
    return request


def apply_update_request(entity: StudyPermissions, request: UpdateRequest) -> StudyPermissions:
    """Объединение с добавляемыми и вычитание удаляемых для каждого уровня. Идемпотентно."""
    resolve_wildcard(entity, request)
    result = entity
    for level in PermissionLevel:
        added = [e.uid for e in request.users_to_add if e.permission_level == level]
        removed = [e.uid for e in request.users_to_remove if e.permission_level == level]
        result = result.with_users(level, _pull(_union(result.users(level), added), removed))
    return result


def apply_to_user_permissions(request: UpdateRequest, user: UserPermissions, study_id: str) -> UserPermissions:
    """Зеркалит запрос в записи одного пользователя, в том же порядке, что и для исследования."""
    result = user
    for level in PermissionLevel:
        added = any(e.uid == user.uid and e.permission_level == level for e in request.users_to_add)
        removed = any(e.uid == user.uid and e.permission_level == level for e in request.users_to_remove)
        if added:
            result = result.with_access(level, _union(result.access(level), [study_id]))
        if removed:
            # удаляются все вхождения, в том числе дубли из старых записей
            result = result.with_access(level, _pull(result.access(level), [study_id]))
    return result


def validate_single_level(entity: StudyPermissions) -> None:
    """У пользователя может быть не больше одного не-admin уровня."""
    levels: Dict[str, List[str]] = {}
    for level in NON_ADMIN_LEVELS:
        for uid in entity.users(level):
            levels.setdefault(uid, []).append(level.value)
    errors = [
        f"User {uid} cannot have multiple permissions: {','.join(user_levels)}"
        for uid, user_levels in levels.items()
        if len(user_levels) > 1
    ]
    if errors:
        raise ValidationError("\n".join(errors))


def validate_request(study: StudyInDB, request: UpdateRequest) -> None:
    if study.category in _IMMUTABLE_CATEGORIES:
        raise PolicyViolationError(f'Permissions cannot be set for studies in the "{study.category.value}" category')

    for entry in request.users_to_add + request.users_to_remove:
        if entry.uid == WILDCARD_UID and entry.permission_level != PermissionLevel.admin:
            raise ValidationError("Wildcard uid can only be used to remove admin access")

    grantable = _GRANTABLE[study.access_type]
    for entry in request.users_to_add:
        if entry.uid == WILDCARD_UID:
            raise ValidationError("Wildcard uid can only be used to remove admin access")
        if entry.permission_level != PermissionLevel.admin and entry.permission_level not in grantable:
            raise PolicyViolationError(
                f'Permission level "{entry.permission_level.value}" cannot be granted for a study '
                f'with access type "{study.access_type.value}"'
            )


def can_manage(ctx: RequestContext, entity: StudyPermissions) -> bool:
    return ctx.is_admin or ctx.is_system or ctx.uid in entity.admin_users


class StudyPermissionStore:
    """
    Каноническая запись прав исследования и зеркальные записи пользователей.
    Чтение-изменение-запись выполняется под блокировкой записи исследования.
    """

    def __init__(self, repo, lock_service):
        self._repo = repo
        self._locks = lock_service

    async def find(self, study_id: str) -> Optional[StudyPermissions]:
        return await self._repo.find_by_study(study_id)

    async def must_find(self, study_id: str) -> StudyPermissions:
        entity = await self._repo.find_by_study(study_id)
        if entity is None:
            raise NotFoundError(f'Permission record for study with id "{study_id}" does not exist')
        return entity

    async def find_by_user(self, uid: str) -> Optional[UserPermissions]:
        return await self._repo.find_by_user(uid)

    async def create(self, ctx: RequestContext, study_id: str) -> StudyPermissions:
        """Создатель становится единственным admin."""
        by = ctx.uid
        entity = StudyPermissions(study_id=study_id, admin_users=[by], created_by=by, updated_by=by)
        user = await self._repo.find_by_user(by) or UserPermissions(uid=by)
        user = user.with_access(PermissionLevel.admin, _union(user.admin_access, [study_id]))
        return await self._repo.create(entity, [user])

    async def update(self, ctx: RequestContext, study: StudyInDB, request: UpdateRequest) -> StudyPermissions:
        validate_request(study, request)

        async def _update() -> StudyPermissions:
            current = await self.must_find(study.id)
            if not can_manage(ctx, current):
                raise ForbiddenError(f"User {ctx.uid} is not allowed to change permissions of study {study.id}")

            updated = apply_update_request(current, request).model_copy(update={"updated_by": ctx.uid})
            validate_single_level(updated)
            if not updated.admin_users:
                raise ValidationError("At least one Admin must be assigned to the study")

            impacted = [e.uid for e in request.users_to_add + request.users_to_remove]
            users = await self._repo.find_users(impacted)
            mirrored = [apply_to_user_permissions(request, user, study.id) for user in users.values()]
            saved = await self._repo.save(updated, mirrored)
            logger.info(
                f"Study {study.id} permissions updated by {ctx.uid}: "
                f"+{len(request.users_to_add)} / -{len(request.users_to_remove)} entries"
            )
            return saved

        return await self._locks.try_write_lock_and_run(study_lock_key(study.id), _update)

    async def verify_requestor_access(self, ctx: RequestContext, study_id: str, action: str) -> None:
        """
        GET - любой доступ; POST/PUT/PATCH/DELETE - только admin исследования;
        UPLOAD - admin или запись. Нет никакого доступа - NotFoundError (исследование "не существует").
        """
        action = action.upper()
        if action not in MUTATING_ACTIONS + WRITE_USER_ACTIONS + NON_MUTATING_ACTIONS:
            raise ValueError(f"Invalid action passed to verify_requestor_access(): {action}")

        not_found = NotFoundError(f'Study with id "{study_id}" does not exist')
        permissions = await self._repo.find_by_user(ctx.uid)
        if permissions is None or not permissions.has_any_access(study_id):
            raise not_found

        is_admin = study_id in permissions.admin_access
        can_write = study_id in permissions.readwrite_access or study_id in permissions.writeonly_access
        if action in MUTATING_ACTIONS and not is_admin:
            raise ForbiddenError(f"User {ctx.uid} is not allowed to perform {action} on study {study_id}")
        if action in WRITE_USER_ACTIONS and not (is_admin or can_write):
            raise ForbiddenError(f"User {ctx.uid} is not allowed to perform {action} on study {study_id}")
