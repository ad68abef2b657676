# Файл: study_access_client/services/study_methods.py
"""
Эффективный доступ пользователя к исследованию с учетом категории и "потолка" accessType.

Правила:
  * Open Data читается всеми и никогда не дает ни admin, ни записи.
  * admin неявно получает чтение (при потолке writeonly - запись вместо чтения),
    а в "My Studies" еще и запись (кроме потолка readonly).
  * потолок readonly понижает readwrite до readonly и обнуляет writeonly,
    потолок writeonly понижает readwrite до writeonly и обнуляет readonly.
"""

from __future__ import annotations

from typing import Set, Tuple

from ..models import AccessLevels, AccessType, StudyCategory, StudyWithPermissions


def is_open_data(study) -> bool:
    return study.category == StudyCategory.open_data


def _narrow(ceiling: AccessType, readonly: Set[str], readwrite: Set[str], writeonly: Set[str]) -> Tuple[Set[str], Set[str], Set[str]]:
    if ceiling == AccessType.readonly:
        return readonly | readwrite, set(), set()
    if ceiling == AccessType.writeonly:
        return set(), set(), writeonly | readwrite
    return readonly, readwrite, writeonly


def has_access(study: StudyWithPermissions, uid: str) -> bool:
    if is_open_data(study):
        return True
    permissions = study.permissions
    if uid in permissions.admin_users:
        return True
    readonly, readwrite, writeonly = _narrow(
        study.access_type,
        set(permissions.readonly_users),
        set(permissions.readwrite_users),
        set(permissions.writeonly_users),
    )
    return uid in readonly or uid in readwrite or uid in writeonly


def access_levels(study: StudyWithPermissions, uid: str) -> AccessLevels:
    if is_open_data(study):
        return AccessLevels(admin=False, read=True, write=False)

    permissions = study.permissions
    ceiling = study.access_type
    readonly = set(permissions.readonly_users)
    readwrite = set(permissions.readwrite_users)
    writeonly = set(permissions.writeonly_users)

    admin = uid in permissions.admin_users
    if admin:
        if ceiling == AccessType.writeonly:
            writeonly.add(uid)
        else:
            readonly.add(uid)
        if study.category == StudyCategory.my_studies and ceiling != AccessType.readonly:
            readwrite.add(uid)

    readonly, readwrite, writeonly = _narrow(ceiling, readonly, readwrite, writeonly)
    return AccessLevels(
        admin=admin,
        read=uid in readonly or uid in readwrite,
        write=uid in writeonly or uid in readwrite,
    )
