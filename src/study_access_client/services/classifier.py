# Файл: study_access_client/services/classifier.py
"""
Кого затрагивает запрос на изменение прав.

Затронутые пользователи - все uid из usersToAdd и usersToRemove. Для распространения
на ресурсы важны только не-admin уровни: изменения admin сами по себе политик не меняют.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from ..models import PermissionLevel, UpdateRequest


def get_impacted_users(request: UpdateRequest) -> List[str]:
    """Уникальные uid в порядке первого появления: сначала добавляемые, потом удаляемые."""
    uids = [entry.uid for entry in request.users_to_add] + [entry.uid for entry in request.users_to_remove]
    return list(dict.fromkeys(uids))


@dataclass(frozen=True)
class PermissionDelta:
    allowed: Tuple[str, ...] = ()
    disallowed: Tuple[str, ...] = ()
    changed: Tuple[str, ...] = ()

    @property
    def impacted(self) -> Tuple[str, ...]:
        return self.allowed + self.disallowed + self.changed


def _non_admin_uids(entries) -> List[str]:
    return list(dict.fromkeys(e.uid for e in entries if e.permission_level != PermissionLevel.admin))


def classify(request: UpdateRequest) -> PermissionDelta:
    add_ids = _non_admin_uids(request.users_to_add)
    remove_ids = _non_admin_uids(request.users_to_remove)
    add_set, remove_set = set(add_ids), set(remove_ids)

    return PermissionDelta(
        allowed=tuple(uid for uid in add_ids if uid not in remove_set),
        disallowed=tuple(uid for uid in remove_ids if uid not in add_set),
        changed=tuple(uid for uid in add_ids if uid in remove_set),
    )
