# Файл: study_access_client/services/policy_reconciler.py
"""
Согласование inline-политики роли окружения для одной пары (окружение, исследование).

Каждый вызов заново читает текущую политику роли, вычисляет минимальные изменения
statement'ов и сохраняет результат. Внутри staged() изменения копятся в черновике
окружения до update_role_policy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple

from ..exceptions import ResourceNotReadyError
from ..models import EnvironmentSc, EnvPermission
from ..policy.document import (
    READ_ONLY_SID,
    READ_WRITE_SID,
    add_resource_to_statement,
    ensure_list_access,
    is_empty,
    remove_list_access,
    remove_resource_from_statement,
)

logger = logging.getLogger(__name__)

# Имя политики менялось от релиза к релизу шаблона продукта; берется первое найденное
POLICY_NAME_SUFFIXES = ("-s3-studydata-policy", "-s3-data-access-policy", "-s3-policy")


@dataclass
class RolePolicyRef:
    role_name: str
    policy_name: str
    document: Dict[str, Any]
    exists: bool


def policy_name_candidates(role_arn: str) -> list[str]:
    prefix = f"analysis-{role_arn.split('-')[1]}"
    return [f"{prefix}{suffix}" for suffix in POLICY_NAME_SUFFIXES]


def role_name_from_arn(role_arn: str) -> str:
    return role_arn.split("role/")[1]


def target_sid(permission: EnvPermission) -> Optional[str]:
    """read + write - read-write statement, чистое чтение - read-only; write без read statement'а не имеет."""
    if not permission.read:
        return None
    return READ_WRITE_SID if permission.write else READ_ONLY_SID


def _other_sid(sid: str) -> str:
    return READ_ONLY_SID if sid == READ_WRITE_SID else READ_WRITE_SID


def deallocate_resources(doc, path_arn: str, prior: Optional[EnvPermission]):
    """Убирает ARN из statement'а прежнего уровня и префикс из list-доступа."""
    sid = target_sid(prior) if prior else None
    if sid:
        doc = remove_resource_from_statement(doc, sid, path_arn)
    return remove_list_access(doc, path_arn)


def allocate_resources(doc, path_arn: str, target: EnvPermission):
    """
    Добавляет ARN в statement нового уровня и гарантирует list-доступ.
    Для одного исследования ARN может быть только в одном из read / read-write statement'ов.
    """
    if not target.any:
        return doc
    sid = target_sid(target)
    if sid is None:
        # write без read: только list-доступ
        doc = remove_resource_from_statement(doc, READ_ONLY_SID, path_arn)
        doc = remove_resource_from_statement(doc, READ_WRITE_SID, path_arn)
    else:
        doc = add_resource_to_statement(doc, sid, path_arn)
        doc = remove_resource_from_statement(doc, _other_sid(sid), path_arn)
    return ensure_list_access(doc, path_arn)


def apply_admin_floor(doc, path_arn: str):
    """Admin исследования никогда не опускается ниже чтения."""
    doc = add_resource_to_statement(doc, READ_ONLY_SID, path_arn)
    return ensure_list_access(doc, path_arn)


class RolePolicyStage:
    """
    Черновик политики роли на время обработки одного окружения.
    Внутри блока allocate / deallocate меняют только черновик, в IAM пишет один update_role_policy.
    """

    def __init__(self, reconciler: "IamPolicyReconciler", env_id: str):
        self._reconciler = reconciler
        self._env_id = env_id

    async def __aenter__(self):
        self._reconciler._drafts[self._env_id] = None
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self._reconciler._drafts.pop(self._env_id, None)


class IamPolicyReconciler:
    def __init__(self, iam_repo):
        self._iam = iam_repo
        # env_id -> (RolePolicyRef, черновик) для окружений внутри staged()
        self._drafts: Dict[str, Optional[Tuple[RolePolicyRef, Dict[str, Any]]]] = {}

    def staged(self, env: EnvironmentSc) -> RolePolicyStage:
        return RolePolicyStage(self, env.id)

    async def locate(self, env: EnvironmentSc) -> RolePolicyRef:
        role_arn = env.workspace_role_arn
        if not role_arn:
            raise ResourceNotReadyError(
                "Workspace IAM Role is not ready yet. It is possible that the environment is still in pending state"
            )
        role_name = role_name_from_arn(role_arn)
        candidates = policy_name_candidates(role_arn)
        for policy_name in candidates:
            document = await self._iam.get_role_policy(env, role_name, policy_name)
            if document is not None:
                return RolePolicyRef(role_name, policy_name, document, exists=True)
        return RolePolicyRef(role_name, candidates[0], {}, exists=False)

    async def deallocate(self, env: EnvironmentSc, path_arns: Iterable[str], prior: Optional[EnvPermission], *, admin_floor: bool = False) -> None:
        ref, doc = await self._load(env)
        for arn in path_arns:
            doc = deallocate_resources(doc, arn, prior)
            if admin_floor:
                doc = apply_admin_floor(doc, arn)
        await self._stage_or_persist(env, ref, doc)

    async def allocate(self, env: EnvironmentSc, path_arns: Iterable[str], target: EnvPermission) -> None:
        ref, doc = await self._load(env)
        for arn in path_arns:
            doc = allocate_resources(doc, arn, target)
        await self._stage_or_persist(env, ref, doc)

    async def update_role_policy(self, env: EnvironmentSc, document: Dict[str, Any]) -> None:
        """Полная замена политики. Пустой документ удаляет существующую политику вместо записи {}."""
        draft = self._drafts.get(env.id)
        if draft is None:
            ref = await self.locate(env)
        else:
            ref, staged_doc = draft
            if staged_doc != document:
                logger.debug(f"Regenerated role policy of environment {env.id} differs from the incremental one")
        await self._persist(env, ref, document)

    async def _load(self, env: EnvironmentSc) -> Tuple[RolePolicyRef, Dict[str, Any]]:
        draft = self._drafts.get(env.id)
        if draft is not None:
            return draft
        ref = await self.locate(env)
        return ref, ref.document

    async def _stage_or_persist(self, env: EnvironmentSc, ref: RolePolicyRef, document: Dict[str, Any]) -> None:
        if env.id in self._drafts:
            self._drafts[env.id] = (ref, document)
            return
        await self._persist(env, ref, document)

    async def _persist(self, env: EnvironmentSc, ref: RolePolicyRef, document: Dict[str, Any]) -> None:
        if is_empty(document):
            if ref.exists:
                await self._iam.delete_role_policy(env, ref.role_name, ref.policy_name)
            else:
                logger.info(f"Nothing to write for environment {env.id}: role policy is empty")
            return
        if ref.exists and document == ref.document:
            return
        await self._iam.put_role_policy(env, ref.role_name, ref.policy_name, document)
