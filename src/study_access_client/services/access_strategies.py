# Файл: study_access_client/services/access_strategies.py
"""
Стратегии доступа окружения к исследованиям. Оркестратор обходит их по порядку,
каждая отвечает за свой вид ресурсов.
"""

from __future__ import annotations

import logging
from typing import List

from ..models import EnvironmentSc, RequestContext, StudyWithPermissions
from ..policy.s3_arn import parse_s3_arn, study_path_arn
from ..policy.study_policy import StudyPolicy
from .study_methods import is_open_data

logger = logging.getLogger(__name__)


def _with_resources(studies: List[StudyWithPermissions]) -> List[StudyWithPermissions]:
    return [study for study in studies if study.resources]


class StudyAccessStrategy:
    """Все три точки расширения по умолчанию ничего не делают."""

    async def provide_env_role_policy(
        self, ctx: RequestContext, env: EnvironmentSc, studies: List[StudyWithPermissions], policy: StudyPolicy
    ) -> None:
        return None

    async def allocate_env_study_resources(
        self, ctx: RequestContext, env: EnvironmentSc, studies: List[StudyWithPermissions]
    ) -> None:
        return None

    async def deallocate_env_study_resources(
        self, ctx: RequestContext, env: EnvironmentSc, studies: List[StudyWithPermissions]
    ) -> None:
        return None


class RolePolicyAccessStrategy(StudyAccessStrategy):
    """Доступ через inline-политику роли окружения."""

    def __init__(self, reconciler, resource_policies):
        self._reconciler = reconciler
        self._resource_policies = resource_policies

    async def provide_env_role_policy(self, ctx, env, studies, policy):
        studies = _with_resources(studies)
        if not studies:
            return
        kms_arn = await self._resource_policies.get_kms_key_arn()
        for study in studies:
            policy.add_study(
                resources=[r.arn for r in study.resources],
                permission=study.env_permission,
                kms_arn=None if is_open_data(study) else kms_arn,
            )

    async def allocate_env_study_resources(self, ctx, env, studies):
        for study in _with_resources(studies):
            if study.env_permission is None or not study.env_permission.any:
                continue
            await self._reconciler.allocate(env, [study_path_arn(r.arn) for r in study.resources], study.env_permission)

    async def deallocate_env_study_resources(self, ctx, env, studies):
        for study in _with_resources(studies):
            # admin исследования на момент запроса сохраняет чтение
            admin_floor = (
                not is_open_data(study)
                and env.created_by in study.permissions.admin_users
                and bool(study.env_permission and study.env_permission.read)
            )
            await self._reconciler.deallocate(
                env,
                [study_path_arn(r.arn) for r in study.resources],
                study.env_permission,
                admin_floor=admin_floor,
            )


class ResourcePolicyAccessStrategy(StudyAccessStrategy):
    """
    Principal роли окружения в bucket policy и key policy общего бакета исследований.
    Касается только исследований, лежащих в этом бакете; Open Data пропускается.
    """

    def __init__(self, resource_policies, environment_service):
        self._resource_policies = resource_policies
        self._environments = environment_service

    def _prefixes(self, studies: List[StudyWithPermissions]) -> List[str]:
        bucket = self._resource_policies.bucket_name
        prefixes: List[str] = []
        for study in _with_resources(studies):
            if is_open_data(study):
                continue
            for resource in study.resources:
                location = parse_s3_arn(resource.arn)
                if location.bucket == bucket and location.prefix not in prefixes:
                    prefixes.append(location.prefix)
        return prefixes

    async def allocate_env_study_resources(self, ctx, env, studies):
        role_arn = env.workspace_role_arn
        if role_arn:
            await self._resource_policies.add_role_arn(role_arn, self._prefixes(studies))

    async def deallocate_env_study_resources(self, ctx, env, studies):
        role_arn = env.workspace_role_arn
        prefixes = self._prefixes(studies)
        if not role_arn or not prefixes:
            return
        # KMS-ключ общий для бакета: principal снимается, только если других доступных исследований в бакете нет
        released = {study.id for study in studies}
        remaining = [s for s in await self._environments.get_studies(env) if s.id not in released]
        await self._resource_policies.remove_role_arn(role_arn, prefixes, keep_key_access=bool(self._prefixes(remaining)))
