# Файл: study_access_client/services/orchestrator.py

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from ..config import PropagationConfig
from ..exceptions import CapacityExceededError, PartialPropagationError
from ..models import (
    EnvironmentSc,
    EnvPermission,
    RequestContext,
    StudyWithPermissions,
    UpdateRequest,
    system_request_context,
)
from ..policy.study_policy import StudyPolicy
from ..utils.batching import process_in_batches
from .access_strategies import StudyAccessStrategy
from .classifier import classify, get_impacted_users
from .study_methods import access_levels, has_access

logger = logging.getLogger(__name__)

AUDIT_ACTION = "update-study-permissions"


def study_lock_id(study_id: str) -> str:
    return f"study-{study_id}-operation"


def environment_lock_id(env_id: str) -> str:
    return f"environment-{env_id}-operation"


def _env_permission(study: StudyWithPermissions, uid: str) -> EnvPermission:
    levels = access_levels(study, uid)
    return EnvPermission(read=levels.read, write=levels.write)


class StudyOperationService:
    """
    Изменение прав исследования с распространением на все рабочие окружения,
    в которых оно смонтировано.
    """

    def __init__(
        self,
        study_service,
        environment_service,
        reconciler,
        lock_service,
        audit_repo,
        strategies: Sequence[StudyAccessStrategy],
        config: PropagationConfig | None = None,
    ):
        self._studies = study_service
        self._environments = environment_service
        self._reconciler = reconciler
        self._locks = lock_service
        self._audit = audit_repo
        self._strategies = list(strategies)
        self._config = config or PropagationConfig()

    async def update_permissions(self, ctx: RequestContext, study_id: str, request: UpdateRequest) -> StudyWithPermissions:
        """
        1. блокировка study-{id}-operation;
        2. затронутые пользователи и их активные окружения с этим исследованием (пачками);
        3. больше max_environments окружений - CapacityExceededError до любой записи;
        4. снимок прав до изменения, затем запись новых прав;
        5. по каждому окружению (пачками, под своей блокировкой) - dealloc / alloc / новая политика роли.

        Ошибки отдельных окружений собираются в PartialPropagationError; запись прав не откатывается.
        """
        delta = classify(request)
        logger.info(
            f"Updating permissions of study {study_id}: allowed={list(delta.allowed)} "
            f"disallowed={list(delta.disallowed)} changed={list(delta.changed)}"
        )
        failures: List[Dict[str, Any]] = []

        async def _run() -> StudyWithPermissions:
            impacted_envs = await self._discover_environments(study_id, request)

            total, limit = len(impacted_envs), self._config.max_environments
            if total > limit:
                raise CapacityExceededError(total, limit)

            # до изменения: деаллокация должна видеть прежний уровень доступа
            original = await self._studies.get_study_permissions(study_id)
            updated = await self._studies.update_permissions(ctx, study_id, request)

            async def _process(env: EnvironmentSc) -> None:
                await self._locks.try_write_lock_and_run(
                    environment_lock_id(env.id),
                    lambda: self._propagate(ctx, env, original, updated, failures),
                )

            await process_in_batches(impacted_envs, self._config.environment_batch_size, _process)
            return updated

        result = await self._locks.try_write_lock_and_run(study_lock_id(study_id), _run)

        await self._audit.write_and_forget(ctx, AUDIT_ACTION, {
            "studyId": study_id,
            "updateRequest": request.to_wire(),
            "result": result.to_response(),
            "failures": failures,
        })

        if failures:
            raise PartialPropagationError(failures)
        return result

    async def _discover_environments(self, study_id: str, request: UpdateRequest) -> List[EnvironmentSc]:
        async def _envs_for(uid: str) -> List[EnvironmentSc]:
            envs = await self._environments.get_active_envs_for_user(uid)
            return [env for env in envs if study_id in env.study_ids]

        per_user = await process_in_batches(get_impacted_users(request), self._config.user_batch_size, _envs_for)
        return [env for envs in per_user for env in envs]

    async def _propagate(
        self,
        ctx: RequestContext,
        env: EnvironmentSc,
        original: StudyWithPermissions,
        updated: StudyWithPermissions,
        failures: List[Dict[str, Any]],
    ) -> None:
        try:
            owner = env.created_by
            original_study = original.model_copy(update={"env_permission": _env_permission(original, owner)})

            # dealloc / alloc копят изменения политики роли, в IAM она пишется один раз
            async with self._reconciler.staged(env):
                # окружение могло измениться с момента обнаружения
                environment = await self._environments.find(env.id)
                await self._visit("deallocate_env_study_resources", ctx, environment, [original_study])

                # и могло измениться во время деаллокации
                environment = await self._environments.find(env.id)
                if has_access(updated, owner):
                    study = updated.model_copy(update={"env_permission": _env_permission(updated, owner)})
                    await self._visit("allocate_env_study_resources", ctx, environment, [study])

                # Исследование остается в study_ids окружения даже без доступа: если доступ вернут,
                # оно снова станет доступным.
                policy_doc = await self.generate_env_role_policy(environment)
                await self._reconciler.update_role_policy(environment, policy_doc)
        except Exception as e:
            logger.warning(f"Could not propagate permissions of study {updated.id} to environment {env.id}: {e}")
            failures.append({"environment_id": env.id, "reason": str(e)})

    async def _visit(self, method: str, ctx: RequestContext, env: EnvironmentSc, studies: List[StudyWithPermissions]) -> None:
        for strategy in self._strategies:
            await getattr(strategy, method)(ctx, env, studies)

    async def generate_env_role_policy(self, env: EnvironmentSc) -> Dict[str, Any]:
        """Политика роли собирается заново по всем исследованиям, смонтированным в окружении."""
        studies = await self._environments.get_studies(env)
        policy = StudyPolicy()
        ctx = system_request_context()
        for strategy in self._strategies:
            await strategy.provide_env_role_policy(ctx, env, studies, policy)
        return policy.to_policy_doc()
