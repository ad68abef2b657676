# Файл: study_access_client/services/environment_service.py

from __future__ import annotations

import logging
from typing import List

from ..models import EnvironmentSc, EnvPermission, StudyWithPermissions
from .study_methods import access_levels, has_access

logger = logging.getLogger(__name__)


class EnvironmentScService:
    def __init__(self, env_repo, study_service):
        self._envs = env_repo
        self._studies = study_service

    async def get_active_envs_for_user(self, uid: str) -> List[EnvironmentSc]:
        return await self._envs.get_active_envs_for_user(uid)

    async def find(self, env_id: str) -> EnvironmentSc:
        return await self._envs.must_find(env_id)

    async def get_studies(self, env: EnvironmentSc) -> List[StudyWithPermissions]:
        """
        Смонтированные в окружении исследования, к которым у владельца окружения еще есть доступ,
        с проставленным env_permission. Исследования без доступа просто пропускаются:
        окружение могло потерять доступ, пока работало.
        """
        if not env.study_ids:
            return []
        accepted = []
        for study in await self._studies.list_by_ids(env.study_ids):
            if has_access(study, env.created_by):
                levels = access_levels(study, env.created_by)
                accepted.append(study.model_copy(update={"env_permission": EnvPermission(read=levels.read, write=levels.write)}))
        return accepted
