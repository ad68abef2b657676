# Файл: study_access_client/services/study_service.py

from __future__ import annotations

import asyncio
import logging
from typing import List

from ..exceptions import ForbiddenError, PolicyViolationError, ValidationError
from ..models import (
    AccessType,
    RequestContext,
    StudyCategory,
    StudyCreate,
    StudyInDB,
    StudyPermissions,
    StudyUpdate,
    StudyWithPermissions,
    UpdateRequest,
)

logger = logging.getLogger(__name__)


def merge(study: StudyInDB, permissions: StudyPermissions | None) -> StudyWithPermissions:
    return StudyWithPermissions(
        **study.model_dump(),
        permissions=permissions or StudyPermissions(study_id=study.id),
    )


class StudyService:
    def __init__(self, study_repo, permission_store):
        self._studies = study_repo
        self._permissions = permission_store

    async def create(self, ctx: RequestContext, data: StudyCreate) -> StudyWithPermissions:
        if data.category == StudyCategory.open_data and not ctx.is_system:
            raise ForbiddenError("Only the system can create Open Data studies.")
        if data.category != StudyCategory.open_data and len(data.resources) > 1:
            raise PolicyViolationError("Only Open Data studies can have more than one resource")
        if data.category == StudyCategory.open_data and data.access_type == AccessType.readwrite:
            # для Open Data accessType по умолчанию - readonly
            if "access_type" in data.model_fields_set:
                raise PolicyViolationError("Open Data study cannot be read/write")
            data = data.model_copy(update={"access_type": AccessType.readonly})

        study = await self._studies.create(data, ctx.uid)
        permissions = None
        if study.category != StudyCategory.open_data:
            permissions = await self._permissions.create(ctx, study.id)
        logger.info(f"Study {study.id} created by {ctx.uid}")
        return merge(study, permissions)

    async def update(self, ctx: RequestContext, data: StudyUpdate) -> StudyWithPermissions:
        """
        Меняет name, accessType, projectId и resources (только Open Data).
        Категорию изменить нельзя; устаревший rev дает ConflictError из репозитория.
        """
        existing = await self._studies.must_find(data.id)
        if data.category is not None and data.category != existing.category:
            raise ValidationError(
                f'Study category cannot be changed from "{existing.category.value}" to "{data.category.value}"'
            )
        if existing.category == StudyCategory.open_data and not ctx.is_system:
            raise ForbiddenError("Only the system can update Open Data studies.")
        if existing.category != StudyCategory.open_data and data.resources:
            raise PolicyViolationError("Resources can only be updated for Open Data study category")

        changes = data.model_dump(exclude_unset=True, exclude_none=True, exclude={"id", "category", "resources"})
        if data.resources:
            changes["resources"] = data.resources
        candidate = existing.model_copy(update=changes)
        if candidate.category == StudyCategory.open_data and candidate.access_type == AccessType.readwrite:
            raise PolicyViolationError("Open Data study cannot be read/write")

        study = await self._studies.update(candidate, ctx.uid)
        permissions = await self._permissions.find(study.id)
        logger.info(f"Study {study.id} updated by {ctx.uid}")
        return merge(study, permissions)

    async def get_study_permissions(self, study_id: str) -> StudyWithPermissions:
        """Исследование вместе с текущей записью прав (без проверки доступа вызывающего)."""
        study = await self._studies.must_find(study_id)
        permissions = await self._permissions.find(study_id)
        return merge(study, permissions)

    async def list_by_ids(self, study_ids: List[str]) -> List[StudyWithPermissions]:
        studies = await self._studies.list_by_ids(study_ids)
        permissions = await asyncio.gather(*(self._permissions.find(s.id) for s in studies))
        return [merge(study, perms) for study, perms in zip(studies, permissions)]

    async def update_permissions(self, ctx: RequestContext, study_id: str, request: UpdateRequest) -> StudyWithPermissions:
        study = await self._studies.must_find(study_id)
        permissions = await self._permissions.update(ctx, study, request)
        return merge(study, permissions)
