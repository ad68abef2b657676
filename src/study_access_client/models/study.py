# Файл: study_access_client/models/study.py

from __future__ import annotations

import enum
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .permissions import EnvPermission, StudyPermissions


class StudyCategory(str, enum.Enum):
    my_studies = "My Studies"
    organization = "Organization"
    open_data = "Open Data"


class AccessType(str, enum.Enum):
    readonly = "readonly"
    readwrite = "readwrite"
    writeonly = "writeonly"


class StudyResource(BaseModel):
    arn: str
    file_share_arn: Optional[str] = Field(None, alias="fileShareArn")

    model_config = ConfigDict(populate_by_name=True)


class StudyCreate(BaseModel):
    id: str = Field(..., min_length=1, max_length=100)
    name: Optional[str] = None
    category: StudyCategory
    access_type: AccessType = Field(AccessType.readwrite, alias="accessType")
    project_id: Optional[str] = Field(None, alias="projectId")
    resources: List[StudyResource] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("access_type", mode="before")
    @classmethod
    def _default_access_type(cls, value):
        # Пустой accessType трактуется как readwrite
        return value or AccessType.readwrite


class StudyUpdate(BaseModel):
    """
    Изменение исследования. rev - ревизия, которую видел вызывающий;
    не переданные поля сохраняют текущие значения.
    """
    id: str = Field(..., min_length=1, max_length=100)
    rev: int
    name: Optional[str] = None
    category: Optional[StudyCategory] = None
    access_type: Optional[AccessType] = Field(None, alias="accessType")
    project_id: Optional[str] = Field(None, alias="projectId")
    resources: Optional[List[StudyResource]] = None

    model_config = ConfigDict(populate_by_name=True)


class StudyInDB(StudyCreate):
    rev: int = 0
    created_by: Optional[str] = Field(None, alias="createdBy")
    updated_by: Optional[str] = Field(None, alias="updatedBy")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class StudyWithPermissions(StudyInDB):
    """
    Исследование вместе с записью прав. Именно этим объектом оперируют
    has_access / access_levels и оркестратор распространения прав.
    """
    permissions: StudyPermissions = Field(default_factory=StudyPermissions)
    env_permission: Optional[EnvPermission] = Field(None, alias="envPermission")

    def presented_permissions(self) -> StudyPermissions:
        """Для readonly исследований readwrite/writeonly списки всегда показываются пустыми."""
        if self.access_type == AccessType.readonly:
            return self.permissions.model_copy(update={"readwrite_users": [], "writeonly_users": []})
        return self.permissions

    def to_response(self) -> dict:
        body = self.model_dump(by_alias=True, mode="json", exclude={"permissions", "env_permission"})
        body["permissions"] = self.presented_permissions().model_dump(
            by_alias=True, mode="json", exclude={"study_id"}
        )
        return body
