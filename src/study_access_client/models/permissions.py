# Файл: study_access_client/models/permissions.py

from __future__ import annotations

import enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field

WILDCARD_UID = "*"


class PermissionLevel(str, enum.Enum):
    admin = "admin"
    readonly = "readonly"
    readwrite = "readwrite"
    writeonly = "writeonly"


NON_ADMIN_LEVELS = (PermissionLevel.readonly, PermissionLevel.readwrite, PermissionLevel.writeonly)

# Явное соответствие уровня доступа и поля сущности, вместо f"{level}Users"
_STUDY_FIELDS = {
    PermissionLevel.admin: "admin_users",
    PermissionLevel.readonly: "readonly_users",
    PermissionLevel.readwrite: "readwrite_users",
    PermissionLevel.writeonly: "writeonly_users",
}
_USER_FIELDS = {
    PermissionLevel.admin: "admin_access",
    PermissionLevel.readonly: "readonly_access",
    PermissionLevel.readwrite: "readwrite_access",
    PermissionLevel.writeonly: "writeonly_access",
}


class UserEntry(BaseModel):
    uid: str = Field(..., min_length=1)
    permission_level: PermissionLevel = Field(..., alias="permissionLevel")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class UpdateRequest(BaseModel):
    """
    Запрос на изменение прав к исследованию:
    { usersToAdd: [{uid, permissionLevel}], usersToRemove: [{uid, permissionLevel}] }
    """
    model_config = ConfigDict(populate_by_name=True)

    users_to_add: List[UserEntry] = Field(default_factory=list, alias="usersToAdd")
    users_to_remove: List[UserEntry] = Field(default_factory=list, alias="usersToRemove")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class StudyPermissions(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    study_id: str | None = Field(None, alias="id")
    admin_users: List[str] = Field(default_factory=list, alias="adminUsers")
    readonly_users: List[str] = Field(default_factory=list, alias="readonlyUsers")
    readwrite_users: List[str] = Field(default_factory=list, alias="readwriteUsers")
    writeonly_users: List[str] = Field(default_factory=list, alias="writeonlyUsers")
    created_by: str | None = Field(None, alias="createdBy")
    updated_by: str | None = Field(None, alias="updatedBy")

    def users(self, level: PermissionLevel) -> List[str]:
        return getattr(self, _STUDY_FIELDS[PermissionLevel(level)])

    def with_users(self, level: PermissionLevel, users: List[str]) -> "StudyPermissions":
        return self.model_copy(update={_STUDY_FIELDS[PermissionLevel(level)]: list(users)})

    def levels_of(self, uid: str) -> List[PermissionLevel]:
        return [level for level in PermissionLevel if uid in self.users(level)]


class UserPermissions(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    uid: str
    admin_access: List[str] = Field(default_factory=list, alias="adminAccess")
    readonly_access: List[str] = Field(default_factory=list, alias="readonlyAccess")
    readwrite_access: List[str] = Field(default_factory=list, alias="readwriteAccess")
    writeonly_access: List[str] = Field(default_factory=list, alias="writeonlyAccess")

    def access(self, level: PermissionLevel) -> List[str]:
        return getattr(self, _USER_FIELDS[PermissionLevel(level)])

    def with_access(self, level: PermissionLevel, study_ids: List[str]) -> "UserPermissions":
        return self.model_copy(update={_USER_FIELDS[PermissionLevel(level)]: list(study_ids)})

    def has_any_access(self, study_id: str) -> bool:
        return any(study_id in self.access(level) for level in PermissionLevel)


class AccessLevels(BaseModel):
    model_config = ConfigDict(frozen=True)

    admin: bool = False
    read: bool = False
    write: bool = False


class EnvPermission(BaseModel):
    """Уровень доступа окружения к исследованию: то, что попадает в политику роли."""
    model_config = ConfigDict(frozen=True)

    read: bool = False
    write: bool = False

    @property
    def any(self) -> bool:
        return self.read or self.write
