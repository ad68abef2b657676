# Файл: study_access_client/db/permissions_orm.py
from typing import List, Optional

from sqlalchemy import String, Text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column

from study_access_client.db.base import Base, CreatedAt, UpdatedAt
from study_access_client.models.permissions import StudyPermissions, UserPermissions


class StudyPermissionORM(Base):
    """Права по исследованию: четыре множества uid."""
    __tablename__ = "study_permissions"

    study_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    admin_users: Mapped[List[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    readonly_users: Mapped[List[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    readwrite_users: Mapped[List[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    writeonly_users: Mapped[List[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)

    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[CreatedAt]
    updated_at: Mapped[UpdatedAt]

    def to_pydantic(self) -> StudyPermissions:
        return StudyPermissions(
            study_id=self.study_id,
            admin_users=list(self.admin_users or []),
            readonly_users=list(self.readonly_users or []),
            readwrite_users=list(self.readwrite_users or []),
            writeonly_users=list(self.writeonly_users or []),
            created_by=self.created_by,
            updated_by=self.updated_by,
        )


class UserStudyPermissionORM(Base):
    """Зеркальная запись по пользователю: четыре множества study id."""
    __tablename__ = "user_study_permissions"

    uid: Mapped[str] = mapped_column(String(255), primary_key=True)
    admin_access: Mapped[List[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    readonly_access: Mapped[List[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    readwrite_access: Mapped[List[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    writeonly_access: Mapped[List[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)

    created_at: Mapped[CreatedAt]
    updated_at: Mapped[UpdatedAt]

    def to_pydantic(self) -> UserPermissions:
        return UserPermissions(
            uid=self.uid,
            admin_access=list(self.admin_access or []),
            readonly_access=list(self.readonly_access or []),
            readwrite_access=list(self.readwrite_access or []),
            writeonly_access=list(self.writeonly_access or []),
        )
