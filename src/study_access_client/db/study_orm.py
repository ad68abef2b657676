# Файл: study_access_client/db/study_orm.py
from typing import Optional

from sqlalchemy import String, Integer, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from study_access_client.db.base import Base, CreatedAt, UpdatedAt
from study_access_client.models.study import StudyInDB


class StudyORM(Base):
    __tablename__ = "studies"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    access_type: Mapped[str] = mapped_column(String(16), nullable=False, default="readwrite")
    # [{"arn": ..., "fileShareArn": ...}]
    resources: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    project_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    rev: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[CreatedAt]
    updated_at: Mapped[UpdatedAt]

    def to_pydantic(self) -> StudyInDB:
        return StudyInDB(
            id=self.id,
            name=self.name,
            category=self.category,
            access_type=self.access_type,
            project_id=self.project_id,
            resources=self.resources or [],
            rev=self.rev,
            created_by=self.created_by,
            updated_by=self.updated_by,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
