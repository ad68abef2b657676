# Файл: study_access_client/db/environment_orm.py
from typing import List, Optional

from sqlalchemy import String, Text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from study_access_client.db.base import Base, CreatedAt, UpdatedAt
from study_access_client.models.environment import EnvironmentSc


class EnvironmentScORM(Base):
    __tablename__ = "environments_sc"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(64), nullable=False, default="PENDING")
    # Список исследований фиксируется при запуске окружения
    study_ids: Mapped[List[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    outputs: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    project_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    cfn_execution_role_arn: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    role_external_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[CreatedAt]
    updated_at: Mapped[UpdatedAt]

    def to_pydantic(self) -> EnvironmentSc:
        return EnvironmentSc(
            id=self.id,
            name=self.name,
            created_by=self.created_by,
            status=self.status,
            study_ids=list(self.study_ids or []),
            outputs=self.outputs or [],
            project_id=self.project_id,
            cfn_execution_role_arn=self.cfn_execution_role_arn,
            role_external_id=self.role_external_id,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
