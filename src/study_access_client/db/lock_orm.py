# Файл: study_access_client/db/lock_orm.py
from datetime import datetime

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from study_access_client.db.base import Base


class LockORM(Base):
    """Именованная блокировка с TTL: запись с истекшим expires_at считается свободной."""
    __tablename__ = "locks"

    id: Mapped[str] = mapped_column(String(512), primary_key=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
