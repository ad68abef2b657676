# study_access_client/db/__init__.py

from .base import Base

from .study_orm import StudyORM
from .permissions_orm import StudyPermissionORM, UserStudyPermissionORM
from .environment_orm import EnvironmentScORM
from .lock_orm import LockORM
from .audit_orm import AuditEventORM


__all__ = [
    "Base",
    "StudyORM",
    "StudyPermissionORM",
    "UserStudyPermissionORM",
    "EnvironmentScORM",
    "LockORM",
    "AuditEventORM",
]
