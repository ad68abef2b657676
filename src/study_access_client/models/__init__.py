from .permissions import (
    WILDCARD_UID,
    NON_ADMIN_LEVELS,
    PermissionLevel,
    UserEntry,
    UpdateRequest,
    StudyPermissions,
    UserPermissions,
    AccessLevels,
    EnvPermission,
)
from .study import StudyCategory, AccessType, StudyResource, StudyCreate, StudyUpdate, StudyInDB, StudyWithPermissions
from .environment import EnvironmentSc, is_active_status
from .context import RequestContext, system_request_context

__all__ = [
    "WILDCARD_UID", "NON_ADMIN_LEVELS", "PermissionLevel", "UserEntry", "UpdateRequest",
    "StudyPermissions", "UserPermissions", "AccessLevels", "EnvPermission",
    "StudyCategory", "AccessType", "StudyResource", "StudyCreate", "StudyUpdate", "StudyInDB", "StudyWithPermissions",
    "EnvironmentSc", "is_active_status",
    "RequestContext", "system_request_context",
]
