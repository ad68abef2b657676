from .classifier import PermissionDelta, classify, get_impacted_users
from .study_methods import access_levels, has_access, is_open_data
from .permission_store import (
    StudyPermissionStore,
    apply_update_request,
    apply_to_user_permissions,
    resolve_wildcard,
)
from .policy_reconciler import IamPolicyReconciler
from .resource_policies import ResourcePolicyService
from .access_strategies import StudyAccessStrategy, RolePolicyAccessStrategy, ResourcePolicyAccessStrategy
from .study_service import StudyService
from .environment_service import EnvironmentScService
from .orchestrator import StudyOperationService

__all__ = [
    "PermissionDelta", "classify", "get_impacted_users",
    "access_levels", "has_access", "is_open_data",
    "StudyPermissionStore", "apply_update_request", "apply_to_user_permissions", "resolve_wildcard",
    "IamPolicyReconciler",
    "ResourcePolicyService",
    "StudyAccessStrategy", "RolePolicyAccessStrategy", "ResourcePolicyAccessStrategy",
    "StudyService",
    "EnvironmentScService",
    "StudyOperationService",
]
