from .document import (
    READ_ONLY_SID,
    READ_WRITE_SID,
    LIST_SID_PREFIX,
    add_resource_to_statement,
    remove_resource_from_statement,
    ensure_list_access,
    remove_list_access,
    has_list_access,
    statement_resources,
    empty_policy,
)
from .study_policy import StudyPolicy
from .resource_policy import PrincipalChange, patch_bucket_policy, patch_key_policy
from .s3_arn import parse_s3_arn, normalize_s3_arn, normalize_bucket_arn, study_path_arn

__all__ = [
    "READ_ONLY_SID", "READ_WRITE_SID", "LIST_SID_PREFIX",
    "add_resource_to_statement", "remove_resource_from_statement",
    "ensure_list_access", "remove_list_access", "has_list_access",
    "statement_resources", "empty_policy",
    "StudyPolicy",
    "PrincipalChange", "patch_bucket_policy", "patch_key_policy",
    "parse_s3_arn", "normalize_s3_arn", "normalize_bucket_arn", "study_path_arn",
]
