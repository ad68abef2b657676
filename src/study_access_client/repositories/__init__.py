from .pg_repositoryStudy import StudyRepository
from .pg_repositoryStudyPermission import StudyPermissionRepository
from .pg_repositoryEnvironment import EnvironmentRepository
from .pg_repositoryLock import LockRepository
from .pg_repositoryAudit import AuditRepository
from .aws_session import AwsSessionFactory
from .iam_repository import IamRepository
from .s3_repository import S3PolicyRepository
from .kms_repository import KmsRepository

__all__ = [
    "StudyRepository",
    "StudyPermissionRepository",
    "EnvironmentRepository",
    "LockRepository",
    "AuditRepository",
    "AwsSessionFactory",
    "IamRepository",
    "S3PolicyRepository",
    "KmsRepository",
]
