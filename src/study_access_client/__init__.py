# Файл: src/study_access_client/__init__.py

from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from .client import AccessClient
from .config import get_settings, AccessClientConfig, PostgresConfig, AwsConfig, PropagationConfig
from .repositories import (
    StudyRepository,
    StudyPermissionRepository,
    EnvironmentRepository,
    LockRepository,
    AuditRepository,
    AwsSessionFactory,
    IamRepository,
    S3PolicyRepository,
    KmsRepository,
)
from .services import (
    StudyPermissionStore,
    StudyService,
    EnvironmentScService,
    IamPolicyReconciler,
    ResourcePolicyService,
    RolePolicyAccessStrategy,
    ResourcePolicyAccessStrategy,
    StudyOperationService,
)

from .exceptions import *

def create_access_client(config: Optional[AccessClientConfig] = None) -> AccessClient:
    """
    Фабричная функция для создания и конфигурации AccessClient.

    :param config: Единый объект с настройками.
                   Если не предоставлен, используются переменные окружения.
    :return: Сконфигурированный экземпляр AccessClient.
    """
    if config is None:
        config = get_settings().to_client_config()

    engine = create_async_engine(
            config.postgres.get_pg_dsn(),
            pool_size=config.postgres.pool_size,
            max_overflow=config.postgres.max_overflow,
            pool_timeout=config.postgres.pool_timeout,
            pool_recycle=config.postgres.pool_recycle,
            pool_pre_ping=config.postgres.pool_pre_ping,
            connect_args={
                "server_settings": {
                    "application_name": config.postgres.application_name
                }
            }
        )

    session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)

    # 1. PostgreSQL
    study_repo = StudyRepository(session_factory)
    permission_repo = StudyPermissionRepository(session_factory)
    env_repo = EnvironmentRepository(session_factory)
    lock_repo = LockRepository(session_factory, config.propagation)
    audit_repo = AuditRepository(session_factory)

    # 2. AWS
    aws = AwsSessionFactory(config.aws)
    iam_repo = IamRepository(aws)
    s3_repo = S3PolicyRepository(aws)
    kms_repo = KmsRepository(aws)

    # 3. Сервисы
    permission_store = StudyPermissionStore(permission_repo, lock_repo)
    study_service = StudyService(study_repo, permission_store)
    environment_service = EnvironmentScService(env_repo, study_service)
    reconciler = IamPolicyReconciler(iam_repo)
    resource_policies = ResourcePolicyService(s3_repo, kms_repo, lock_repo, config.aws)
    strategies = [
        RolePolicyAccessStrategy(reconciler, resource_policies),
        ResourcePolicyAccessStrategy(resource_policies, environment_service),
    ]
    operations = StudyOperationService(
        study_service=study_service,
        environment_service=environment_service,
        reconciler=reconciler,
        lock_service=lock_repo,
        audit_repo=audit_repo,
        strategies=strategies,
        config=config.propagation,
    )

    client = AccessClient(
        study_repo=study_repo,
        aws_sessions=aws,
        study_service=study_service,
        permission_store=permission_store,
        environment_service=environment_service,
        operations=operations,
    )
    client._engine = engine
    async def _aclose():
        await engine.dispose()
    client.aclose = _aclose

    return client

__all__ = [
    "AccessClient", "create_access_client",
    "AccessClientConfig", "PostgresConfig", "AwsConfig", "PropagationConfig",
    "AccessClientError", "DatabaseError", "NotFoundError", "ValidationError", "PolicyViolationError",
    "ForbiddenError", "ConflictError", "CapacityExceededError", "LockError",
    "ResourceNotReadyError", "AwsError", "PartialPropagationError",
]
