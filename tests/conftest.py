from types import SimpleNamespace

import pytest

from study_access_client.client import AccessClient
from study_access_client.config import AwsConfig, PropagationConfig
from study_access_client.services import (
    EnvironmentScService,
    IamPolicyReconciler,
    ResourcePolicyAccessStrategy,
    ResourcePolicyService,
    RolePolicyAccessStrategy,
    StudyOperationService,
    StudyPermissionStore,
    StudyService,
)

from .fakes import (
    BUCKET,
    FakeAwsSessions,
    FakeAuditRepository,
    FakeEnvironmentRepository,
    FakeIamRepository,
    FakeKmsRepository,
    FakeLockService,
    FakePermissionRepository,
    FakeS3PolicyRepository,
    FakeStudyRepository,
    make_user_mirror,
)


@pytest.fixture
def aws_config():
    return AwsConfig(
        study_data_bucket_name=BUCKET,
        study_data_kms_key_alias="study-data-key",
        study_data_kms_key_arn=FakeKmsRepository.KEY_ARN,
    )


@pytest.fixture
def propagation_config():
    return PropagationConfig(lock_retry_delay=0)


@pytest.fixture
def build(aws_config, propagation_config):
    """
    Собирает граф сервисов поверх fake-репозиториев:
    build(studies=[...], permissions=[...], envs=[...], failing_envs=(...), strategies=None)
    """
    def _build(studies=(), permissions=(), envs=(), failing_envs=(), strategies=None, iam_policies=None):
        locks = FakeLockService()
        study_repo = FakeStudyRepository(*studies)
        users = tuple(u for record in permissions for u in make_user_mirror(record))
        permission_repo = FakePermissionRepository(*permissions, users=users)
        env_repo = FakeEnvironmentRepository(*envs, failing=failing_envs)
        audit = FakeAuditRepository()
        iam = FakeIamRepository(iam_policies)
        s3 = FakeS3PolicyRepository()
        kms = FakeKmsRepository()

        store = StudyPermissionStore(permission_repo, locks)
        study_service = StudyService(study_repo, store)
        environment_service = EnvironmentScService(env_repo, study_service)
        reconciler = IamPolicyReconciler(iam)
        resource_policies = ResourcePolicyService(s3, kms, locks, aws_config)
        if strategies is None:
            strategies = [
                RolePolicyAccessStrategy(reconciler, resource_policies),
                ResourcePolicyAccessStrategy(resource_policies, environment_service),
            ]
        operations = StudyOperationService(
            study_service=study_service,
            environment_service=environment_service,
            reconciler=reconciler,
            lock_service=locks,
            audit_repo=audit,
            strategies=strategies,
            config=propagation_config,
        )
        return SimpleNamespace(
            locks=locks,
            study_repo=study_repo,
            permission_repo=permission_repo,
            env_repo=env_repo,
            audit=audit,
            iam=iam,
            s3=s3,
            kms=kms,
            store=store,
            study_service=study_service,
            environment_service=environment_service,
            reconciler=reconciler,
            resource_policies=resource_policies,
            operations=operations,
        )

    return _build


@pytest.fixture
def make_client(build):
    """AccessClient поверх того же графа fake-сервисов; возвращает (client, граф)."""
    def _make(**kwargs):
        wb = build(**kwargs)
        client = AccessClient(
            study_repo=wb.study_repo,
            aws_sessions=FakeAwsSessions(),
            study_service=wb.study_service,
            permission_store=wb.store,
            environment_service=wb.environment_service,
            operations=wb.operations,
        )
        return client, wb

    return _make
