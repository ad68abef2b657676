import pytest

from study_access_client.config import AwsConfig
from study_access_client.services import ResourcePolicyService

from .fakes import FakeKmsRepository, FakeLockService, FakeS3PolicyRepository

pytestmark = pytest.mark.asyncio

ROLE = "arn:aws:iam::222222222222:role/analysis-env1-WorkspaceRole-XYZ"
SID = "Allow use by environment roles"


def _service(config=None, s3=None, kms=None, locks=None):
    config = config or AwsConfig(study_data_bucket_name="study-data", study_data_kms_key_alias="study-data-key")
    return ResourcePolicyService(s3 or FakeS3PolicyRepository(), kms or FakeKmsRepository(), locks or FakeLockService(), config)


async def test_add_and_remove_role_under_locks():
    # --- ARRANGE ---
    s3, kms, locks = FakeS3PolicyRepository(), FakeKmsRepository(), FakeLockService()
    service = _service(s3=s3, kms=kms, locks=locks)

    # --- ACT ---
    await service.add_role_arn(ROLE, ["studies/Organization/s1/"])

    # --- ASSERT ---
    assert sorted(locks.acquired) == ["kms|key-policy|alias/study-data-key", "s3|bucket-policy|study-data"]
    sids = {s["Sid"]: s for s in s3.policy["Statement"]}
    assert sids["Get:studies/Organization/s1/"]["Principal"] == {"AWS": [ROLE]}
    key_statement = next(s for s in kms.policy["Statement"] if s["Sid"] == SID)
    assert key_statement["Principal"] == {"AWS": [ROLE]}

    # --- ACT ---
    await service.remove_role_arn(ROLE, ["studies/Organization/s1/"])

    # --- ASSERT ---
    assert s3.policy["Statement"] == []
    assert kms.policy["Statement"] == []


async def test_no_prefixes_is_noop():
    s3, locks = FakeS3PolicyRepository(), FakeLockService()
    service = _service(s3=s3, locks=locks)

    await service.add_role_arn(ROLE, [])

    assert locks.acquired == []
    assert s3.puts == 0


async def test_kms_key_arn_is_resolved_once():
    kms = FakeKmsRepository()
    service = _service(kms=kms)

    assert await service.get_kms_key_arn() == FakeKmsRepository.KEY_ARN
    assert await service.get_kms_key_arn() == FakeKmsRepository.KEY_ARN
    assert kms.described == ["alias/study-data-key"]


async def test_remove_with_key_access_kept_patches_bucket_only():
    # --- ARRANGE ---
    s3, kms, locks = FakeS3PolicyRepository(), FakeKmsRepository(), FakeLockService()
    service = _service(s3=s3, kms=kms, locks=locks)
    await service.add_role_arn(ROLE, ["studies/Organization/s1/", "studies/Organization/s2/"])
    locks.acquired.clear()

    # --- ACT ---
    await service.remove_role_arn(ROLE, ["studies/Organization/s1/"], keep_key_access=True)

    # --- ASSERT ---
    assert locks.acquired == ["s3|bucket-policy|study-data"]
    assert sorted(s["Sid"] for s in s3.policy["Statement"]) == [
        "Get:studies/Organization/s2/",
        "List:studies/Organization/s2/",
    ]
    [key_statement] = kms.policy["Statement"]
    assert key_statement["Principal"] == {"AWS": [ROLE]}
