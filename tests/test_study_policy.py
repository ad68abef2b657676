import pytest

from study_access_client.models import EnvPermission
from study_access_client.policy import StudyPolicy
from study_access_client.policy.study_policy import STUDY_READ_ACTIONS, STUDY_READ_WRITE_ACTIONS

KMS_ARN = "arn:aws:kms:us-east-1:111111111111:key/abc"
READ = EnvPermission(read=True)
READ_WRITE = EnvPermission(read=True, write=True)
WRITE = EnvPermission(write=True)


def _statements(doc):
    return {s["Sid"]: s for s in doc["Statement"]}


def _actions(doc):
    return [action for s in doc["Statement"] for action in s["Action"]]


def test_empty_policy_is_empty_dict():
    assert StudyPolicy().to_policy_doc() == {}


def test_study_without_resources_is_rejected():
    with pytest.raises(ValueError):
        StudyPolicy().add_study(permission=READ, resources=[])


def test_read_and_write_studies_go_to_separate_statements():
    # --- ARRANGE ---
    policy = StudyPolicy()
    policy.add_study(permission=READ, resources=["arn:aws:s3:::study-data/studies/Organization/s1"], kms_arn=KMS_ARN)
    policy.add_study(permission=READ_WRITE, resources=["arn:aws:s3:::study-data/studies/Organization/s2/"], kms_arn=KMS_ARN)

    # --- ACT ---
    statements = _statements(policy.to_policy_doc())

    # --- ASSERT ---
    assert list(statements) == ["S3StudyReadAccess", "S3StudyReadWriteAccess", "studyListS3Access1", "studyKMSAccess"]
    assert statements["S3StudyReadAccess"]["Action"] == STUDY_READ_ACTIONS
    assert statements["S3StudyReadAccess"]["Resource"] == ["arn:aws:s3:::study-data/studies/Organization/s1/*"]
    assert statements["S3StudyReadWriteAccess"]["Action"] == STUDY_READ_WRITE_ACTIONS
    assert statements["S3StudyReadWriteAccess"]["Resource"] == ["arn:aws:s3:::study-data/studies/Organization/s2/*"]
    assert statements["studyListS3Access1"]["Condition"]["StringLike"]["s3:prefix"] == [
        "studies/Organization/s1/*",
        "studies/Organization/s2/*",
    ]
    assert statements["studyKMSAccess"]["Resource"] == [KMS_ARN]


def test_write_only_study_gets_no_object_access():
    # --- ARRANGE ---
    policy = StudyPolicy()
    policy.add_study(permission=WRITE, resources=["arn:aws:s3:::study-data/studies/Organization/s3/"], kms_arn=KMS_ARN)

    # --- ACT ---
    doc = policy.to_policy_doc()

    # --- ASSERT ---
    assert list(_statements(doc)) == ["studyListS3Access1", "studyKMSAccess"]
    assert "s3:GetObject" not in _actions(doc)
    assert "s3:PutObject" not in _actions(doc)


def test_open_data_study_spans_buckets_without_kms():
    policy = StudyPolicy()
    policy.add_study(
        permission=READ,
        resources=["arn:aws:s3:::1000genomes/", "arn:aws:s3:::other-open-data/data"],
    )

    statements = _statements(policy.to_policy_doc())

    assert "studyKMSAccess" not in statements
    assert statements["studyListS3Access1"]["Resource"] == "arn:aws:s3:::1000genomes"
    assert statements["studyListS3Access1"]["Condition"]["StringLike"]["s3:prefix"] == ["*"]
    assert statements["studyListS3Access2"]["Condition"]["StringLike"]["s3:prefix"] == ["data/*"]


def test_same_resource_added_twice_is_kept_once():
    policy = StudyPolicy()
    policy.add_study(permission=READ, resources=["arn:aws:s3:::study-data/s1/*"])
    policy.add_study(permission=READ_WRITE, resources=["arn:aws:s3:::study-data/s1"])

    statements = _statements(policy.to_policy_doc())

    assert "S3StudyReadAccess" not in statements
    assert statements["S3StudyReadWriteAccess"]["Resource"] == ["arn:aws:s3:::study-data/s1/*"]
