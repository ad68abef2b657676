# Файл: study_access_client/policy/study_policy.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from ..models import EnvPermission
from .document import (
    LIST_ACTIONS,
    LIST_SID_PREFIX,
    POLICY_VERSION,
    READ_ONLY_SID,
    READ_WRITE_SID,
    PolicyDoc,
)
from .s3_arn import list_prefix, normalize_bucket_arn, normalize_s3_arn, parse_s3_arn

STUDY_READ_ACTIONS = [
    "s3:GetObject",
    "s3:GetObjectTagging",
    "s3:GetObjectTorrent",
    "s3:GetObjectVersion",
    "s3:GetObjectVersionTagging",
    "s3:GetObjectVersionTorrent",
]
STUDY_READ_WRITE_ACTIONS = STUDY_READ_ACTIONS + [
    "s3:AbortMultipartUpload",
    "s3:ListMultipartUploadParts",
    "s3:PutObject",
    "s3:PutObjectAcl",
    "s3:PutObjectTagging",
    "s3:PutObjectVersionTagging",
    "s3:DeleteObject",
    "s3:DeleteObjectTagging",
    "s3:DeleteObjectVersion",
    "s3:DeleteObjectVersionTagging",
]
KMS_ACTIONS = ["kms:Decrypt", "kms:DescribeKey", "kms:Encrypt", "kms:GenerateDataKey", "kms:ReEncrypt*"]


@dataclass
class _StudyItem:
    bucket_arn: str
    prefix: str
    prefix_arn: str
    permission: EnvPermission
    kms_arn: Optional[str] = None


@dataclass
class StudyPolicy:
    """
    Собирает политику роли окружения "с нуля" по списку смонтированных исследований.
    Ключ словаря studies - нормализованный s3 ARN; у Open Data может быть несколько
    ключей с одинаковой информацией об исследовании.
    """
    studies: Dict[str, _StudyItem] = field(default_factory=dict)

    def add_study(self, *, permission: EnvPermission, resources: Iterable[str], kms_arn: Optional[str] = None) -> None:
        resources = list(resources)
        if not resources:
            raise ValueError("A study without resources was provided to a study policy instance")

        for prefix_arn in (normalize_s3_arn(arn) for arn in resources):
            self.studies[prefix_arn] = _StudyItem(
                bucket_arn=normalize_bucket_arn(prefix_arn),
                prefix=parse_s3_arn(prefix_arn).prefix,
                prefix_arn=prefix_arn,
                permission=permission,
                kms_arn=kms_arn,
            )

    def group_by_bucket(self) -> Dict[str, List[_StudyItem]]:
        buckets: Dict[str, List[_StudyItem]] = {}
        for item in self.studies.values():
            buckets.setdefault(item.bucket_arn, []).append(item)
        return buckets

    def kms_arns(self) -> List[str]:
        arns: List[str] = []
        for item in self.studies.values():
            if item.kms_arn and item.kms_arn not in arns:
                arns.append(item.kms_arn)
        return arns

    def to_policy_doc(self) -> PolicyDoc:
        items = list(self.studies.values())
        # write без read не дает доступа к объектам, только list-доступ к префиксу
        readwrite = [i for i in items if i.permission.read and i.permission.write]
        readonly = [i for i in items if i.permission.read and not i.permission.write]
        statements = []

        if readonly:
            statements.append({
                "Sid": READ_ONLY_SID,
                "Effect": "Allow",
                "Action": list(STUDY_READ_ACTIONS),
                "Resource": [f"{i.prefix_arn}*" for i in readonly],
            })
        if readwrite:
            statements.append({
                "Sid": READ_WRITE_SID,
                "Effect": "Allow",
                "Action": list(STUDY_READ_WRITE_ACTIONS),
                "Resource": [f"{i.prefix_arn}*" for i in readwrite],
            })

        for counter, (bucket_arn, bucket_items) in enumerate(self.group_by_bucket().items(), start=1):
            statements.append({
                "Sid": f"{LIST_SID_PREFIX}{counter}",
                "Effect": "Allow",
                "Action": list(LIST_ACTIONS),
                "Resource": bucket_arn,
                "Condition": {"StringLike": {"s3:prefix": [list_prefix(i.prefix) for i in bucket_items]}},
            })

        kms_arns = self.kms_arns()
        if kms_arns:
            statements.append({
                "Sid": "studyKMSAccess",
                "Action": list(KMS_ACTIONS),
                "Effect": "Allow",
                "Resource": kms_arns,
            })

        if not statements:
            return {}
        return {"Version": POLICY_VERSION, "Statement": statements}
