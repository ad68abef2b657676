# Файл: study_access_client/policy/resource_policy.py
"""
Патчинг resource-политик общего бакета и KMS-ключа: добавление/удаление
ARN роли окружения в Principal.AWS соответствующих statement'ов.
"""

from __future__ import annotations

import copy
import enum
from typing import Any, Dict, Iterable, List

from .document import POLICY_VERSION, PolicyDoc

KMS_WORKSPACE_ACTIONS = ["kms:Encrypt", "kms:Decrypt", "kms:ReEncrypt*", "kms:GenerateDataKey*", "kms:DescribeKey"]


class PrincipalChange(str, enum.Enum):
    add = "add"
    remove = "remove"


def update_principals(principals, role_arn: str, change: PrincipalChange) -> List[str]:
    current = [principals] if isinstance(principals, str) else list(principals or [])
    if change == PrincipalChange.add:
        return current if role_arn in current else current + [role_arn]
    return [p for p in current if p != role_arn]


def _principals(statement: Dict[str, Any]) -> List[str]:
    principal = statement.get("Principal") or {}
    value = principal.get("AWS", []) if isinstance(principal, dict) else []
    return [value] if isinstance(value, str) else list(value)


def _replace(doc: PolicyDoc, sids: Iterable[str], updated: List[Dict[str, Any]]) -> None:
    sids = set(sids)
    doc["Statement"] = [s for s in doc.get("Statement", []) if s.get("Sid") not in sids]
    # Statement без принципалов в политику не попадает
    doc["Statement"].extend(s for s in updated if _principals(s))


def patch_bucket_policy(
    policy: PolicyDoc | None,
    *,
    bucket: str,
    prefixes: Iterable[str],
    role_arn: str,
    change: PrincipalChange,
    partition: str = "aws",
) -> PolicyDoc:
    result = copy.deepcopy(policy) if policy else {"Version": POLICY_VERSION, "Statement": []}
    result.setdefault("Statement", [])

    for prefix in prefixes:
        list_sid, get_sid = f"List:{prefix}", f"Get:{prefix}"
        list_statement = {
            "Sid": list_sid,
            "Effect": "Allow",
            "Principal": {"AWS": []},
            "Action": "s3:ListBucket",
            "Resource": f"arn:{partition}:s3:::{bucket}",
            "Condition": {"StringLike": {"s3:prefix": [f"{prefix}*"]}},
        }
        get_statement = {
            "Sid": get_sid,
            "Effect": "Allow",
            "Principal": {"AWS": []},
            "Action": ["s3:GetObject"],
            "Resource": [f"arn:{partition}:s3:::{bucket}/{prefix}*"],
        }
        for statement in result["Statement"]:
            if statement.get("Sid") == list_sid:
                list_statement = statement
            elif statement.get("Sid") == get_sid:
                get_statement = statement

        for statement in (list_statement, get_statement):
            statement["Principal"] = {"AWS": update_principals(_principals(statement), role_arn, change)}
        _replace(result, (list_sid, get_sid), [list_statement, get_statement])

    return result


def patch_key_policy(
    policy: PolicyDoc | None,
    *,
    sid: str,
    role_arn: str,
    change: PrincipalChange,
) -> PolicyDoc:
    result = copy.deepcopy(policy) if policy else {"Version": POLICY_VERSION, "Statement": []}
    result.setdefault("Statement", [])

    statement = next((s for s in result["Statement"] if s.get("Sid") == sid), None)
    if statement is None:
        statement = {
            "Sid": sid,
            "Effect": "Allow",
            "Principal": {"AWS": []},
            "Action": list(KMS_WORKSPACE_ACTIONS),
            "Resource": "*",  # в key policy это всегда сам ключ
        }
    statement["Principal"] = {"AWS": update_principals(_principals(statement), role_arn, change)}
    _replace(result, (sid,), [statement])
    return result
