# Файл: study_access_client/policy/document.py
"""
Операции над IAM policy document на уровне отдельных statement'ов.

Документ представлен обычным JSON-словарем {"Version": ..., "Statement": [...]}.
Все функции возвращают НОВЫЙ документ, исходный не изменяется; порядок
незатронутых statement'ов сохраняется.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional

from .s3_arn import list_prefix, normalize_bucket_arn, parse_s3_arn

POLICY_VERSION = "2012-10-17"

READ_ONLY_SID = "S3StudyReadAccess"
READ_WRITE_SID = "S3StudyReadWriteAccess"
LIST_SID_PREFIX = "studyListS3Access"

READ_ONLY_ACTIONS = ["s3:GetObject"]
READ_WRITE_ACTIONS = [
    "s3:GetObject",
    "s3:GetObjectTagging",
    "s3:GetObjectVersion",
    "s3:AbortMultipartUpload",
    "s3:ListMultipartUploadParts",
    "s3:PutObject",
    "s3:PutObjectAcl",
    "s3:PutObjectTagging",
    "s3:DeleteObject",
    "s3:DeleteObjectTagging",
    "s3:DeleteObjectVersion",
]
LIST_ACTIONS = ["s3:ListBucket", "s3:ListBucketVersions"]

_TEMPLATES = {
    READ_ONLY_SID: READ_ONLY_ACTIONS,
    READ_WRITE_SID: READ_WRITE_ACTIONS,
}

PolicyDoc = Dict[str, Any]


def empty_policy() -> PolicyDoc:
    return {"Version": POLICY_VERSION, "Statement": []}


def _copy(doc: Optional[PolicyDoc]) -> PolicyDoc:
    result = copy.deepcopy(doc) if doc else empty_policy()
    result.setdefault("Version", POLICY_VERSION)
    statements = result.get("Statement", [])
    # Statement может быть одиночным объектом
    result["Statement"] = [statements] if isinstance(statements, dict) else list(statements)
    return result


def _as_list(value) -> List[str]:
    if value is None:
        return []
    return [value] if isinstance(value, str) else list(value)


def find_statement(doc: Optional[PolicyDoc], sid: str) -> Optional[Dict[str, Any]]:
    for statement in (doc or {}).get("Statement", []):
        if statement.get("Sid") == sid:
            return statement
    return None


def statement_resources(doc: Optional[PolicyDoc], sid: str) -> List[str]:
    statement = find_statement(doc, sid)
    return _as_list(statement.get("Resource")) if statement else []


def add_resource_to_statement(doc: Optional[PolicyDoc], sid: str, resource_arn: str) -> PolicyDoc:
    """Добавляет ARN в statement с данным Sid (без дублей) или создает statement по шаблону."""
    if sid not in _TEMPLATES:
        raise ValueError(f"No statement template for sid {sid!r}")
    result = _copy(doc)
    statement = find_statement(result, sid)
    if statement is None:
        result["Statement"].append({
            "Sid": sid,
            "Effect": "Allow",
            "Action": list(_TEMPLATES[sid]),
            "Resource": [resource_arn],
        })
        return result

    resources = _as_list(statement.get("Resource"))
    if resource_arn not in resources:
        resources.append(resource_arn)
    statement["Resource"] = resources
    return result


def remove_resource_from_statement(doc: Optional[PolicyDoc], sid: str, resource_arn: str) -> PolicyDoc:
    """Убирает ARN из statement; если он был последним, statement удаляется целиком."""
    result = _copy(doc)
    statement = find_statement(result, sid)
    if statement is None:
        return result

    resources = _as_list(statement.get("Resource"))
    if resource_arn not in resources:
        return result
    remaining = [arn for arn in resources if arn != resource_arn]
    if remaining:
        statement["Resource"] = remaining
    else:
        result["Statement"] = [s for s in result["Statement"] if s is not statement]
    return result


def _list_statements(doc: PolicyDoc) -> List[Dict[str, Any]]:
    return [s for s in doc["Statement"] if str(s.get("Sid", "")).startswith(LIST_SID_PREFIX)]


def _find_list_statement(doc: PolicyDoc, bucket_arn: str) -> Optional[Dict[str, Any]]:
    for statement in _list_statements(doc):
        if bucket_arn in _as_list(statement.get("Resource")):
            return statement
    return None


def _next_list_sid(doc: PolicyDoc) -> str:
    taken = {s.get("Sid") for s in _list_statements(doc)}
    counter = len(taken) + 1
    while f"{LIST_SID_PREFIX}{counter}" in taken:
        counter += 1
    return f"{LIST_SID_PREFIX}{counter}"


def _prefixes(statement: Dict[str, Any]) -> List[str]:
    condition = statement.setdefault("Condition", {}).setdefault("StringLike", {})
    prefixes = _as_list(condition.get("s3:prefix"))
    condition["s3:prefix"] = prefixes
    return prefixes


def ensure_list_access(doc: Optional[PolicyDoc], study_path_arn: str) -> PolicyDoc:
    """Гарантирует, что префикс исследования есть в list-statement'е его бакета."""
    location = parse_s3_arn(study_path_arn.rstrip("*"))
    bucket_arn = normalize_bucket_arn(study_path_arn)
    prefix = list_prefix(location.prefix)

    result = _copy(doc)
    statement = _find_list_statement(result, bucket_arn)
    if statement is None:
        result["Statement"].append({
            "Sid": _next_list_sid(result),
            "Effect": "Allow",
            "Action": list(LIST_ACTIONS),
            "Resource": bucket_arn,
            "Condition": {"StringLike": {"s3:prefix": [prefix]}},
        })
        return result

    prefixes = _prefixes(statement)
    if prefix not in prefixes:
        prefixes.append(prefix)
    return result


def remove_list_access(doc: Optional[PolicyDoc], study_path_arn: str) -> PolicyDoc:
    location = parse_s3_arn(study_path_arn.rstrip("*"))
    bucket_arn = normalize_bucket_arn(study_path_arn)
    prefix = list_prefix(location.prefix)

    result = _copy(doc)
    statement = _find_list_statement(result, bucket_arn)
    if statement is None:
        return result

    prefixes = _prefixes(statement)
    if prefix not in prefixes:
        return result
    remaining = [p for p in prefixes if p != prefix]
    if remaining:
        statement["Condition"]["StringLike"]["s3:prefix"] = remaining
    else:
        result["Statement"] = [s for s in result["Statement"] if s is not statement]
    return result


def has_list_access(doc: Optional[PolicyDoc], study_path_arn: str) -> bool:
    location = parse_s3_arn(study_path_arn.rstrip("*"))
    statement = _find_list_statement(_copy(doc), normalize_bucket_arn(study_path_arn))
    return statement is not None and list_prefix(location.prefix) in _prefixes(statement)


def is_empty(doc: Optional[PolicyDoc]) -> bool:
    return not doc or not doc.get("Statement")
