import re
from typing import NamedTuple

_S3_ARN = re.compile(r"^arn:(?P<partition>[^:]+):s3:::(?P<path>.+)$")


class S3Location(NamedTuple):
    partition: str
    bucket: str
    prefix: str


def parse_s3_arn(arn: str) -> S3Location:
    """
    'arn:aws:s3:::bucket/studies/s1/' -> ('aws', 'bucket', 'studies/s1/').
    ARN без пути указывает на весь бакет, префикс в этом случае '/'.
    """
    match = _S3_ARN.match(arn or "")
    if not match:
        raise ValueError(f"Not an s3 arn: {arn!r}")
    partition, path = match.group("partition"), match.group("path")
    bucket, sep, prefix = path.partition("/")
    if not sep or not prefix:
        return S3Location(partition, bucket, "/")
    return S3Location(partition, bucket, prefix)


def normalize_s3_arn(arn: str) -> str:
    """Приводит ARN к виду, оканчивающемуся на '/': без '*' на конце."""
    partition, bucket, prefix = parse_s3_arn(arn.rstrip("*"))
    if prefix == "/":
        return f"arn:{partition}:s3:::{bucket}/"
    if not prefix.endswith("/"):
        prefix = f"{prefix}/"
    return f"arn:{partition}:s3:::{bucket}/{prefix}"


def normalize_bucket_arn(arn: str) -> str:
    partition, bucket, _ = parse_s3_arn(arn)
    return f"arn:{partition}:s3:::{bucket}"


def study_path_arn(arn: str) -> str:
    """ARN объектов исследования, как он записывается в Resource: 'arn:aws:s3:::bucket/prefix/*'."""
    return f"{normalize_s3_arn(arn)}*"


def list_prefix(prefix: str) -> str:
    # Исследование может занимать весь бакет: тогда s3:prefix == "*", а не "/*"
    return "*" if prefix in ("", "/") else f"{prefix}*"
