# Файл: study_access_client/repositories/s3_repository.py

import json
import logging
from typing import Any, Dict, Optional

from botocore.exceptions import ClientError

from study_access_client.exceptions import AwsError
from study_access_client.utils.io_async import run_io_bound

logger = logging.getLogger(__name__)


class S3PolicyRepository:
    """Bucket policy общего бакета с данными исследований (основной аккаунт)."""

    def __init__(self, aws):
        self._client = aws.get_client("s3")

    async def get_bucket_policy(self, bucket: str) -> Optional[Dict[str, Any]]:
        try:
            response = await run_io_bound(self._client.get_bucket_policy, Bucket=bucket)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "NoSuchBucketPolicy":
                return None
            raise AwsError(f"Failed to get bucket policy of '{bucket}': {e}") from e
        return json.loads(response["Policy"])

    async def put_bucket_policy(self, bucket: str, document: Dict[str, Any]) -> None:
        try:
            await run_io_bound(self._client.put_bucket_policy, Bucket=bucket, Policy=json.dumps(document))
            logger.info(f"Updated bucket policy of '{bucket}'")
        except ClientError as e:
            logger.error(f"Failed to put bucket policy of '{bucket}': {e}")
            raise AwsError(f"Failed to put bucket policy of '{bucket}': {e}") from e
