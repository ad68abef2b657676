# Файл: study_access_client/repositories/kms_repository.py

import json
import logging
from typing import Any, Dict

from botocore.exceptions import ClientError

from study_access_client.exceptions import AwsError
from study_access_client.utils.io_async import run_io_bound

logger = logging.getLogger(__name__)

# У ключа KMS ровно одна политика, и называется она всегда так
KEY_POLICY_NAME = "default"


class KmsRepository:
    def __init__(self, aws):
        self._client = aws.get_client("kms")

    async def describe_key(self, key_alias: str) -> Dict[str, Any]:
        try:
            response = await run_io_bound(self._client.describe_key, KeyId=key_alias)
        except ClientError as e:
            raise AwsError(f"Failed to describe kms key '{key_alias}': {e}") from e
        return response["KeyMetadata"]

    async def get_key_policy(self, key_id: str) -> Dict[str, Any]:
        try:
            response = await run_io_bound(self._client.get_key_policy, KeyId=key_id, PolicyName=KEY_POLICY_NAME)
        except ClientError as e:
            raise AwsError(f"Failed to get policy of kms key '{key_id}': {e}") from e
        return json.loads(response["Policy"])

    async def put_key_policy(self, key_id: str, document: Dict[str, Any]) -> None:
        try:
            await run_io_bound(
                self._client.put_key_policy,
                KeyId=key_id,
                PolicyName=KEY_POLICY_NAME,
                Policy=json.dumps(document),
            )
            logger.info(f"Updated policy of kms key '{key_id}'")
        except ClientError as e:
            logger.error(f"Failed to put policy of kms key '{key_id}': {e}")
            raise AwsError(f"Failed to put policy of kms key '{key_id}': {e}") from e
