# Файл: study_access_client/repositories/iam_repository.py

import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import unquote

from botocore.exceptions import ClientError

from study_access_client.exceptions import AwsError
from study_access_client.models.environment import EnvironmentSc
from study_access_client.utils.io_async import run_io_bound

logger = logging.getLogger(__name__)


def decode_policy_document(document) -> Dict[str, Any]:
    # boto3 обычно сам декодирует документ, но urlencoded-строка тоже встречается
    if isinstance(document, str):
        return json.loads(unquote(document))
    return document


def _error_code(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Code", "")


class IamRepository:
    """Inline-политики роли окружения. Клиент IAM берется из member-аккаунта окружения."""

    def __init__(self, aws):
        self._aws = aws

    def _client(self, env: EnvironmentSc):
        return self._aws.get_client("iam", role_arn=env.cfn_execution_role_arn, external_id=env.role_external_id)

    async def get_role_policy(self, env: EnvironmentSc, role_name: str, policy_name: str) -> Optional[Dict[str, Any]]:
        """Документ inline-политики или None, если такой политики у роли нет."""
        client = await run_io_bound(self._client, env)
        try:
            response = await run_io_bound(client.get_role_policy, RoleName=role_name, PolicyName=policy_name)
        except ClientError as e:
            if _error_code(e) == "NoSuchEntity":
                return None
            logger.error(f"Failed to get policy {policy_name} of role {role_name}: {e}")
            raise AwsError(f"Failed to get role policy {policy_name}: {e}") from e
        return decode_policy_document(response["PolicyDocument"])

    async def put_role_policy(self, env: EnvironmentSc, role_name: str, policy_name: str, document: Dict[str, Any]) -> None:
        client = await run_io_bound(self._client, env)
        try:
            await run_io_bound(
                client.put_role_policy,
                RoleName=role_name,
                PolicyName=policy_name,
                PolicyDocument=json.dumps(document),
            )
            logger.info(f"Put policy {policy_name} on role {role_name} (env {env.id})")
        except ClientError as e:
            logger.error(f"Failed to put policy {policy_name} on role {role_name}: {e}")
            raise AwsError(f"Failed to put role policy {policy_name}: {e}") from e

    async def delete_role_policy(self, env: EnvironmentSc, role_name: str, policy_name: str) -> None:
        client = await run_io_bound(self._client, env)
        try:
            await run_io_bound(client.delete_role_policy, RoleName=role_name, PolicyName=policy_name)
            logger.info(f"Deleted policy {policy_name} from role {role_name} (env {env.id})")
        except ClientError as e:
            if _error_code(e) == "NoSuchEntity":
                return
            logger.error(f"Failed to delete policy {policy_name} from role {role_name}: {e}")
            raise AwsError(f"Failed to delete role policy {policy_name}: {e}") from e
