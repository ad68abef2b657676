# Файл: study_access_client/repositories/aws_session.py

import logging
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from study_access_client.config import AwsConfig
from study_access_client.exceptions import AwsError
from study_access_client.utils.io_async import run_io_bound

logger = logging.getLogger(__name__)


class AwsSessionFactory:
    """
    Выдает boto3-клиенты. Без role_arn - клиент основного аккаунта,
    с role_arn - клиент member-аккаунта через STS AssumeRole (с external id).
    """

    def __init__(self, config: AwsConfig):
        self._config = config
        self._session = boto3.session.Session(region_name=config.region)

    @property
    def config(self) -> AwsConfig:
        return self._config

    def get_client(self, service: str, role_arn: Optional[str] = None, external_id: Optional[str] = None):
        if not role_arn:
            return self._session.client(service, endpoint_url=self._config.endpoint_url)

        sts = self._session.client("sts", endpoint_url=self._config.endpoint_url)
        assume_kwargs = {"RoleArn": role_arn, "RoleSessionName": f"study-access-{service}"}
        if external_id:
            assume_kwargs["ExternalId"] = external_id
        try:
            creds = sts.assume_role(**assume_kwargs)["Credentials"]
        except ClientError as e:
            logger.error(f"Failed to assume role {role_arn}: {e}")
            raise AwsError(f"Failed to assume role {role_arn}: {e}") from e
        return self._session.client(
            service,
            endpoint_url=self._config.endpoint_url,
            aws_access_key_id=creds["AccessKeyId"],
            aws_secret_access_key=creds["SecretAccessKey"],
            aws_session_token=creds["SessionToken"],
        )

    async def check_connection(self) -> str:
        """Возвращает id аккаунта текущих учетных данных."""
        try:
            sts = self.get_client("sts")
            identity = await run_io_bound(sts.get_caller_identity)
            return identity["Account"]
        except (ClientError, BotoCoreError) as e:
            raise AwsError(f"AWS is not reachable: {e}") from e
