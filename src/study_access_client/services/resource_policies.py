# Файл: study_access_client/services/resource_policies.py

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from ..config import AwsConfig
from ..policy.resource_policy import PrincipalChange, patch_bucket_policy, patch_key_policy

logger = logging.getLogger(__name__)


class ResourcePolicyService:
    """
    Principal роли окружения в bucket policy общего бакета и в key policy KMS-ключа.
    Обе политики общие для всех окружений, поэтому read-modify-write идет под
    отдельной блокировкой на бакет и на ключ.
    """

    def __init__(self, s3_repo, kms_repo, lock_service, config: AwsConfig):
        self._s3 = s3_repo
        self._kms = kms_repo
        self._locks = lock_service
        self._config = config
        self._kms_key_arn: Optional[str] = config.study_data_kms_key_arn

    @property
    def bucket_name(self) -> str:
        return self._config.study_data_bucket_name

    async def get_kms_key_arn(self) -> str:
        if not self._kms_key_arn:
            metadata = await self._kms.describe_key(self._config.kms_key_alias)
            self._kms_key_arn = metadata["Arn"]
        return self._kms_key_arn

    async def add_role_arn(self, role_arn: str, s3_prefixes: List[str]) -> None:
        await self._update(PrincipalChange.add, role_arn, s3_prefixes)

    async def remove_role_arn(self, role_arn: str, s3_prefixes: List[str], *, keep_key_access: bool = False) -> None:
        """
        keep_key_access: роль еще читает другие исследования бакета, principal в key policy остается.
        """
        await self._update(PrincipalChange.remove, role_arn, s3_prefixes, update_key=not keep_key_access)

    async def _update(
        self, change: PrincipalChange, role_arn: str, s3_prefixes: List[str], *, update_key: bool = True
    ) -> None:
        if not s3_prefixes:
            return
        bucket = self.bucket_name
        alias = self._config.kms_key_alias

        async def _update_bucket_policy():
            policy = await self._s3.get_bucket_policy(bucket)
            patched = patch_bucket_policy(
                policy,
                bucket=bucket,
                prefixes=s3_prefixes,
                role_arn=role_arn,
                change=change,
                partition=self._config.partition,
            )
            await self._s3.put_bucket_policy(bucket, patched)

        async def _update_key_policy():
            key_id = (await self._kms.describe_key(alias))["KeyId"]
            policy = await self._kms.get_key_policy(key_id)
            patched = patch_key_policy(
                policy,
                sid=self._config.study_data_kms_policy_workspace_sid,
                role_arn=role_arn,
                change=change,
            )
            await self._kms.put_key_policy(key_id, patched)

        updates = [self._locks.try_write_lock_and_run(f"s3|bucket-policy|{bucket}", _update_bucket_policy)]
        if update_key:
            updates.append(self._locks.try_write_lock_and_run(f"kms|key-policy|{alias}", _update_key_policy))
        await asyncio.gather(*updates)
        logger.info(f"Resource policies updated ({change.value} {role_arn}, {len(s3_prefixes)} prefix(es))")
