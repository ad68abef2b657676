import logging
from typing import Optional

from study_access_client.exceptions import AwsError, DatabaseError
from study_access_client.models import (
    RequestContext,
    StudyCreate,
    StudyUpdate,
    StudyWithPermissions,
    UpdateRequest,
    UserPermissions,
)
from study_access_client.services import (
    EnvironmentScService,
    StudyOperationService,
    StudyPermissionStore,
    StudyService,
)

logger = logging.getLogger(__name__)


class AccessClient:
    """
    Единая точка доступа к правам исследований и их распространению на окружения.
    """

    def __init__(
        self,
        study_repo=None,
        aws_sessions=None,
        study_service: StudyService | None = None,
        permission_store: StudyPermissionStore | None = None,
        environment_service: EnvironmentScService | None = None,
        operations: StudyOperationService | None = None,
    ):
        self.study_repo = study_repo
        self.aws = aws_sessions
        self.studies = study_service
        self.permissions = permission_store
        self.environments = environment_service
        self.operations = operations

    async def check_connections(self) -> dict[str, str]:
        """
        Проверяет доступность PostgreSQL и AWS. Возвращает словарь со статусами.
        """
        statuses = {}

        try:
            await self.study_repo.check_connection()
            statuses["postgres"] = "ok"
        except DatabaseError as e:
            statuses["postgres"] = f"failed: {e}"

        try:
            account = await self.aws.check_connection()
            statuses["aws"] = f"ok (account {account})"
        except AwsError as e:
            statuses["aws"] = f"failed: {e}"

        return statuses

    # ――― studies ――― #

    async def create_study(self, ctx: RequestContext, data: StudyCreate) -> StudyWithPermissions:
        return await self.studies.create(ctx, data)

    async def update_study(self, ctx: RequestContext, data: StudyUpdate) -> StudyWithPermissions:
        """Менять исследование может только его admin (или admin платформы / система)."""
        if not (ctx.is_admin or ctx.is_system):
            await self.permissions.verify_requestor_access(ctx, data.id, "PUT")
        return await self.studies.update(ctx, data)

    async def get_study_permissions(self, ctx: RequestContext, study_id: str) -> StudyWithPermissions:
        """Права исследования глазами вызывающего: readonly-исследование показывает пустые списки записи."""
        if not (ctx.is_admin or ctx.is_system):
            await self.permissions.verify_requestor_access(ctx, study_id, "GET")
        return await self.studies.get_study_permissions(study_id)

    async def get_requestor_permissions(self, ctx: RequestContext) -> Optional[UserPermissions]:
        return await self.permissions.find_by_user(ctx.uid)

    async def verify_requestor_access(self, ctx: RequestContext, study_id: str, action: str) -> None:
        await self.permissions.verify_requestor_access(ctx, study_id, action)

    # ――― propagation ――― #

    async def update_permissions(self, ctx: RequestContext, study_id: str, request: UpdateRequest) -> StudyWithPermissions:
        return await self.operations.update_permissions(ctx, study_id, request)

    async def generate_env_role_policy(self, env_id: str) -> dict:
        env = await self.environments.find(env_id)
        return await self.operations.generate_env_role_policy(env)

    async def aclose(self):
        return None
