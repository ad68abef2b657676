# Файл: study_access_client/models/environment.py

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

WORKSPACE_ROLE_OUTPUT_KEY = "WorkspaceInstanceRoleArn"

# Окружения в этих статусах больше не считаются активными
INACTIVE_STATUSES = ("TERMINATING", "TERMINATED")


def is_active_status(status: str | None) -> bool:
    if not status:
        return False
    return status not in INACTIVE_STATUSES and "FAILED" not in status


class EnvironmentSc(BaseModel):
    id: str
    name: Optional[str] = None
    created_by: str = Field(..., alias="createdBy")
    status: str = "PENDING"
    study_ids: List[str] = Field(default_factory=list, alias="studyIds")
    # Выходы CloudFormation стека: [{"OutputKey": ..., "OutputValue": ...}]
    outputs: List[Dict[str, Any]] = Field(default_factory=list)
    project_id: Optional[str] = Field(None, alias="projectId")
    cfn_execution_role_arn: Optional[str] = Field(None, alias="cfnExecutionRoleArn")
    role_external_id: Optional[str] = Field(None, alias="roleExternalId")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    @property
    def is_active(self) -> bool:
        return is_active_status(self.status)

    @property
    def workspace_role_arn(self) -> Optional[str]:
        for output in self.outputs:
            if output.get("OutputKey") == WORKSPACE_ROLE_OUTPUT_KEY:
                return output.get("OutputValue")
        return None
