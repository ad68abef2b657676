# Файл: study_access_client/models/context.py

from pydantic import BaseModel, ConfigDict

SYSTEM_UID = "_system_"


class RequestContext(BaseModel):
    """
    Кто выполняет операцию. Используется для авторизации и для аудита.
    Системный контекст передается явно, глобального состояния нет.
    """
    model_config = ConfigDict(frozen=True)

    uid: str
    is_admin: bool = False
    is_system: bool = False


def system_request_context() -> RequestContext:
    return RequestContext(uid=SYSTEM_UID, is_admin=True, is_system=True)
