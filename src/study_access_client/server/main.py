# Файл: study_access_client/server/main.py
from functools import lru_cache
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, status

from study_access_client import AccessClient, create_access_client
from study_access_client.exceptions import (
    AccessClientError,
    CapacityExceededError,
    ConflictError,
    ForbiddenError,
    LockError,
    NotFoundError,
    PartialPropagationError,
    ResourceNotReadyError,
    ValidationError,
)
from study_access_client.models import RequestContext, UpdateRequest

router = APIRouter(prefix="/studies", tags=["Study Permissions"])

# Порядок важен: PolicyViolationError - подкласс ValidationError
_STATUS_BY_ERROR = (
    (CapacityExceededError, status.HTTP_400_BAD_REQUEST),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (LockError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ResourceNotReadyError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


@lru_cache
def get_access_client() -> AccessClient:
    return create_access_client()


def get_request_context(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_is_admin: Annotated[bool, Header()] = False,
) -> RequestContext:
    """
    Заглушка: настоящая аутентификация подменяет эту зависимость
    (app.dependency_overrides[get_request_context]).
    """
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return RequestContext(uid=x_user_id, is_admin=x_user_is_admin)


def to_http_error(error: AccessClientError) -> HTTPException:
    if isinstance(error, PartialPropagationError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": str(error), "failures": error.failures},
        )
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=code, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="An internal error occurred.")


@router.get("/{study_id}/permissions")
async def get_study_permissions(
    study_id: str,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    client: Annotated[AccessClient, Depends(get_access_client)],
):
    try:
        study = await client.get_study_permissions(ctx, study_id)
    except AccessClientError as e:
        raise to_http_error(e) from e
    return study.to_response()


@router.put("/{study_id}/permissions")
async def update_study_permissions(
    study_id: str,
    update_request: UpdateRequest,
    ctx: Annotated[RequestContext, Depends(get_request_context)],
    client: Annotated[AccessClient, Depends(get_access_client)],
):
    """
    Тело запроса: { usersToAdd: [{uid, permissionLevel}], usersToRemove: [{uid, permissionLevel}] }.
    Невалидное тело FastAPI отклоняет с 422 еще до вызова.
    """
    try:
        study = await client.update_permissions(ctx, study_id, update_request)
    except AccessClientError as e:
        raise to_http_error(e) from e
    return study.to_response()
