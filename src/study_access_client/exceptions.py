class AccessClientError(Exception):
    """Base class."""


class DatabaseError(AccessClientError):
    pass
class NotFoundError(AccessClientError):
    pass


class ValidationError(AccessClientError):
    pass


class PolicyViolationError(ValidationError):
    """Операция запрещена правилами категории исследования (Open Data, My Studies) или его accessType."""


class ForbiddenError(AccessClientError):
    pass


class ConflictError(AccessClientError):
    """Оптимистическая блокировка: запись изменилась (rev) или уже существует."""


class CapacityExceededError(AccessClientError):
    def __init__(self, total: int, limit: int):
        self.total = total
        self.limit = limit
        super().__init__(
            f"This operation requires the system to update {total} workspaces. Please terminate some of the "
            f"workspaces that are using the study, or update the permissions of a few users at time. "
            f"The limit is {limit} workspaces that can be updated at a time."
        )


class LockError(AccessClientError):
    pass


class ResourceNotReadyError(AccessClientError):
    """Роль окружения еще не создана (окружение в процессе провижининга)."""


class AwsError(AccessClientError):
    pass


class PartialPropagationError(AccessClientError):
    """
    Запись прав уже сохранена, но часть окружений не удалось обновить.
    failures: [{"environment_id": ..., "reason": ...}]
    """

    def __init__(self, failures: list[dict]):
        self.failures = failures
        count = len(failures)
        super().__init__(f"Could not process at least {count} workspace{'s' if count > 1 else ''}")
