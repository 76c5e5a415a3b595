class AppError(Exception):
    """Base class for failures that are reported to the caller."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    status_code = 400


class NotFoundError(AppError):
    # Absent and foreign-owned entities share this error and its message
    status_code = 404


class AuthError(AppError):
    status_code = 401


class ConflictError(AppError):
    status_code = 409


class ProviderFailure(AppError):
    """The external suggestion provider errored, timed out or answered garbage.

    Never leaves AIService: the caller always gets the fallback instead.
    """

    status_code = 502


class ConsistencyViolation(AppError):
    """A goal's status disagrees with its subtasks. Indicates a defect."""


def goal_not_found() -> NotFoundError:
    return NotFoundError("Goal not found")


def subtask_not_found() -> NotFoundError:
    return NotFoundError("Subtask not found")
