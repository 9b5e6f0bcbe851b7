"""
Domain errors raised by the services layer.

Each carries the HTTP status the API answers with; app.main registers one
handler that turns them into ``{"detail": ...}`` responses. Duplicate-key
conflicts during placeholder creation never reach this module: the
synchronizer swallows them.
"""

from fastapi import status


class DomainError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationFailedError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST


class DeadlineExceededError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str = "Task deadline has passed."):
        super().__init__(detail)


class SubmissionLockedError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str = "Cannot update submission as task has already been graded."):
        super().__init__(detail)


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, entity_id=None):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class ForbiddenError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN


class NotEnrolledError(ForbiddenError):
    def __init__(self, detail: str = "Not enrolled in this course"):
        super().__init__(detail)


class ConflictError(DomainError):
    status_code = status.HTTP_409_CONFLICT
