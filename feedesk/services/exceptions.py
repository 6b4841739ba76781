class ServiceError(Exception):
    """Base exception for service layer failures."""

    def __init__(self, message: str, *, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class DownstreamServiceError(ServiceError):
    """Raised when the hosted backend returns an error response or is unreachable."""

    def __init__(self, message: str, status_code: int | None = None, *, cause: Exception | None = None):
        super().__init__(message, cause=cause)
        self.status_code = status_code


class NotFoundError(ServiceError):
    """Raised when a record addressed by id does not exist."""


class InvalidRequestError(ServiceError):
    """Raised when a request is rejected before any backend call is made."""


class ActionInProgressError(ServiceError):
    """Raised when an action is triggered again before the previous run settled."""

    def __init__(self, action: str):
        super().__init__(f"{action} is already in progress")
        self.action = action
