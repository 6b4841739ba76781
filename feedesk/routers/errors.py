from fastapi import HTTPException

from feedesk.services.exceptions import (
    ActionInProgressError,
    InvalidRequestError,
    NotFoundError,
    ServiceError,
)


def to_http_error(exc: ServiceError, failure_message: str) -> HTTPException:
    """Map a service failure onto the HTTP error shown to the user.

    Backend failures are reported with ``failure_message`` only; their details
    stay in the logs.
    """

    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidRequestError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, ActionInProgressError):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=502, detail=failure_message)
