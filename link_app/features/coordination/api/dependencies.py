"""
Request dependencies for the coordination routes.
"""

from fastapi import Header, HTTPException, Request, status

from link_app.features.coordination.domain import (
    AuthError,
    CoordinationError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from link_app.features.coordination.services.coordination_service import CoordinationService

_STATUS_BY_ERROR = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    AuthError: status.HTTP_401_UNAUTHORIZED,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
}


def get_coordination_service(request: Request) -> CoordinationService:
    return request.app.state.coordination


def current_user_id(x_user_id: int | None = Header(default=None)) -> int:
    """
    Acting user id from the ``X-User-Id`` header.

    Identity is established upstream (gateway or session layer); this
    service only needs to know who is acting.
    """
    if x_user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header"
        )
    return x_user_id


def http_error(error: CoordinationError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=error.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error.message)
