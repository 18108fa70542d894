from fastapi import HTTPException, status

from models.exceptions import (
    ConversationServiceError,
    InvalidState,
    NotFound,
    PermissionDenied,
    ValidationError,
)

STATUS_BY_ERROR = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    PermissionDenied: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidState: status.HTTP_409_CONFLICT,
}

def to_http_exception(error: ConversationServiceError) -> HTTPException:
    """Map a service failure onto the status code the client should see"""
    status_code = STATUS_BY_ERROR.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(
        status_code=status_code,
        detail={"code": error.code, "message": error.message},
    )
