"""Mapping from engine errors to HTTP responses"""
from fastapi import HTTPException, status

from progress_engine.errors import (
    ConcurrentModificationError,
    NotFoundError,
    PersistenceError,
    ProgressError,
    ValidationError,
)

STATUS_BY_ERROR = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConcurrentModificationError: status.HTTP_409_CONFLICT,
    PersistenceError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def to_http_exception(error: ProgressError) -> HTTPException:
    status_code = STATUS_BY_ERROR.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=status_code, detail={'code': error.code, 'message': error.message})
