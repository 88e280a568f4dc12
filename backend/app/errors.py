"""Domain error taxonomy.

Each error is an ``HTTPException`` so services can raise it directly and the
HTTP layer maps it to a status code and an ``{"error": ...}`` body.
"""
from fastapi import HTTPException, status


class ValidationError(HTTPException):
    def __init__(self, detail: str = "Validation error"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class Unauthenticated(HTTPException):
    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class Forbidden(HTTPException):
    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFound(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class Conflict(HTTPException):
    def __init__(self, detail: str = "Conflict"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class AlreadyApproved(Conflict):
    def __init__(self, detail: str = "Event is already approved"):
        super().__init__(detail=detail)


class EventNotApproved(HTTPException):
    def __init__(self, detail: str = "Cannot RSVP to unapproved event"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
