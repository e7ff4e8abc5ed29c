"""
Error taxonomy for the IAM core.

Services raise these; ``admin_iam.main`` turns them into a stable JSON body.
Unauthenticated, Forbidden and Internal always surface with a fixed message:
the reason passed at raise time is for the logs only.
"""
from fastapi import status


class IamError(Exception):
    """Base class for every business error raised by the IAM core."""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL"
    default_message: str = "Internal Server Error"
    expose_message: bool = False

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def public_message(self) -> str:
        """Message safe to return to the caller."""
        return self.message if self.expose_message else self.default_message


class Unauthenticated(IamError):
    """No verified principal on the request."""
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHENTICATED"
    default_message = "Unauthorized"


class Forbidden(IamError):
    """Principal present but denied. All causes look the same to the caller."""
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"
    default_message = "Forbidden"


class NotFound(IamError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    default_message = "Not found"
    expose_message = True


class Conflict(IamError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"
    default_message = "Conflict"
    expose_message = True


class InternalError(IamError):
    """Storage or audit failure."""
