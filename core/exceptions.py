"""Domain errors of the matching core.

Each error carries a stable message and the HTTP status the routers map it
to. None of them are retried: they are client-input errors reported back
synchronously.
"""
from starlette import status


class MatchingError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    message: str = "Bad request"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class Unauthenticated(MatchingError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Unauthorized"


class SelfInteraction(MatchingError):
    message = "Cannot like yourself"


class InvalidAction(MatchingError):
    message = "Action must be LIKE or PASS"


class DuplicateInteraction(MatchingError):
    message = "Already interacted with this user"


class NotFound(MatchingError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "User not found"


class MessagingRestricted(MatchingError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Can only message matched users"
