"""Error taxonomy for entry saving and ticket system synchronization."""

from typing import Optional


class TimetrackerError(Exception):
    """Base class for all errors raised by this package."""

    def __init__(self, message: str, code: int = 0):
        super().__init__(message)
        self.message = message
        self.code = code


class PreconditionError(TimetrackerError):
    """A required project, ticket system, lead user or token is missing.

    Raised before any remote call is made. ``code`` is an HTTP-like status.
    """


class EntryValidationError(TimetrackerError):
    """The incoming entry data is invalid; the save is aborted before commit."""

    def __init__(self, message: str, code: int = 406):
        super().__init__(message, code)


class JiraApiError(TimetrackerError):
    """Any failure talking to a Jira ticket system.

    Messages are prefixed with ``Jira: `` exactly once. The underlying cause is
    kept as ``__cause__`` by raising with ``from``.
    """

    PREFIX = "Jira: "

    def __init__(self, message: str, code: int = 0, redirect_url: Optional[str] = None):
        if not message.startswith(self.PREFIX):
            message = self.PREFIX + message
        super().__init__(message, code)
        self.redirect_url = redirect_url


class JiraApiUnauthorizedError(JiraApiError):
    """The user's token was rejected; the user has to re-authorize."""

    def __init__(self, message: str, code: int = 401, redirect_url: Optional[str] = None):
        super().__init__(message, code, redirect_url)


class JiraApiInvalidResourceError(JiraApiError):
    """The requested Jira resource (issue, work-log) does not exist."""

    def __init__(self, message: str, code: int = 404, redirect_url: Optional[str] = None):
        super().__init__(message, code, redirect_url)
