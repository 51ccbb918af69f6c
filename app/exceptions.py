"""
Errors raised by the logbook lifecycle.

Each error carries the HTTP status the API answers with, so routers can let
them propagate and the handler registered in app.main does the translation.
"""


class LogbookError(Exception):
    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class InvalidWeek(LogbookError, ValueError):
    """Week number is not a positive integer."""
    status_code = 422


class InvalidEntry(LogbookError, ValueError):
    """Entry payload fails validation (missing content, bad time range)."""
    status_code = 422


class Unauthenticated(LogbookError):
    status_code = 401


class Forbidden(LogbookError):
    """Actor lacks permission for the requested operation."""
    status_code = 403


class NotFound(LogbookError):
    """Requested entry, week or profile does not exist (or has no entries)."""
    status_code = 404


class InvalidTransition(LogbookError):
    """The week is not in a state the requested transition starts from."""
    status_code = 409


class StoreUnavailable(LogbookError):
    """The database call failed; nothing is retried automatically."""
    status_code = 503
