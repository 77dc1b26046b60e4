"""
Contains exception classes used by davkit. Not all exceptions are here,
only the most commonly used ones.
"""


class Error(Exception):
    """Baseclass for all errors."""

    def __init__(self, *args, **kwargs):
        for key, value in kwargs.items():
            if getattr(self, key, object()) is not None:  # pragma: no cover
                raise TypeError(f"Invalid argument: {key}")
            setattr(self, key, value)

        super().__init__(*args)


class UserError(Error, ValueError):
    """Wrapper exception to be used to signify the traceback should not be
    shown to the user."""

    problems = None

    def __str__(self):
        msg = Error.__str__(self)
        for problem in self.problems or ():
            msg += f"\n  - {problem}"

        return msg


class AccountNotFound(Error):
    """Account not found in the configuration."""

    account_name = None


class PreconditionError(Error, ValueError):
    """
    An account is missing a field that an operation depends on, e.g.
    ``home_url`` before fetching collections. Nothing was sent to the server.

    :param missing: Names of the missing fields.
    """

    missing = None


class TransportError(Error):
    """
    The request could not be completed: the connection failed or the server
    answered with an HTTP error.

    :param status: The HTTP status, if the server answered at all.
    :param url: The requested URL.
    """

    status = None
    url = None


class PreconditionFailed(TransportError):
    """
    The server rejected a conditional request (412):
      - The item doesn't exist although it should
      - The item exists although it shouldn't
      - The etags don't match.

    Due to CalDAV we can't always say which error it is.
    This error may indicate race conditions.
    """


class NotFoundError(TransportError):
    """Resource not found"""


class ConflictError(PreconditionFailed):
    """The resource to be created already exists."""

    existing_href = None


class StaleETagError(PreconditionFailed):
    """The etag is outdated, the object must be fetched again."""

    etag = None


class InvalidResponse(Error, ValueError):
    """The server returned an invalid result."""
