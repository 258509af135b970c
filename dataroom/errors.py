# dataroom/errors.py
from __future__ import annotations


class DataRoomError(Exception):
    """
    Base for the failures a single user action can hit.
    None of them end the session; they are reported inline and the user
    can act again.
    """
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(DataRoomError):
    """Unknown or malformed share token."""
    status_code = 404
    default_message = "Document not found or link expired."


class ExpiredError(DataRoomError):
    status_code = 410
    default_message = "This link has expired."


class AuthGateError(DataRoomError):
    """Wrong password, rejected email or wrong code. Retry is unlimited."""
    status_code = 403
    default_message = "Access denied"


class StorageError(DataRoomError):
    """Object store or metadata store failure; message is shown verbatim."""
    status_code = 502
    default_message = "Storage operation failed"
