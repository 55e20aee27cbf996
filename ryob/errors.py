from typing import Optional


class ForumError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.message)
        if message:
            self.message = message


class BadLogin(ForumError):
    status_code = 401
    message = "Bad login"


class NoSuchUser(ForumError):
    status_code = 404
    message = "No such user"


class NoSuchTopic(ForumError):
    status_code = 404
    message = "No such topic"


class NameAlreadyInUse(ForumError):
    status_code = 409
    message = "Name already in use"


class HashFailure(ForumError):
    message = "Password hashing failed"


class StorageFailure(ForumError):
    message = "Storage failure"


class SessionFailure(ForumError):
    message = "Unreadable session"
