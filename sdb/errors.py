"""Exceptions raised by the database."""

from typing import Optional

__all__ = ["SdbError", "NotFoundError", "AlreadyExistsError", "InvalidArgumentError"]


class SdbError(Exception):
    """Base class of every database error."""

    default_message = "sdb error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)


class NotFoundError(SdbError):
    """A structure that must be created first does not exist."""

    default_message = "not found"


class AlreadyExistsError(SdbError):
    """A structure being created already exists."""

    default_message = "already exists"


class InvalidArgumentError(SdbError, ValueError):
    """An argument such as an empty key or id was rejected."""

    default_message = "invalid argument"