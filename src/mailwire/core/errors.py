"""Exception hierarchy shared by every mailwire component."""

from __future__ import annotations

from enum import Enum


class MissingAttribute(str, Enum):
    """Attribute an outgoing email cannot be built without."""

    FROM = "FROM"
    BODY = "BODY"
    RECIPIENTS = "RECIPIENTS"


class MailError(RuntimeError):
    """Base exception for all mailwire failures."""


class InvariantViolation(MailError, ValueError):
    """Raised when a caller breaks a precondition.

    Attributes:
        attribute: The missing email attribute, when the violation comes from
            building an outgoing email.
    """

    def __init__(
        self, message: str, attribute: MissingAttribute | None = None
    ) -> None:
        """Store the message and the optional missing attribute."""
        super().__init__(message)
        self.attribute = attribute


class MailConnectionError(MailError):
    """Raised when a session cannot be established or maintained."""


class CredentialsError(MailConnectionError, InvariantViolation):
    """Raised when only one of username and password is supplied."""


class MailboxError(MailError):
    """Raised when a folder cannot be opened, closed, or addressed."""


class RetrievalError(MailError):
    """Raised when listing, fetching, searching, or UID lookup fails."""


class SendError(MailError):
    """Raised when an outgoing message cannot be assembled or transmitted."""


class ContentProcessingError(MailError):
    """Raised when a MIME tree cannot be walked."""


class UnsupportedOperationError(MailError, NotImplementedError):
    """Raised when reading an attribute the email variant does not define."""


__all__ = [
    "ContentProcessingError",
    "CredentialsError",
    "InvariantViolation",
    "MailConnectionError",
    "MailError",
    "MailboxError",
    "MissingAttribute",
    "RetrievalError",
    "SendError",
    "UnsupportedOperationError",
]
