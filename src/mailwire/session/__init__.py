"""Mail sessions: property tables, retrieval and sending."""

from .base import MailSession, PasswordAuthenticator
from .mailbox import MailboxSession
from .sender import SenderSession

__all__ = [
    "MailSession",
    "MailboxSession",
    "PasswordAuthenticator",
    "SenderSession",
]
