"""mailwire: send and retrieve email over SMTP, IMAP and POP3."""

import logging

from .clients import ImapClient, Pop3Client, SmtpClient
from .core import (
    ClientConfiguration,
    EmailAttachment,
    EmailBody,
    EmailBuilder,
    EmailFlag,
    EmailProtocol,
    TlsConfiguration,
)
from .core.interfaces import FolderMode

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "ClientConfiguration",
    "EmailAttachment",
    "EmailBody",
    "EmailBuilder",
    "EmailFlag",
    "EmailProtocol",
    "FolderMode",
    "ImapClient",
    "Pop3Client",
    "SmtpClient",
    "TlsConfiguration",
]
