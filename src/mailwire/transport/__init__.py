"""Transport adapters over imaplib, poplib and smtplib."""

from .imap_client import ImapFolder, ImapStore
from .pop3_client import Pop3Folder, Pop3Store
from .smtp_client import SmtpTransport
from .tls import ConnectionParameters, create_ssl_context

__all__ = [
    "ConnectionParameters",
    "ImapFolder",
    "ImapStore",
    "Pop3Folder",
    "Pop3Store",
    "SmtpTransport",
    "create_ssl_context",
]
