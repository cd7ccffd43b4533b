"""Core models, configuration, logging and error types."""

from .builder import EmailBuilder
from .config import (
    AppSettings,
    ClientConfiguration,
    LoggingSettings,
    ServerSettings,
    TlsConfiguration,
    load_app_settings,
)
from .errors import (
    ContentProcessingError,
    CredentialsError,
    InvariantViolation,
    MailboxError,
    MailConnectionError,
    MailError,
    RetrievalError,
    SendError,
    UnsupportedOperationError,
)
from .logging import configure_logging
from .models import (
    Email,
    EmailAttachment,
    EmailBody,
    EmailFlag,
    EmailFlags,
    OutgoingEmail,
    StoredEmail,
)
from .protocol import EmailProtocol

__all__ = [
    "AppSettings",
    "ClientConfiguration",
    "ContentProcessingError",
    "CredentialsError",
    "Email",
    "EmailAttachment",
    "EmailBody",
    "EmailBuilder",
    "EmailFlag",
    "EmailFlags",
    "EmailProtocol",
    "InvariantViolation",
    "LoggingSettings",
    "MailConnectionError",
    "MailError",
    "MailboxError",
    "OutgoingEmail",
    "RetrievalError",
    "SendError",
    "ServerSettings",
    "StoredEmail",
    "TlsConfiguration",
    "UnsupportedOperationError",
    "configure_logging",
    "load_app_settings",
]
