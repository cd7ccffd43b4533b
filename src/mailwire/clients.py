"""Ready-made IMAP, POP3 and SMTP clients built from a client configuration."""

from __future__ import annotations

import logging
from typing import Any

from .core.config import ClientConfiguration
from .core.errors import MailboxError
from .core.interfaces import FolderMode, MailFolder
from .core.models import OutgoingEmail, StoredEmail
from .core.protocol import EmailProtocol
from .session.mailbox import MailboxSession
from .session.sender import SenderSession

LOGGER = logging.getLogger(__name__)


def session_arguments(
    family: str,
    username: str | None,
    password: str | None,
    host: str,
    port: int | None,
    config: ClientConfiguration,
) -> dict[str, Any]:
    """Translate façade arguments into session constructor keywords."""
    protocol = config.protocol_for(family)
    return {
        "protocol": protocol,
        "username": username,
        "password": password,
        "host": host,
        "port": port if port is not None else protocol.default_port,
        "connection_timeout": config.connection_timeout,
        "read_timeout": config.read_timeout,
        "write_timeout": config.write_timeout,
        "properties": config.session_properties(protocol),
    }


class ImapClient(MailboxSession):
    """IMAP mailbox session; IMAPS when the configuration carries TLS settings.

    Example:
        >>> with ImapClient("me", "secret", "imap.example.com") as client:
        ...     inbox = client.open_folder("INBOX", FolderMode.READ_ONLY)
        ...     emails = client.retrieve(inbox, read_content=False)
    """

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        username: str | None,
        password: str | None,
        host: str,
        port: int | None = None,
        config: ClientConfiguration | None = None,
    ) -> None:
        super().__init__(
            **session_arguments(
                "imap", username, password, host, port, config or ClientConfiguration()
            )
        )

    def get_uid_folder(self, name: str, mode: FolderMode) -> MailFolder:
        """Open ``name`` and check that it addresses messages by UID."""
        folder = self.open_folder(name, mode)
        if not folder.supports_uid:
            raise MailboxError(
                f"the specified folder:[{name}] does not support fetching emails by id"
            )
        return folder


class Pop3Client:
    """POP3 retrieval client; POP3S when the configuration carries TLS settings."""

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        username: str | None,
        password: str | None,
        host: str,
        port: int | None = None,
        config: ClientConfiguration | None = None,
    ) -> None:
        self.session = MailboxSession(
            **session_arguments(
                "pop3", username, password, host, port, config or ClientConfiguration()
            )
        )

    def __enter__(self) -> Pop3Client:
        return self

    def __exit__(self, *args: object) -> None:
        self.disconnect()

    def retrieve(
        self, folder: str, delete_after_retrieve: bool = False
    ) -> list[StoredEmail]:
        """Download every message of ``folder`` with its content.

        When ``delete_after_retrieve`` is set the retrieved messages are
        deleted from the server once all of them have been materialised.
        """
        mode = FolderMode.READ_WRITE if delete_after_retrieve else FolderMode.READ_ONLY
        opened = self.session.open_folder(folder, mode)
        emails = self.session.retrieve(opened, read_content=True)
        if delete_after_retrieve and emails:
            messages = [opened.get_message(email.number) for email in emails]
            self.session.delete_messages(messages)
            LOGGER.info("Deleted %d retrieved message(s) from %s", len(emails), folder)
        return emails

    def disconnect(self) -> None:
        self.session.disconnect()


class SmtpClient:
    """SMTP sending client; SMTPS when the configuration carries TLS settings."""

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        username: str | None,
        password: str | None,
        host: str,
        port: int | None = None,
        config: ClientConfiguration | None = None,
    ) -> None:
        self.session = SenderSession(
            **session_arguments(
                "smtp", username, password, host, port, config or ClientConfiguration()
            )
        )

    def __enter__(self) -> SmtpClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.disconnect()

    @property
    def protocol(self) -> EmailProtocol:
        return self.session.protocol

    def send(self, email: OutgoingEmail) -> None:
        self.session.send_message(email)

    def disconnect(self) -> None:
        self.session.disconnect()


__all__ = ["ImapClient", "Pop3Client", "SmtpClient", "session_arguments"]
