"""SMTP transport for submitting assembled MIME messages."""

from __future__ import annotations

import logging
import smtplib
import ssl
from collections.abc import Sequence
from email.message import EmailMessage
from typing import TYPE_CHECKING

from ..core.errors import MailConnectionError, SendError
from .tls import ConnectionParameters, apply_io_timeout, create_ssl_context

if TYPE_CHECKING:
    from ..session.base import MailSession

LOGGER = logging.getLogger(__name__)

SmtpConnection = smtplib.SMTP | smtplib.SMTP_SSL


def open_connection(session: MailSession) -> SmtpConnection:
    """Connect to the SMTP server described by ``session``.

    Authentication is left to :class:`SmtpTransport`.
    """
    params = ConnectionParameters.from_session(session)
    connection: SmtpConnection
    if params.implicit_tls:
        LOGGER.debug("Connecting to SMTP host %s:%s via SSL", params.host, params.port)
        try:
            connection = smtplib.SMTP_SSL(
                params.host,
                params.port,
                timeout=params.connect_timeout,
                context=create_ssl_context(session, params.host),
            )
        except ssl.SSLError:
            if not params.fallback:
                raise
            LOGGER.warning("TLS handshake with %s failed; falling back", params.host)
            connection = smtplib.SMTP(
                params.host, params.port, timeout=params.connect_timeout
            )
    else:
        LOGGER.debug(
            "Connecting to SMTP host %s:%s without SSL", params.host, params.port
        )
        connection = smtplib.SMTP(
            params.host, params.port, timeout=params.connect_timeout
        )
        if params.starttls:
            LOGGER.debug("Using STARTTLS for SMTP connection")
            connection.starttls(context=create_ssl_context(session, params.host))
    apply_io_timeout(getattr(connection, "sock", None), params.io_timeout)
    return connection


class SmtpTransport:
    """One SMTP connection, authenticated on entry and closed on exit.

    Example:
        >>> with SmtpTransport(session) as transport:
        ...     transport.send(message, "me@example.com", ["you@example.com"])
    """

    def __init__(self, session: MailSession) -> None:
        self._session = session
        self._connection: SmtpConnection | None = None

    def __enter__(self) -> SmtpTransport:
        self.connect()
        return self

    def __exit__(self, *args: object) -> None:
        self.disconnect()

    def connect(self) -> None:
        """Establish the SMTP connection and authenticate.

        Raises:
            MailConnectionError: If connecting or authenticating fails.
        """
        host = self._session.get(self._session.protocol.host_property)
        LOGGER.info("Attempting SMTP connection to %s", host)
        try:
            self._connection = open_connection(self._session)
            authenticator = self._session.authenticator
            if self._session.requires_auth and authenticator is not None:
                username, password = authenticator.credentials()
                LOGGER.debug("Authenticating as %s", username)
                self._connection.login(username, password)
                LOGGER.info("SMTP authentication successful")
        except smtplib.SMTPAuthenticationError as exc:
            LOGGER.error("SMTP authentication failed: %s", exc)
            self.disconnect()
            raise MailConnectionError(f"SMTP authentication failed: {exc}") from exc
        except smtplib.SMTPException as exc:
            LOGGER.error("SMTP error: %s", exc)
            self.disconnect()
            raise MailConnectionError(f"SMTP error: {exc}") from exc
        except OSError as exc:
            LOGGER.error("Network error connecting to SMTP server: %s", exc)
            self.disconnect()
            raise MailConnectionError(f"Network error: {exc}") from exc

    def disconnect(self) -> None:
        """Close the SMTP connection gracefully."""
        if self._connection is None:
            return
        try:
            self._connection.quit()
            LOGGER.debug("SMTP connection closed")
        except (smtplib.SMTPException, OSError) as exc:
            LOGGER.debug("Error closing SMTP connection: %s", exc)
        finally:
            self._connection = None

    def send(
        self, message: EmailMessage, sender: str, recipients: Sequence[str]
    ) -> None:
        """Submit ``message`` to every envelope recipient.

        The ``Bcc`` header is stripped from the transmitted copy.

        Raises:
            SendError: If not connected, or the server refuses the message or
                any recipient.
        """
        if self._connection is None:
            raise SendError("Not connected to SMTP server")
        try:
            refused = self._connection.send_message(
                message, from_addr=sender, to_addrs=list(recipients)
            )
        except smtplib.SMTPRecipientsRefused as exc:
            LOGGER.error("All recipients refused: %s", exc.recipients)
            raise SendError(f"All recipients refused: {exc.recipients}") from exc
        except smtplib.SMTPSenderRefused as exc:
            LOGGER.error("Sender refused: %s", exc)
            raise SendError(f"Sender refused: {exc}") from exc
        except (smtplib.SMTPException, OSError) as exc:
            LOGGER.error("Failed to send email: %s", exc)
            raise SendError(f"Failed to send email: {exc}") from exc
        if refused:
            LOGGER.warning("Some recipients were refused: %s", refused)
            raise SendError(f"Some recipients were refused: {refused}")
        LOGGER.info("Email sent to %d recipient(s)", len(recipients))


__all__ = ["SmtpTransport", "open_connection"]
