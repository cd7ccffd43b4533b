"""MIME assembly and SMTP submission of outgoing emails."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from email import policy
from email.message import EmailMessage
from email.utils import format_datetime, formataddr, getaddresses
from typing import TYPE_CHECKING

from ..core.errors import (
    InvariantViolation,
    MailConnectionError,
    MissingAttribute,
    SendError,
)
from ..core.models import EmailAttachment, EmailBody, OutgoingEmail
from ..transport.smtp_client import SmtpTransport

if TYPE_CHECKING:
    from ..session.base import MailSession

LOGGER = logging.getLogger(__name__)

INLINE = "inline"
FALLBACK_CHARSET = "utf-8"


def validate_address(address: str) -> tuple[str, str]:
    """Parse one address into ``(display_name, addr_spec)``.

    Raises:
        SendError: If ``address`` is not exactly one well formed address.
    """
    parsed = getaddresses([address])
    if len(parsed) != 1:
        raise SendError(f"Invalid email address [{address}]")
    display_name, addr_spec = parsed[0]
    local, _, domain = addr_spec.rpartition("@")
    if not local or not domain or any(ch.isspace() for ch in addr_spec):
        raise SendError(f"Invalid email address [{address}]")
    return display_name, addr_spec


def _format_addresses(addresses: Iterable[str]) -> str:
    return ", ".join(formataddr(validate_address(a)) for a in addresses)


def _text_subtype(media_type: str) -> str:
    maintype, _, subtype = media_type.partition("/")
    if maintype != "text" or not subtype or subtype == "*":
        return "plain"
    return subtype


def _encodable_charset(content: str, charset: str | None) -> str:
    """Return ``charset`` when it can encode ``content``, else UTF-8."""
    if charset:
        try:
            content.encode(charset)
        except (LookupError, UnicodeEncodeError):
            LOGGER.debug("Charset %s cannot encode content; using UTF-8", charset)
        else:
            return charset
    return FALLBACK_CHARSET


def _set_body(message: EmailMessage, body: EmailBody, default_charset: str) -> None:
    message.set_content(
        body.content,
        subtype=_text_subtype(body.format),
        charset=_encodable_charset(body.content, body.charset or default_charset),
        disposition=INLINE,
    )


def _add_attachment(message: EmailMessage, attachment: EmailAttachment) -> None:
    maintype, _, subtype = attachment.format.partition("/")
    subtype = subtype or "octet-stream"
    content = attachment.content
    params: dict[str, str] = {}
    if isinstance(content, str):
        # Encoded octets round-trip exactly, with no trailing line break.
        charset = _encodable_charset(content, attachment.charset)
        content = content.encode(charset)
        if maintype == "text":
            params["charset"] = charset
    elif maintype == "text" and attachment.charset:
        params["charset"] = attachment.charset
    message.add_attachment(
        content,
        maintype=maintype or "application",
        subtype=subtype,
        filename=attachment.id,
        params=params or None,
    )


def build_mime_message(
    email: OutgoingEmail, default_charset: str = FALLBACK_CHARSET
) -> EmailMessage:
    """Assemble the wire message for ``email``.

    A message without attachments is a single inline part. Otherwise it is a
    ``multipart/mixed`` holding the inline body followed by one attachment
    part per attachment, in order.

    Raises:
        InvariantViolation: If ``email`` has no From address.
        SendError: If an address is invalid or a header cannot be set.
    """
    if not email.from_addresses:
        raise InvariantViolation(
            "Cannot send an email without a From address", MissingAttribute.FROM
        )
    message = EmailMessage(policy=policy.default)
    try:
        # Only the first From address is sent.
        message["From"] = formataddr(validate_address(email.from_addresses[0]))
        for name, addresses in (
            ("To", email.to_addresses),
            ("Cc", email.cc_addresses),
            ("Bcc", email.bcc_addresses),
        ):
            if addresses:
                message[name] = _format_addresses(addresses)
        message["Date"] = format_datetime(datetime.now().astimezone())
        message["Subject"] = email.subject or ""
        if email.reply_to_addresses:
            message["Reply-To"] = _format_addresses(email.reply_to_addresses)
        for header in email.headers:
            message[header.name] = header.value

        _set_body(message, email.body, default_charset)
        for attachment in email.attachments:
            _add_attachment(message, attachment)
    except (ValueError, TypeError) as exc:
        raise SendError(f"Error while building the outgoing message: {exc}") from exc
    return message


def envelope_recipients(email: OutgoingEmail) -> list[str]:
    """Bare addresses of every To, Cc and Bcc recipient."""
    return [validate_address(address)[1] for address in email.recipients]


def send_email(session: MailSession, email: OutgoingEmail) -> None:
    """Assemble ``email`` and submit it over a fresh SMTP connection.

    Raises:
        SendError: If assembly, connection or submission fails.
    """
    message = build_mime_message(email, session.default_charset)
    sender = validate_address(email.from_addresses[0])[1]
    recipients = envelope_recipients(email)
    LOGGER.info("Sending '%s' to %d recipient(s)", email.subject, len(recipients))
    try:
        with SmtpTransport(session) as transport:
            transport.send(message, sender, recipients)
    except MailConnectionError as exc:
        raise SendError(f"Error while sending the email: {exc}") from exc


__all__ = [
    "build_mime_message",
    "envelope_recipients",
    "send_email",
    "validate_address",
]
