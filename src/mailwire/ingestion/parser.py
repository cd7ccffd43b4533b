"""Utilities for parsing raw RFC822 messages into stored emails."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from email import policy
from email.message import Message
from email.parser import BytesParser
from email.utils import formataddr, getaddresses, parsedate_to_datetime

from ..core.interfaces import FetchedMessage
from ..core.models import DEFAULT_CHARSET, EmailFlags, Header, StoredEmail
from .content import process_content


class EmailParser:
    """Convert raw email payloads into :class:`StoredEmail` values."""

    def __init__(self, default_charset: str = DEFAULT_CHARSET) -> None:
        """Prepare internal parser instance."""
        self._parser = BytesParser(policy=policy.default)
        self._default_charset = default_charset

    def parse_message(self, payload: bytes) -> Message:
        """Parse raw bytes into a MIME message tree."""
        return self._parser.parsebytes(payload)

    def parse(
        self,
        fetched: FetchedMessage,
        *,
        uid: int,
        number: int,
        read_content: bool,
    ) -> StoredEmail:
        """Parse a fetched message into a :class:`StoredEmail`."""
        message = self.parse_message(fetched.payload)
        content = process_content(
            message, read_content=read_content, default_charset=self._default_charset
        )
        return StoredEmail(
            id=uid,
            number=number,
            subject=_header_text(message, "Subject"),
            from_addresses=tuple(_extract_addresses(message.get_all("From", []))),
            reply_to_addresses=tuple(
                _extract_addresses(message.get_all("Reply-To", []))
            ),
            to_addresses=tuple(_extract_addresses(message.get_all("To", []))),
            cc_addresses=tuple(_extract_addresses(message.get_all("Cc", []))),
            sent_date=_try_parse_datetime(_header_text(message, "Date")),
            received_date=fetched.received_date,
            body=content.body,
            attachments=content.attachments,
            headers=tuple(Header(name, str(value)) for name, value in message.items()),
            flags=EmailFlags.of(fetched.flags),
        )


def _header_text(message: Message, name: str) -> str | None:
    value = message.get(name)
    return None if value is None else str(value)


def _extract_addresses(headers: Iterable[object]) -> Iterable[str]:
    for display_name, email_address in getaddresses([str(h) for h in headers]):
        if email_address:
            yield formataddr((display_name, email_address))


def _try_parse_datetime(header_value: str | None) -> datetime | None:
    if header_value is None:
        return None
    try:
        return parsedate_to_datetime(header_value).astimezone()
    except (TypeError, ValueError):
        return None


__all__ = ["EmailParser"]
