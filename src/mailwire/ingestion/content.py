"""Walk a MIME tree into a normalized body and an ordered attachment list.

The traversal is depth-first in document order. Leaf parts are classified as
attachments (they carry a file name and no ``inline`` disposition), body text
(``text/plain``, ``text/html`` and ``text/xml`` content), or inline text of
any other ``text/*`` subtype. Everything else is skipped.
"""

from __future__ import annotations

import codecs
import logging
from dataclasses import dataclass
from email.errors import MessageError
from email.header import decode_header, make_header
from email.message import Message
from email.utils import collapse_rfc2231_value

from ..core.errors import ContentProcessingError
from ..core.models import (
    DEFAULT_CHARSET,
    TEXT,
    TEXT_PLAIN,
    EmailAttachment,
    EmailBody,
    Header,
)

LOGGER = logging.getLogger(__name__)

ATTACHMENT = "attachment"
INLINE = "inline"
# Subtypes whose content decodes straight to a string; other text/* subtypes
# only reach the body when explicitly inlined.
TEXT_CONTENT_TYPES = frozenset({"text/plain", "text/html", "text/xml"})
MIXED_CHARSET = "UTF-8"


@dataclass(frozen=True, slots=True)
class ProcessedContent:
    """Result of walking a message: its body and attachments."""

    body: EmailBody
    attachments: tuple[EmailAttachment, ...]


@dataclass(slots=True)
class _Accumulator:
    chunks: list[str]
    media_types: list[str]
    charsets: list[str]
    attachments: list[EmailAttachment]


def canonical_charset(name: str | None, default: str = DEFAULT_CHARSET) -> str:
    """Decode an RFC 2047 charset name and validate it, else ``default``."""
    if not name:
        return default
    try:
        decoded = str(make_header(decode_header(name))).strip()
        codecs.lookup(decoded)
    except (LookupError, ValueError, MessageError):
        LOGGER.debug("Unknown charset %r; using %s", name, default)
        return default
    return decoded.upper() if decoded else default


def resolve_charset(part: Message, default: str = DEFAULT_CHARSET) -> str:
    """Return the canonical charset of ``part``'s ``Content-Type``."""
    param = part.get_param("charset")
    if isinstance(param, tuple):
        param = collapse_rfc2231_value(param)
    return canonical_charset(param if isinstance(param, str) else None, default)


def parse_content_type(
    content_type: str, default_charset: str | None = None
) -> tuple[str, str | None]:
    """Split a ``Content-Type`` value into media type and charset."""
    holder = Message()
    holder["Content-Type"] = content_type
    param = holder.get_param("charset")
    if param is None:
        return holder.get_content_type(), default_charset
    return holder.get_content_type(), resolve_charset(holder)


def is_attachment(part: Message) -> bool:
    """A named part that is not explicitly dispositioned otherwise."""
    disposition = part.get_content_disposition()
    return bool(part.get_filename()) and disposition in (None, ATTACHMENT)


def is_inline(part: Message) -> bool:
    return part.get_content_disposition() == INLINE


def _decode_text(part: Message, default_charset: str) -> tuple[str, str]:
    charset = resolve_charset(part, default_charset)
    payload = part.get_payload(decode=True) or b""
    if not isinstance(payload, bytes):
        return str(payload), charset
    return payload.decode(charset, errors="replace"), charset


def _attachment_content(part: Message, default_charset: str) -> bytes | str:
    if part.get_content_type() in TEXT_CONTENT_TYPES:
        return _decode_text(part, default_charset)[0]
    if part.is_multipart():
        # message/rfc822 and friends carry a nested message.
        nested = part.get_payload(0)
        return nested.as_bytes() if isinstance(nested, Message) else b""
    payload = part.get_payload(decode=True)
    return payload if isinstance(payload, bytes) else b""


def _process(part: Message, state: _Accumulator, default_charset: str) -> None:
    if part.get_content_maintype() == "multipart":
        children = part.get_payload()
        if isinstance(children, list):
            for child in children:
                _process(child, state, default_charset)
        return

    content_type = part.get_content_type()
    if is_attachment(part):
        charset = part.get_param("charset")
        state.attachments.append(
            EmailAttachment(
                id=str(part.get_filename()),
                content=_attachment_content(part, default_charset),
                format=content_type,
                charset=resolve_charset(part, default_charset) if charset else None,
                headers=tuple(Header(name, str(value)) for name, value in part.items()),
            )
        )
        return

    if part.is_multipart():
        LOGGER.debug("Skipping nested %s part", content_type)
        return

    if content_type in TEXT_CONTENT_TYPES or (
        part.get_content_maintype() == "text" and is_inline(part)
    ):
        text, charset = _decode_text(part, default_charset)
        state.chunks.append(text)
        state.media_types.append(content_type)
        state.charsets.append(charset)
        return

    LOGGER.debug("Ignoring %s part without attachment disposition", content_type)


def _build_body(state: _Accumulator, default_charset: str) -> EmailBody:
    content = "\n".join(state.chunks).strip()
    if not state.chunks:
        return EmailBody(content=content, format=TEXT_PLAIN, charset=default_charset)
    media_types = set(state.media_types)
    charsets = set(state.charsets)
    return EmailBody(
        content=content,
        format=state.media_types[0] if len(media_types) == 1 else TEXT,
        charset=state.charsets[0] if len(charsets) == 1 else MIXED_CHARSET,
    )


def process_content(
    message: Message,
    read_content: bool = True,
    default_charset: str = DEFAULT_CHARSET,
) -> ProcessedContent:
    """Extract the body and attachments of ``message``.

    With ``read_content`` false nothing is walked and an empty body is
    returned, so callers can avoid downloading content.

    Raises:
        ContentProcessingError: If the MIME structure cannot be decoded.
    """
    if not read_content:
        return ProcessedContent(
            body=EmailBody(content="", charset=default_charset), attachments=()
        )

    state = _Accumulator(chunks=[], media_types=[], charsets=[], attachments=[])
    try:
        _process(message, state, default_charset)
    except (MessageError, LookupError, ValueError, TypeError, AttributeError) as exc:
        raise ContentProcessingError("Error while processing message content") from exc

    return ProcessedContent(
        body=_build_body(state, default_charset),
        attachments=tuple(state.attachments),
    )


__all__ = [
    "ProcessedContent",
    "canonical_charset",
    "is_attachment",
    "is_inline",
    "parse_content_type",
    "process_content",
    "resolve_charset",
]
