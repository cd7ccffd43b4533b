"""Immutable value types describing outgoing and stored email."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import NamedTuple, TypeAlias

from .errors import UnsupportedOperationError

NO_SUBJECT = "[No Subject]"
DEFAULT_CHARSET = "US-ASCII"
TEXT_PLAIN = "text/plain"
MULTIPART = "multipart/*"
TEXT = "text/*"
NO_ID = -1


class Header(NamedTuple):
    """A single header name/value pair. Names may repeat within a sequence."""

    name: str
    value: str


def _content_type(media_type: str, charset: str | None) -> str:
    if not charset:
        return media_type
    return f"{media_type}; charset={charset}"


def _headers(pairs: Iterable[Header | tuple[str, str]]) -> tuple[Header, ...]:
    return tuple(Header(str(name), str(value)) for name, value in pairs)


@dataclass(frozen=True, slots=True)
class EmailBody:
    """Textual body of an email with its media type and charset."""

    content: str = ""
    format: str = TEXT_PLAIN
    charset: str | None = DEFAULT_CHARSET

    def __post_init__(self) -> None:
        object.__setattr__(self, "format", self.format.lower())

    @property
    def content_type(self) -> str:
        """Full ``Content-Type`` value, e.g. ``text/plain; charset=UTF-8``."""
        return _content_type(self.format, self.charset)


@dataclass(frozen=True, slots=True)
class EmailAttachment:
    """A named attachment with its raw or decoded content."""

    id: str
    content: bytes | str
    format: str = "application/octet-stream"
    charset: str | None = None
    headers: tuple[Header, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "format", self.format.lower())
        object.__setattr__(self, "headers", _headers(self.headers))

    @classmethod
    def from_content_type(
        cls,
        id: str,  # pylint: disable=redefined-builtin
        content: bytes | str,
        content_type: str,
        headers: Iterable[Header | tuple[str, str]] = (),
    ) -> EmailAttachment:
        """Build an attachment from a full ``Content-Type`` header value."""
        # Imported lazily, the content module depends on this one.
        from ..ingestion.content import parse_content_type

        media_type, charset = parse_content_type(content_type)
        return cls(
            id=id,
            content=content,
            format=media_type,
            charset=charset,
            headers=tuple(headers),
        )

    @property
    def content_type(self) -> str:
        return _content_type(self.format, self.charset)


class EmailFlag(str, Enum):
    """Standard system flags a stored message may carry."""

    ANSWERED = "ANSWERED"
    DELETED = "DELETED"
    DRAFT = "DRAFT"
    RECENT = "RECENT"
    SEEN = "SEEN"


@dataclass(frozen=True, slots=True)
class EmailFlags:
    """The five independent system flags of a stored message."""

    answered: bool = False
    deleted: bool = False
    draft: bool = False
    recent: bool = False
    seen: bool = False

    @classmethod
    def of(cls, flags: Iterable[EmailFlag]) -> EmailFlags:
        """Build flags from the set of flags that are asserted."""
        present = set(flags)
        return cls(
            answered=EmailFlag.ANSWERED in present,
            deleted=EmailFlag.DELETED in present,
            draft=EmailFlag.DRAFT in present,
            recent=EmailFlag.RECENT in present,
            seen=EmailFlag.SEEN in present,
        )

    def is_set(self, flag: EmailFlag) -> bool:
        """Return whether ``flag`` is asserted."""
        return bool(getattr(self, flag.value.lower()))


# pylint: disable=too-many-instance-attributes
@dataclass(frozen=True, slots=True, kw_only=True)
class _EmailContent:
    """Fields shared by both email variants."""

    subject: str | None = NO_SUBJECT
    from_addresses: tuple[str, ...] = ()
    reply_to_addresses: tuple[str, ...] = ()
    to_addresses: tuple[str, ...] = ()
    cc_addresses: tuple[str, ...] = ()
    bcc_addresses: tuple[str, ...] = ()
    sent_date: datetime | None = None
    body: EmailBody = field(default_factory=EmailBody)
    attachments: tuple[EmailAttachment, ...] = ()
    headers: tuple[Header, ...] = ()

    def __post_init__(self) -> None:
        if not self.subject:
            object.__setattr__(self, "subject", NO_SUBJECT)
        for name in (
            "from_addresses",
            "reply_to_addresses",
            "to_addresses",
            "cc_addresses",
            "bcc_addresses",
        ):
            object.__setattr__(self, name, tuple(str(a) for a in getattr(self, name)))
        object.__setattr__(self, "attachments", tuple(self.attachments))
        object.__setattr__(self, "headers", _headers(self.headers))

    @property
    def recipients(self) -> tuple[str, ...]:
        """Envelope recipients across To, Cc and Bcc, in that order."""
        return self.to_addresses + self.cc_addresses + self.bcc_addresses

    def header_values(self, name: str) -> list[str]:
        """Return all values of header ``name`` (case-insensitive)."""
        lowered = name.lower()
        return [header.value for header in self.headers if header.name.lower() == lowered]


@dataclass(frozen=True, slots=True, kw_only=True)
class OutgoingEmail(_EmailContent):
    """An email composed locally and not yet stored on any server."""

    @property
    def id(self) -> int:
        raise UnsupportedOperationError("Outgoing emails do not have an id")

    @property
    def number(self) -> int:
        raise UnsupportedOperationError("Outgoing emails do not have a number")

    @property
    def received_date(self) -> datetime | None:
        raise UnsupportedOperationError(
            "Outgoing emails do not have a received date"
        )

    @property
    def flags(self) -> EmailFlags:
        raise UnsupportedOperationError("Outgoing emails are not flagged")


@dataclass(frozen=True, slots=True, kw_only=True)
class StoredEmail(_EmailContent):
    """An email materialised from a remote folder.

    ``bcc_addresses`` is always empty: a recipient never sees the Bcc list
    that targeted them.
    """

    id: int = NO_ID
    number: int = 0
    received_date: datetime | None = None
    flags: EmailFlags = field(default_factory=EmailFlags)

    def __post_init__(self) -> None:
        _EmailContent.__post_init__(self)
        object.__setattr__(self, "bcc_addresses", ())


Email: TypeAlias = OutgoingEmail | StoredEmail


__all__ = [
    "DEFAULT_CHARSET",
    "Email",
    "EmailAttachment",
    "EmailBody",
    "EmailFlag",
    "EmailFlags",
    "Header",
    "MULTIPART",
    "NO_ID",
    "NO_SUBJECT",
    "OutgoingEmail",
    "StoredEmail",
    "TEXT",
    "TEXT_PLAIN",
]
