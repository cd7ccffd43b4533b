"""Fluent, validated construction of outgoing emails."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from .errors import InvariantViolation, MissingAttribute
from .models import EmailAttachment, EmailBody, Header, OutgoingEmail

UTF8 = "UTF-8"


def _as_list(values: str | Iterable[str]) -> list[str]:
    if isinstance(values, str):
        return [values]
    return list(values)


class EmailBuilder:
    """Accumulate the parts of an outgoing email and build it.

    Every address and header method is additive, so calling ``cc`` twice keeps
    both addresses and repeated headers are preserved.

    Example:
        >>> email = (
        ...     EmailBuilder()
        ...     .from_("me@example.com")
        ...     .to("you@example.com")
        ...     .subject("Hello")
        ...     .body("Hi there")
        ...     .build()
        ... )
    """

    def __init__(self) -> None:
        """Start with an empty composition."""
        self._subject: str | None = None
        self._from: list[str] = []
        self._reply_to: list[str] = []
        self._to: list[str] = []
        self._cc: list[str] = []
        self._bcc: list[str] = []
        self._headers: list[Header] = []
        self._body: EmailBody | None = None
        self._attachments: list[EmailAttachment] = []

    def subject(self, subject: str | None) -> EmailBuilder:
        self._subject = subject
        return self

    def from_(self, addresses: str | Iterable[str]) -> EmailBuilder:
        self._from.extend(_as_list(addresses))
        return self

    def reply_to(self, addresses: str | Iterable[str]) -> EmailBuilder:
        self._reply_to.extend(_as_list(addresses))
        return self

    def to(self, addresses: str | Iterable[str]) -> EmailBuilder:
        self._to.extend(_as_list(addresses))
        return self

    def cc(self, addresses: str | Iterable[str]) -> EmailBuilder:
        self._cc.extend(_as_list(addresses))
        return self

    def bcc(self, addresses: str | Iterable[str]) -> EmailBuilder:
        self._bcc.extend(_as_list(addresses))
        return self

    def header(self, name: str, value: str) -> EmailBuilder:
        self._headers.append(Header(name, value))
        return self

    def body(self, body: EmailBody | str) -> EmailBuilder:
        """Set the body. Plain strings become ``text/plain`` UTF-8 bodies."""
        if isinstance(body, str):
            body = EmailBody(content=body, charset=UTF8)
        self._body = body
        return self

    def attachment(
        self, attachments: EmailAttachment | Iterable[EmailAttachment]
    ) -> EmailBuilder:
        if isinstance(attachments, EmailAttachment):
            self._attachments.append(attachments)
        else:
            self._attachments.extend(attachments)
        return self

    def build(self) -> OutgoingEmail:
        """Validate the composition and return a frozen outgoing email.

        Raises:
            InvariantViolation: If the sender, the body, or every recipient
                list is missing.
        """
        if not self._from:
            raise InvariantViolation(
                "Cannot build an email without a from address",
                MissingAttribute.FROM,
            )
        if self._body is None:
            raise InvariantViolation(
                "Cannot build an email without a body", MissingAttribute.BODY
            )
        if not (self._to or self._cc or self._bcc):
            raise InvariantViolation(
                "Cannot build an email without recipients",
                MissingAttribute.RECIPIENTS,
            )
        return OutgoingEmail(
            subject=self._subject,
            from_addresses=tuple(self._from),
            reply_to_addresses=tuple(self._reply_to),
            to_addresses=tuple(self._to),
            cc_addresses=tuple(self._cc),
            bcc_addresses=tuple(self._bcc),
            sent_date=datetime.now().astimezone(),
            body=self._body,
            attachments=tuple(self._attachments),
            headers=tuple(self._headers),
        )


__all__ = ["EmailBuilder"]
