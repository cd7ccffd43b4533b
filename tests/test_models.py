"""Tests for the email value types."""

from __future__ import annotations

import dataclasses

import pytest

from mailwire.core.models import (
    EmailAttachment,
    EmailBody,
    EmailFlag,
    EmailFlags,
    StoredEmail,
)


def test_default_body_is_plain_us_ascii() -> None:
    body = EmailBody()

    assert body.content == ""
    assert body.content_type == "text/plain; charset=US-ASCII"


def test_body_without_charset_omits_parameter() -> None:
    assert EmailBody("x", "TEXT/HTML", None).content_type == "text/html"


def test_stored_email_never_exposes_bcc() -> None:
    email = StoredEmail(
        id=7,
        subject="s",
        to_addresses=["a@test.com"],
        bcc_addresses=["hidden@test.com"],
    )

    assert email.bcc_addresses == ()
    assert email.id == 7


def test_emails_are_immutable() -> None:
    email = StoredEmail(subject="s")

    with pytest.raises(dataclasses.FrozenInstanceError):
        email.subject = "other"  # type: ignore[misc]


def test_flags_of_and_is_set_agree_for_every_flag() -> None:
    for flag in EmailFlag:
        flags = EmailFlags.of([flag])
        assert [f for f in EmailFlag if flags.is_set(f)] == [flag]


def test_attachment_from_content_type_splits_charset() -> None:
    attachment = EmailAttachment.from_content_type(
        "notes.txt", "hello", 'text/plain; charset="iso-8859-1"'
    )

    assert attachment.format == "text/plain"
    assert attachment.charset == "ISO-8859-1"
    assert attachment.content_type == "text/plain; charset=ISO-8859-1"


def test_attachment_from_content_type_without_charset() -> None:
    attachment = EmailAttachment.from_content_type("a.bin", b"\x00", "Application/PDF")

    assert attachment.format == "application/pdf"
    assert attachment.charset is None
