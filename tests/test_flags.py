"""Tests for marking, deleting and expunging messages."""

from __future__ import annotations

import pytest

from mailwire.clients import ImapClient
from mailwire.core.errors import InvariantViolation
from mailwire.core.interfaces import FolderMode
from mailwire.core.models import EmailFlag
from mailwire.operations import verify_folder_mode

from conftest import FakeImapServer, make_message


@pytest.fixture()
def client(imap_server: FakeImapServer) -> ImapClient:
    return ImapClient("user", "secret", "imap.test")


def _store_commands(server: FakeImapServer) -> list[tuple[str, ...]]:
    return [c for c in server.connections[-1].commands if c[:2] == ("UID", "STORE")]


def test_mark_by_id_sets_the_flag(
    client: ImapClient, imap_server: FakeImapServer
) -> None:
    uid = imap_server.deliver(make_message())
    inbox = client.open_folder("INBOX", FolderMode.READ_WRITE)

    client.mark_by_id(inbox, EmailFlag.ANSWERED, uid)

    assert imap_server.mailboxes["INBOX"][0].flags == {"\\Answered"}
    assert _store_commands(imap_server) == [
        ("UID", "STORE", str(uid), "+FLAGS", "(\\Answered)")
    ]


def test_marking_in_read_only_folder_is_rejected(
    client: ImapClient, imap_server: FakeImapServer
) -> None:
    imap_server.deliver(make_message())
    inbox = client.open_folder("INBOX", FolderMode.READ_ONLY)

    with pytest.raises(InvariantViolation, match="READ_WRITE"):
        client.mark_by_message(inbox.get_message(1), EmailFlag.SEEN)

    assert _store_commands(imap_server) == []


def test_mark_by_messages_checks_every_folder_first(
    imap_server: FakeImapServer,
) -> None:
    imap_server.deliver(make_message())
    imap_server.mailboxes["Other"] = []
    imap_server.deliver(make_message(), "Other")
    client = ImapClient("user", "secret", "imap.test")
    inbox = client.open_folder("INBOX", FolderMode.READ_WRITE)
    writable = inbox.get_message(1)
    # Opening another folder closes INBOX, leaving its handle stale.
    other = client.open_folder("Other", FolderMode.READ_WRITE)

    with pytest.raises(InvariantViolation):
        client.mark_by_messages([other.get_message(1), writable], EmailFlag.SEEN)

    assert _store_commands(imap_server) == []


def test_delete_marks_and_expunges(
    client: ImapClient, imap_server: FakeImapServer
) -> None:
    imap_server.deliver(make_message(subject="keep"))
    uid = imap_server.deliver(make_message(subject="drop"))
    inbox = client.open_folder("INBOX", FolderMode.READ_WRITE)

    client.delete_by_id(inbox, uid)

    remaining = imap_server.mailboxes["INBOX"]
    assert [m.uid for m in remaining] == [uid - 1]
    assert ("EXPUNGE",) in imap_server.connections[-1].commands


def test_delete_by_number(client: ImapClient, imap_server: FakeImapServer) -> None:
    first = imap_server.deliver(make_message())
    imap_server.deliver(make_message())
    inbox = client.open_folder("INBOX", FolderMode.READ_WRITE)

    client.delete_by_number(inbox, 2)

    assert [m.uid for m in imap_server.mailboxes["INBOX"]] == [first]


def test_verify_folder_mode_requires_an_open_folder(
    client: ImapClient, imap_server: FakeImapServer
) -> None:
    folder = client.get_folder("INBOX")

    with pytest.raises(InvariantViolation):
        verify_folder_mode(folder, FolderMode.READ_ONLY)

    opened = client.open_folder("INBOX", FolderMode.READ_ONLY)
    verify_folder_mode(opened, FolderMode.READ_ONLY)
