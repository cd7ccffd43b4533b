"""Tests for the IMAP transport adapter and IMAP client."""

from __future__ import annotations

import pytest

from mailwire.clients import ImapClient
from mailwire.core.errors import (
    InvariantViolation,
    MailboxError,
    RetrievalError,
)
from mailwire.core.interfaces import FolderMode
from mailwire.core.models import EmailFlag
from mailwire.search import SubjectTerm
from mailwire.transport.imap_client import IMAP_FLAGS, quote_mailbox

from conftest import FakeImapServer, make_message


@pytest.fixture()
def client(imap_server: FakeImapServer) -> ImapClient:
    return ImapClient("user", "secret", "imap.test")


def _connection(server: FakeImapServer):
    return server.connections[-1]


def test_connect_logs_in_with_session_credentials(
    client: ImapClient, imap_server: FakeImapServer
) -> None:
    assert _connection(imap_server).logged_in == ("user", "secret")
    assert client.properties["mail.imap.port"] == "143"


def test_retrieve_returns_messages_in_server_order(
    client: ImapClient, imap_server: FakeImapServer
) -> None:
    uids = [imap_server.deliver(make_message(subject=f"s{i}")) for i in range(3)]
    inbox = client.open_folder("INBOX", FolderMode.READ_ONLY)

    emails = client.retrieve(inbox, read_content=True)

    assert [email.subject for email in emails] == ["s0", "s1", "s2"]
    assert [email.id for email in emails] == uids
    assert [email.number for email in emails] == [1, 2, 3]
    assert emails[0].body.content == "Test content"
    assert emails[0].received_date is not None


def test_retrieve_limits_by_position(
    client: ImapClient, imap_server: FakeImapServer
) -> None:
    for i in range(4):
        imap_server.deliver(make_message(subject=f"s{i}"))
    inbox = client.open_folder("INBOX", FolderMode.READ_ONLY)

    emails = client.retrieve(inbox, False, 2)

    assert [email.subject for email in emails] == ["s0", "s1"]
    assert ("FETCH", "1:2", "(UID)") in _connection(imap_server).commands


def test_headers_only_fetch_does_not_set_seen(
    client: ImapClient, imap_server: FakeImapServer
) -> None:
    imap_server.deliver(make_message())
    inbox = client.open_folder("INBOX", FolderMode.READ_WRITE)

    (email,) = client.retrieve(inbox, read_content=False)

    assert email.body.content == ""
    assert not email.flags.seen
    assert imap_server.mailboxes["INBOX"][0].flags == set()


def test_reading_content_sets_seen(
    client: ImapClient, imap_server: FakeImapServer
) -> None:
    imap_server.deliver(make_message())
    inbox = client.open_folder("INBOX", FolderMode.READ_WRITE)

    (email,) = client.retrieve(inbox, read_content=True)

    assert email.flags.seen
    assert "\\Seen" in imap_server.mailboxes["INBOX"][0].flags


@pytest.mark.parametrize("flag", list(EmailFlag))
def test_server_flags_map_onto_email_flags(
    flag: EmailFlag, client: ImapClient, imap_server: FakeImapServer
) -> None:
    imap_server.deliver(make_message(), "INBOX", IMAP_FLAGS[flag])
    inbox = client.open_folder("INBOX", FolderMode.READ_ONLY)

    (email,) = client.retrieve(inbox, read_content=False)

    assert [f for f in EmailFlag if email.flags.is_set(f)] == [flag]


def test_retrieve_by_id(client: ImapClient, imap_server: FakeImapServer) -> None:
    imap_server.deliver(make_message(subject="first"))
    uid = imap_server.deliver(make_message(subject="second"))
    inbox = client.get_uid_folder("INBOX", FolderMode.READ_ONLY)

    email = client.retrieve_by_id(inbox, uid)

    assert email.subject == "second"
    assert email.id == uid
    assert email.number == 2


def test_retrieve_by_unknown_id_fails(
    client: ImapClient, imap_server: FakeImapServer
) -> None:
    inbox = client.open_folder("INBOX", FolderMode.READ_ONLY)

    with pytest.raises(RetrievalError):
        client.retrieve_by_id(inbox, 999)


def test_search_returns_matches_in_server_order(
    client: ImapClient, imap_server: FakeImapServer
) -> None:
    for i in range(3):
        imap_server.deliver(make_message(subject=f"s{i}"))
    inbox = client.open_folder("INBOX", FolderMode.READ_ONLY)
    _connection(imap_server).search_result = [3, 1]

    emails = client.search(inbox, False, SubjectTerm("s"))

    assert [email.subject for email in emails] == ["s2", "s0"]
    assert ("SEARCH", 'SUBJECT "s"') in _connection(imap_server).commands


def test_search_and_move_uses_native_move(
    client: ImapClient, imap_server: FakeImapServer
) -> None:
    imap_server.mailboxes["Archive"] = []
    for i in range(2):
        imap_server.deliver(make_message(subject=f"s{i}"))
    inbox = client.open_folder("INBOX", FolderMode.READ_WRITE)

    emails = client.search_and_move(
        inbox, False, client.get_folder("Archive"), SubjectTerm("s")
    )

    assert len(emails) == 2
    assert imap_server.mailboxes["INBOX"] == []
    assert len(imap_server.mailboxes["Archive"]) == 2
    commands = _connection(imap_server).commands
    assert any(c[:2] == ("UID", "MOVE") for c in commands)


def test_move_without_move_capability_copies_and_expunges(
    imap_server: FakeImapServer,
) -> None:
    imap_server.capabilities = "IMAP4rev1"
    imap_server.mailboxes["Archive"] = []
    imap_server.deliver(make_message(subject="keep"))
    imap_server.deliver(make_message(subject="move"))
    client = ImapClient("user", "secret", "imap.test")
    inbox = client.open_folder("INBOX", FolderMode.READ_WRITE)

    client.move_message(inbox, inbox.get_message(2), client.get_folder("Archive"))

    commands = _connection(imap_server).commands
    assert any(c[:2] == ("UID", "COPY") for c in commands)
    assert ("EXPUNGE",) in commands
    assert len(imap_server.mailboxes["Archive"]) == 1
    assert len(imap_server.mailboxes["INBOX"]) == 1


def test_retrieve_and_move_skips_move_for_empty_folder(
    client: ImapClient, imap_server: FakeImapServer
) -> None:
    imap_server.mailboxes["Archive"] = []
    inbox = client.open_folder("INBOX", FolderMode.READ_WRITE)

    emails = client.retrieve_and_move(inbox, False, 10, client.get_folder("Archive"))

    assert emails == []


def test_move_with_no_messages_fails(
    client: ImapClient, imap_server: FakeImapServer
) -> None:
    inbox = client.open_folder("INBOX", FolderMode.READ_WRITE)

    with pytest.raises(InvariantViolation):
        client.move(inbox, [], client.get_folder("Archive"))


def test_close_without_expunge_uses_unselect(
    client: ImapClient, imap_server: FakeImapServer
) -> None:
    client.open_folder("INBOX", FolderMode.READ_WRITE)

    client.close_folder()

    assert ("UNSELECT",) in _connection(imap_server).commands


def test_close_without_unselect_reexamines_before_close(
    imap_server: FakeImapServer,
) -> None:
    imap_server.capabilities = "IMAP4rev1"
    imap_server.deliver(make_message(), "INBOX", "\\Deleted")
    client = ImapClient("user", "secret", "imap.test")
    client.open_folder("INBOX", FolderMode.READ_WRITE)

    client.close_folder(expunge=False)

    commands = _connection(imap_server).commands
    assert commands[-2:] == [("EXAMINE", "INBOX"), ("CLOSE",)]
    assert len(imap_server.mailboxes["INBOX"]) == 1


def test_close_with_expunge_removes_deleted_messages(
    client: ImapClient, imap_server: FakeImapServer
) -> None:
    imap_server.deliver(make_message(), "INBOX", "\\Deleted")
    client.open_folder("INBOX", FolderMode.READ_WRITE)

    client.close_folder(expunge=True)

    assert imap_server.mailboxes["INBOX"] == []


def test_opening_unknown_folder_fails(client: ImapClient) -> None:
    with pytest.raises(MailboxError, match="Nope"):
        client.open_folder("Nope", FolderMode.READ_ONLY)


def test_mailbox_names_are_quoted_when_needed() -> None:
    assert quote_mailbox("INBOX") == "INBOX"
    assert quote_mailbox("Sent Items") == '"Sent Items"'
    assert quote_mailbox('a"b') == '"a\\"b"'


@pytest.mark.parametrize("capabilities", ["IMAP4rev1 UNSELECT MOVE", "IMAP4rev1"])
def test_move_from_read_only_folder_is_rejected(
    capabilities: str, imap_server: FakeImapServer
) -> None:
    imap_server.capabilities = capabilities
    imap_server.mailboxes["Archive"] = []
    imap_server.deliver(make_message())
    client = ImapClient("user", "secret", "imap.test")
    inbox = client.open_folder("INBOX", FolderMode.READ_ONLY)
    message = inbox.get_message(1)

    with pytest.raises(InvariantViolation, match="READ_WRITE"):
        client.move(inbox, [message], client.get_folder("Archive"))

    commands = imap_server.connections[-1].commands
    assert not [c for c in commands if c[:2] in (("UID", "MOVE"), ("UID", "COPY"))]
    assert len(imap_server.mailboxes["INBOX"]) == 1
    assert imap_server.mailboxes["Archive"] == []


def test_search_and_move_checks_mode_before_fetching(
    client: ImapClient, imap_server: FakeImapServer
) -> None:
    imap_server.mailboxes["Archive"] = []
    imap_server.deliver(make_message())
    inbox = client.open_folder("INBOX", FolderMode.READ_ONLY)

    with pytest.raises(InvariantViolation):
        client.search_and_move(
            inbox, True, client.get_folder("Archive"), SubjectTerm("Test")
        )

    commands = imap_server.connections[-1].commands
    assert not [c for c in commands if c[:2] == ("UID", "FETCH")]


def test_socket_errors_while_opening_a_folder_are_wrapped(
    client: ImapClient,
    imap_server: FakeImapServer,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def timed_out(mailbox, readonly=False):
        raise TimeoutError("timed out")

    monkeypatch.setattr(imap_server.connections[-1], "select", timed_out)

    with pytest.raises(MailboxError) as excinfo:
        client.open_folder("INBOX", FolderMode.READ_ONLY)

    assert isinstance(excinfo.value.__cause__, TimeoutError)


def test_socket_errors_while_closing_a_folder_are_wrapped(
    client: ImapClient,
    imap_server: FakeImapServer,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    client.open_folder("INBOX", FolderMode.READ_ONLY)

    def reset():
        raise ConnectionResetError("connection reset")

    monkeypatch.setattr(imap_server.connections[-1], "unselect", reset)

    with pytest.raises(MailboxError):
        client.close_folder()

    assert client.current_folder is None
