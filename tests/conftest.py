"""Shared fixtures and in-memory stand-ins for mail server connections."""

# pylint: disable=redefined-outer-name,unused-argument

from __future__ import annotations

import re
import smtplib
from dataclasses import dataclass, field
from email import message_from_bytes, policy
from email.message import EmailMessage

import pytest

from mailwire.transport import imap_client, pop3_client, smtp_client

INTERNAL_DATE = '"17-Oct-2026 10:15:00 +0000"'


def make_message(
    subject: str = "Test subject",
    body: str = "Test content",
    sender: str = "person4@test.com",
    to: str = "person1@test.com",
) -> bytes:
    """Return a simple single-part RFC822 message."""
    message = EmailMessage()
    message["From"] = sender
    message["To"] = to
    message["Subject"] = subject
    message["Date"] = "Sat, 17 Oct 2026 10:15:00 +0000"
    message.set_content(body)
    return message.as_bytes()


# IMAP ---------------------------------------------------------------------------
@dataclass
class StoredMessage:
    uid: int
    payload: bytes
    flags: set[str] = field(default_factory=set)


class FakeImapServer:
    """Mailboxes keyed by name, shared by every fake connection."""

    def __init__(self, capabilities: str = "IMAP4rev1 UNSELECT MOVE") -> None:
        self.capabilities = capabilities
        self.mailboxes: dict[str, list[StoredMessage]] = {"INBOX": []}
        self.next_uid = 100
        self.connections: list[FakeImapConnection] = []

    def deliver(self, payload: bytes, mailbox: str = "INBOX", *flags: str) -> int:
        self.next_uid += 1
        self.mailboxes.setdefault(mailbox, []).append(
            StoredMessage(self.next_uid, payload, set(flags))
        )
        return self.next_uid


def _sequence_numbers(sequence_set: str, size: int) -> list[int]:
    numbers: list[int] = []
    for item in sequence_set.split(","):
        start, _, end = item.partition(":")
        last = size if end == "*" else int(end or start)
        numbers.extend(range(int(start), min(last, size) + 1))
    return numbers


class FakeImapConnection:
    """Implements the subset of ``imaplib.IMAP4`` the adapter uses."""

    def __init__(self, server: FakeImapServer) -> None:
        self.server = server
        self.sock = None
        self.selected: str | None = None
        self.readonly = False
        self.logged_in: tuple[str, str] | None = None
        self.commands: list[tuple[str, ...]] = []
        self.search_result: list[int] | None = None
        server.connections.append(self)

    # Session
    def capability(self):
        return "OK", [self.server.capabilities.encode()]

    def login(self, user, password):
        self.logged_in = (user, password)
        return "OK", [b"LOGIN completed"]

    def logout(self):
        self.commands.append(("LOGOUT",))
        return "BYE", [b"bye"]

    # Mailbox state
    def select(self, mailbox, readonly=False):
        name = mailbox.strip('"')
        self.commands.append(("EXAMINE" if readonly else "SELECT", name))
        if name not in self.server.mailboxes:
            return "NO", [b"Mailbox does not exist"]
        self.selected = name
        self.readonly = readonly
        return "OK", [str(len(self.messages)).encode()]

    def unselect(self):
        self.commands.append(("UNSELECT",))
        self.selected = None
        return "OK", [b""]

    def close(self):
        self.commands.append(("CLOSE",))
        if not self.readonly:
            self._expunge()
        self.selected = None
        return "OK", [b""]

    def expunge(self):
        self.commands.append(("EXPUNGE",))
        self._expunge()
        return "OK", [b""]

    @property
    def messages(self) -> list[StoredMessage]:
        assert self.selected is not None
        return self.server.mailboxes[self.selected]

    def _expunge(self) -> None:
        self.server.mailboxes[self.selected] = [
            m for m in self.messages if "\\Deleted" not in m.flags
        ]

    # Queries
    def search(self, charset, *criteria):
        self.commands.append(("SEARCH", *(str(c) for c in criteria)))
        if self.search_result is not None and criteria != ("ALL",):
            numbers = self.search_result
        else:
            numbers = list(range(1, len(self.messages) + 1))
        return "OK", [" ".join(str(n) for n in numbers).encode()]

    def fetch(self, sequence_set, items):
        self.commands.append(("FETCH", sequence_set, items))
        lines = []
        for number in _sequence_numbers(sequence_set, len(self.messages)):
            uid = self.messages[number - 1].uid
            lines.append(f"{number} (UID {uid})".encode())
        return "OK", lines

    def uid(self, command, *args):
        self.commands.append(("UID", command, *args))
        by_uid = {m.uid: (n, m) for n, m in enumerate(self.messages, start=1)}
        uids = [int(u) for u in args[0].split(",")]
        if command == "FETCH":
            return "OK", self._uid_fetch(by_uid, uids, args[1])
        if command == "STORE":
            flag_names = re.findall(r"\\\w+", args[2])
            for uid in uids:
                target = by_uid[uid][1].flags
                if args[1].startswith("+"):
                    target.update(flag_names)
                else:
                    target.difference_update(flag_names)
            return "OK", [b""]
        if command in ("COPY", "MOVE"):
            if self.readonly and command == "MOVE":
                return "NO", [b"read-only"]
            destination = self.server.mailboxes.setdefault(args[1].strip('"'), [])
            for uid in uids:
                self.server.next_uid += 1
                source = by_uid[uid][1]
                destination.append(
                    StoredMessage(self.server.next_uid, source.payload, set())
                )
            if command == "MOVE":
                self.server.mailboxes[self.selected] = [
                    m for m in self.messages if m.uid not in uids
                ]
            return "OK", [b""]
        raise AssertionError(f"Unexpected UID command {command}")

    def _uid_fetch(self, by_uid, uids, items):
        response: list[object] = []
        for uid in uids:
            if uid not in by_uid:
                continue
            number, message = by_uid[uid]
            if items == "(UID)":
                response.append(f"{number} (UID {uid})".encode())
                continue
            if "BODY[]" in items and "PEEK" not in items and not self.readonly:
                message.flags.add("\\Seen")
            payload = message.payload
            if "HEADER" in items:
                payload = payload.split(b"\n\n", 1)[0] + b"\n\n"
            flags = " ".join(sorted(message.flags))
            section = "BODY[HEADER]" if "HEADER" in items else "BODY[]"
            prefix = (
                f"{number} (UID {uid} FLAGS ({flags}) INTERNALDATE {INTERNAL_DATE} "
                f"{section} {{{len(payload)}}}"
            )
            response.append((prefix.encode(), payload))
            response.append(b")")
        return response


@pytest.fixture()
def imap_server(monkeypatch: pytest.MonkeyPatch) -> FakeImapServer:
    """Route every IMAP connection to an in-memory server."""
    server = FakeImapServer()
    monkeypatch.setattr(
        imap_client, "open_connection", lambda session: FakeImapConnection(server)
    )
    return server


# POP3 ---------------------------------------------------------------------------
class FakePop3Server:
    def __init__(self) -> None:
        self.messages: list[bytes] = []
        self.uids: list[str] = []
        self.connections: list[FakePop3Connection] = []

    def deliver(self, payload: bytes, uid: str | None = None) -> None:
        self.messages.append(payload)
        self.uids.append(uid or str(len(self.messages) + 500))


class FakePop3Connection:
    """Implements the subset of ``poplib.POP3`` the adapter uses."""

    def __init__(self, server: FakePop3Server) -> None:
        self.server = server
        self.deleted: set[int] = set()
        self.commands: list[tuple[object, ...]] = []
        self.closed = False
        server.connections.append(self)

    def stat(self):
        return len(self.server.messages), sum(map(len, self.server.messages))

    def uidl(self):
        listing = [
            f"{n} {uid}".encode() for n, uid in enumerate(self.server.uids, start=1)
        ]
        return b"+OK", listing, 0

    def retr(self, number):
        self.commands.append(("RETR", number))
        lines = self.server.messages[number - 1].splitlines()
        return b"+OK", lines, 0

    def top(self, number, count):
        self.commands.append(("TOP", number, count))
        head = self.server.messages[number - 1].split(b"\n\n", 1)[0]
        return b"+OK", head.splitlines(), 0

    def dele(self, number):
        self.commands.append(("DELE", number))
        self.deleted.add(number)
        return b"+OK"

    def rset(self):
        self.commands.append(("RSET",))
        self.deleted.clear()
        return b"+OK"

    def quit(self):
        self.commands.append(("QUIT",))
        for number in sorted(self.deleted, reverse=True):
            del self.server.messages[number - 1]
            del self.server.uids[number - 1]
        self.deleted.clear()
        self.closed = True
        return b"+OK"


@pytest.fixture()
def pop3_server(monkeypatch: pytest.MonkeyPatch) -> FakePop3Server:
    """Route every POP3 connection to an in-memory maildrop."""
    server = FakePop3Server()
    monkeypatch.setattr(
        pop3_client, "open_connection", lambda session: FakePop3Connection(server)
    )
    return server


# SMTP ---------------------------------------------------------------------------
@dataclass
class Delivery:
    sender: str
    recipient: str
    raw: bytes

    @property
    def message(self) -> EmailMessage:
        return message_from_bytes(self.raw, policy=policy.default)


class FakeSmtpConnection(smtplib.SMTP):
    """A real ``smtplib.SMTP`` whose network commands are recorded instead."""

    def __init__(self, outbox: list[Delivery], refused: dict | None = None) -> None:
        super().__init__(local_hostname="localhost")
        self.outbox = outbox
        self.refused = refused or {}
        self.logged_in: tuple[str, str] | None = None
        self.quit_called = False

    def ehlo_or_helo_if_needed(self) -> None:
        return None

    def login(self, user, password, *, initial_response_ok=True):
        self.logged_in = (user, password)
        return 235, b"Authentication successful"

    def sendmail(self, from_addr, to_addrs, msg, mail_options=(), rcpt_options=()):
        for recipient in to_addrs:
            if recipient not in self.refused:
                self.outbox.append(Delivery(from_addr, recipient, msg))
        return dict(self.refused)

    def quit(self):
        self.quit_called = True
        return 221, b"Bye"


@pytest.fixture()
def smtp_outbox(monkeypatch: pytest.MonkeyPatch) -> list[Delivery]:
    """Capture every message submitted over SMTP, one entry per recipient."""
    outbox: list[Delivery] = []
    monkeypatch.setattr(
        smtp_client, "open_connection", lambda session: FakeSmtpConnection(outbox)
    )
    return outbox
