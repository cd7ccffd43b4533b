"""IMAP transport adapter providing store and folder access."""

from __future__ import annotations

import imaplib
import logging
import re
import ssl
import time
from collections.abc import Sequence
from datetime import datetime
from types import TracebackType
from typing import TYPE_CHECKING

from ..core.errors import MailboxError, MailConnectionError, RetrievalError
from ..core.interfaces import FetchedMessage, FolderMode, MailFolder, RemoteMessage
from ..core.models import EmailFlag
from .tls import ConnectionParameters, apply_io_timeout, create_ssl_context

if TYPE_CHECKING:
    from ..search import SearchTerm
    from ..session.base import MailSession

LOGGER = logging.getLogger(__name__)

IMAP_FLAGS = {
    EmailFlag.ANSWERED: r"\Answered",
    EmailFlag.DELETED: r"\Deleted",
    EmailFlag.DRAFT: r"\Draft",
    EmailFlag.RECENT: r"\Recent",
    EmailFlag.SEEN: r"\Seen",
}
_FLAGS_BY_NAME = {name.lower(): flag for flag, name in IMAP_FLAGS.items()}

_SEQ_UID_PATTERN = re.compile(rb"^\s*(\d+)\s+\(.*?\bUID\s+(\d+)")
_ATOM_SPECIALS = re.compile(r'[\s(){%*"\\\]]')

ImapConnection = imaplib.IMAP4 | imaplib.IMAP4_SSL


def quote_mailbox(name: str) -> str:
    """Quote a mailbox name when it is not a plain IMAP atom."""
    if name and not _ATOM_SPECIALS.search(name):
        return name
    escaped = name.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def open_connection(session: MailSession) -> ImapConnection:
    """Open a cleartext, STARTTLS or implicit TLS IMAP connection.

    Authentication is left to the caller.
    """
    params = ConnectionParameters.from_session(session)
    context: ssl.SSLContext | None = None
    connection: ImapConnection
    if params.implicit_tls:
        context = create_ssl_context(session, params.host)
        LOGGER.debug(
            "Connecting to IMAP host %s:%s via SSL", params.host, params.port
        )
        try:
            connection = imaplib.IMAP4_SSL(
                params.host,
                params.port,
                ssl_context=context,
                timeout=params.connect_timeout,
            )
        except ssl.SSLError:
            if not params.fallback:
                raise
            LOGGER.warning("TLS handshake with %s failed; falling back", params.host)
            connection = imaplib.IMAP4(
                params.host, params.port, timeout=params.connect_timeout
            )
    else:
        LOGGER.debug(
            "Connecting to IMAP host %s:%s without SSL", params.host, params.port
        )
        connection = imaplib.IMAP4(
            params.host, params.port, timeout=params.connect_timeout
        )
        if params.starttls:
            LOGGER.debug("Upgrading IMAP connection with STARTTLS")
            connection.starttls(ssl_context=create_ssl_context(session, params.host))
    apply_io_timeout(getattr(connection, "sock", None), params.io_timeout)
    return connection


class ImapStore:
    """Authenticated IMAP connection handing out folder handles."""

    def __init__(self, session: MailSession) -> None:
        """Initialise the store; :meth:`connect` opens the connection."""
        self._session = session
        self._connection: ImapConnection | None = None
        self._capabilities: frozenset[str] = frozenset()
        self.selected: ImapFolder | None = None

    # Context manager helpers -------------------------------------------------
    def __enter__(self) -> ImapStore:
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    # Public API ---------------------------------------------------------------
    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    def connect(self) -> None:
        """Open the connection and log in when the session requires it."""
        if self._connection is not None:
            return
        try:
            connection = open_connection(self._session)
            authenticator = self._session.authenticator
            if self._session.requires_auth and authenticator is not None:
                username, password = authenticator.credentials()
                LOGGER.debug("Authenticating as %s", username)
                connection.login(username, password)
            self._capabilities = _read_capabilities(connection)
        except (imaplib.IMAP4.error, OSError) as exc:
            raise MailConnectionError(
                f"Error while acquiring connection with the "
                f"{self._session.protocol.name} store"
            ) from exc
        self._connection = connection

    def has_capability(self, name: str) -> bool:
        return name.upper() in self._capabilities

    def get_folder(self, name: str) -> ImapFolder:
        self.require_connection()
        return ImapFolder(self, name)

    def close(self) -> None:
        """Terminate the IMAP session."""
        if self._connection is None:
            return
        connection, self._connection = self._connection, None
        self.selected = None
        try:
            LOGGER.debug("Logging out of IMAP server")
            connection.logout()
        except (imaplib.IMAP4.error, OSError) as exc:
            raise MailConnectionError("Error while closing the IMAP store") from exc

    def require_connection(self) -> ImapConnection:
        if self._connection is None:
            raise MailConnectionError("IMAP connection has not been established")
        return self._connection


class ImapFolder:
    """One IMAP mailbox; opening it selects it on the store connection."""

    supports_uid = True
    supports_search = True
    supports_move = True
    supports_flags = True

    def __init__(self, store: ImapStore, name: str) -> None:
        self.name = name
        self._store = store
        self._mode: FolderMode | None = None

    def __repr__(self) -> str:
        return f"ImapFolder({self.name!r}, mode={self.mode!r})"

    @property
    def mode(self) -> FolderMode | None:
        return self._mode if self.is_open else None

    @property
    def is_open(self) -> bool:
        return self._mode is not None and self._store.selected is self

    def open(self, mode: FolderMode) -> None:
        connection = self._store.require_connection()
        readonly = mode is FolderMode.READ_ONLY
        try:
            status, _ = connection.select(quote_mailbox(self.name), readonly=readonly)
        except (imaplib.IMAP4.error, OSError) as exc:
            raise MailboxError(f"Error while opening folder [{self.name}]") from exc
        if status != "OK":
            raise MailboxError(f"Error while opening folder [{self.name}]")
        self._store.selected = self
        self._mode = mode
        LOGGER.debug("Opened folder %s in %s mode", self.name, mode.name)

    def close(self, expunge: bool) -> None:
        if not self.is_open:
            return
        connection = self._store.require_connection()
        try:
            if expunge and self._mode is FolderMode.READ_WRITE:
                connection.close()
            elif self._store.has_capability("UNSELECT"):
                connection.unselect()
            else:
                if self._mode is FolderMode.READ_WRITE:
                    # CLOSE on a read-only selection never expunges.
                    connection.select(quote_mailbox(self.name), readonly=True)
                connection.close()
        except (imaplib.IMAP4.error, OSError) as exc:
            raise MailboxError(
                f"Error while closing mailbox folder {self.name}"
            ) from exc
        finally:
            self._mode = None
            self._store.selected = None
        LOGGER.debug("Closed folder %s (expunge=%s)", self.name, expunge)

    def message_count(self) -> int:
        connection = self._require_open()
        status, data = self._call(connection.search, None, "ALL")
        if status != "OK":
            raise RetrievalError(f"Unable to count messages in [{self.name}]")
        return len(data[0].split()) if data and data[0] else 0

    def get_messages(self, start: int, end: int) -> list[RemoteMessage]:
        if end < start:
            return []
        return self._messages_for(f"{start}:{end}")

    def get_message(self, number: int) -> RemoteMessage:
        messages = self.get_messages(number, number)
        if not messages:
            raise RetrievalError(f"No message number {number} in [{self.name}]")
        return messages[0]

    def get_message_by_uid(self, uid: int) -> RemoteMessage:
        connection = self._require_open()
        status, data = self._call(connection.uid, "FETCH", str(uid), "(UID)")
        if status != "OK":
            raise RetrievalError(f"Cannot retrieve email id:[{uid}] from [{self.name}]")
        for number, found_uid in _parse_sequence_uids(data):
            if found_uid == uid:
                return RemoteMessage(self, number, uid)
        raise RetrievalError(f"No email with id:[{uid}] in folder [{self.name}]")

    def get_uid(self, message: RemoteMessage) -> int:
        return message.uid

    def fetch(self, message: RemoteMessage, read_content: bool) -> FetchedMessage:
        connection = self._require_open()
        # PEEK keeps \Seen untouched when content is not read.
        section = "BODY[]" if read_content else "BODY.PEEK[HEADER]"
        status, data = self._call(
            connection.uid,
            "FETCH",
            str(message.uid),
            f"(UID FLAGS INTERNALDATE {section})",
        )
        if status != "OK":
            raise RetrievalError(f"Failed to fetch message UID {message.uid}")
        return _parse_fetch_response(data, message.uid)

    def search(self, term: SearchTerm) -> list[RemoteMessage]:
        connection = self._require_open()
        criteria = term.to_imap()
        LOGGER.debug("Searching [%s] with %s", self.name, criteria)
        if criteria.isascii():
            status, data = self._call(connection.search, None, criteria)
        else:
            status, data = self._call(
                connection.search, "UTF-8", criteria.encode("utf-8")
            )
        if status != "OK":
            raise RetrievalError(f"Search failed in folder [{self.name}]")
        numbers = data[0].split() if data and data[0] else []
        if not numbers:
            return []
        by_number = {
            m.number: m for m in self._messages_for(b",".join(numbers).decode())
        }
        return [by_number[int(n)] for n in numbers if int(n) in by_number]

    def copy_messages(
        self, messages: Sequence[RemoteMessage], target: MailFolder
    ) -> None:
        connection = self._require_open()
        status, _ = self._call(
            connection.uid, "COPY", _uid_set(messages), quote_mailbox(target.name)
        )
        if status != "OK":
            raise MailboxError(f"Failed to copy messages to [{target.name}]")

    def move_messages(
        self, messages: Sequence[RemoteMessage], target: MailFolder
    ) -> None:
        connection = self._require_open()
        if not self._store.has_capability("MOVE"):
            LOGGER.debug("Server lacks MOVE; copying and expunging instead")
            self.copy_messages(messages, target)
            for message in messages:
                self.set_flag(message, EmailFlag.DELETED, True)
            self.expunge()
            return
        status, _ = self._call(
            connection.uid, "MOVE", _uid_set(messages), quote_mailbox(target.name)
        )
        if status != "OK":
            raise MailboxError(f"Failed to move messages to [{target.name}]")

    def set_flag(self, message: RemoteMessage, flag: EmailFlag, value: bool) -> None:
        connection = self._require_open()
        status, _ = self._call(
            connection.uid,
            "STORE",
            str(message.uid),
            "+FLAGS" if value else "-FLAGS",
            f"({IMAP_FLAGS[flag]})",
        )
        if status != "OK":
            raise RetrievalError(
                f"Error while marking the email:[{message.uid}] as [{flag.value}]"
            )

    def expunge(self) -> None:
        connection = self._require_open()
        status, _ = self._call(connection.expunge)
        if status != "OK":
            raise RetrievalError(f"Error while expunging folder:[{self.name}]")

    # Internal helpers ---------------------------------------------------------
    def _require_open(self) -> ImapConnection:
        if not self.is_open:
            raise MailboxError(f"Folder [{self.name}] is not open")
        return self._store.require_connection()

    def _call(self, command, *args):  # type: ignore[no-untyped-def]
        try:
            return command(*args)
        except (imaplib.IMAP4.error, OSError) as exc:
            raise RetrievalError(
                f"IMAP error in folder [{self.name}]: {exc}"
            ) from exc

    def _messages_for(self, sequence_set: str) -> list[RemoteMessage]:
        connection = self._require_open()
        status, data = self._call(connection.fetch, sequence_set, "(UID)")
        if status != "OK":
            raise RetrievalError("Error while retrieving emails")
        pairs = sorted(_parse_sequence_uids(data))
        return [RemoteMessage(self, number, uid) for number, uid in pairs]


def _read_capabilities(connection: ImapConnection) -> frozenset[str]:
    status, data = connection.capability()
    if status == "OK" and data and data[0]:
        return frozenset(item.upper() for item in data[0].decode().split())
    return frozenset(str(item).upper() for item in connection.capabilities)


def _uid_set(messages: Sequence[RemoteMessage]) -> str:
    return ",".join(str(message.uid) for message in messages)


def _response_lines(data: Sequence[object]) -> list[bytes]:
    lines: list[bytes] = []
    for entry in data or []:
        if isinstance(entry, tuple):
            lines.append(entry[0])
        elif isinstance(entry, bytes):
            lines.append(entry)
    return lines


def _parse_sequence_uids(data: Sequence[object]) -> list[tuple[int, int]]:
    pairs = []
    for line in _response_lines(data):
        match = _SEQ_UID_PATTERN.match(line)
        if match:
            pairs.append((int(match.group(1)), int(match.group(2))))
    return pairs


def _parse_fetch_response(data: Sequence[object], uid: int) -> FetchedMessage:
    """Extract payload, flags and internal date from a ``UID FETCH`` reply."""
    uid_marker = re.compile(rb"\bUID\s+%d\b" % uid)
    payload: bytes | None = None
    metadata = b""
    for index, entry in enumerate(data or []):
        if not isinstance(entry, tuple) or len(entry) != 2:
            continue
        if payload is not None or not uid_marker.search(entry[0]):
            continue
        payload = entry[1]
        metadata = entry[0]
        # Some servers send FLAGS after the literal.
        trailer = data[index + 1] if index + 1 < len(data) else b""
        if isinstance(trailer, bytes):
            metadata += trailer
    if payload is None:
        raise RetrievalError(f"No RFC822 payload returned for UID {uid}")

    flags = frozenset(
        _FLAGS_BY_NAME[name.decode().lower()]
        for name in imaplib.ParseFlags(metadata)
        if name.decode().lower() in _FLAGS_BY_NAME
    )
    received = None
    internal = imaplib.Internaldate2tuple(metadata)
    if internal is not None:
        received = datetime.fromtimestamp(time.mktime(internal)).astimezone()
    return FetchedMessage(payload=payload, flags=flags, received_date=received)


__all__ = [
    "IMAP_FLAGS",
    "ImapFolder",
    "ImapStore",
    "open_connection",
    "quote_mailbox",
]
