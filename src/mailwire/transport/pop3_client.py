"""POP3 transport adapter exposing the single ``INBOX`` folder."""

from __future__ import annotations

import logging
import poplib
import ssl
from collections.abc import Sequence
from typing import TYPE_CHECKING

from ..core.errors import MailboxError, MailConnectionError, RetrievalError
from ..core.interfaces import FetchedMessage, FolderMode, MailFolder, RemoteMessage
from ..core.models import NO_ID, EmailFlag
from .tls import ConnectionParameters, apply_io_timeout, create_ssl_context

if TYPE_CHECKING:
    from ..search import SearchTerm
    from ..session.base import MailSession

LOGGER = logging.getLogger(__name__)

INBOX = "INBOX"

Pop3Connection = poplib.POP3 | poplib.POP3_SSL


def open_connection(session: MailSession) -> Pop3Connection:
    """Open a POP3 connection and authenticate when the session requires it."""
    params = ConnectionParameters.from_session(session)
    connection: Pop3Connection
    if params.implicit_tls:
        context = create_ssl_context(session, params.host)
        LOGGER.debug("Connecting to POP3 host %s:%s via SSL", params.host, params.port)
        try:
            connection = poplib.POP3_SSL(
                params.host,
                params.port,
                timeout=params.connect_timeout,
                context=context,
            )
        except ssl.SSLError:
            if not params.fallback:
                raise
            LOGGER.warning("TLS handshake with %s failed; falling back", params.host)
            connection = poplib.POP3(
                params.host, params.port, timeout=params.connect_timeout
            )
    else:
        LOGGER.debug(
            "Connecting to POP3 host %s:%s without SSL", params.host, params.port
        )
        connection = poplib.POP3(
            params.host, params.port, timeout=params.connect_timeout
        )
    try:
        if params.starttls and not params.implicit_tls:
            connection.stls(context=create_ssl_context(session, params.host))
        apply_io_timeout(getattr(connection, "sock", None), params.io_timeout)

        authenticator = session.authenticator
        if session.requires_auth and authenticator is not None:
            username, password = authenticator.credentials()
            LOGGER.debug("Authenticating as %s", username)
            connection.user(username)
            connection.pass_(password)
    except (poplib.error_proto, OSError, MailConnectionError):
        connection.close()
        raise
    return connection


def parse_uid(value: bytes | str) -> int:
    """Map a UIDL value to a numeric id, or the ``-1`` sentinel."""
    text = value.decode("ascii", "replace") if isinstance(value, bytes) else value
    return int(text) if text.isdigit() else NO_ID


class Pop3Store:
    """POP3 account; every folder open uses its own connection."""

    def __init__(self, session: MailSession) -> None:
        self._session = session
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    def connect(self) -> None:
        """Validate the address and credentials with a short round trip."""
        if self._connected:
            return
        try:
            connection = open_connection(self._session)
            connection.quit()
        except (poplib.error_proto, OSError) as exc:
            raise MailConnectionError(
                f"Error while acquiring connection with the "
                f"{self._session.protocol.name} store"
            ) from exc
        self._connected = True

    def get_folder(self, name: str) -> Pop3Folder:
        if not self._connected:
            raise MailConnectionError("POP3 store is not connected")
        if name.upper() != INBOX:
            raise MailboxError(f"POP3 has no folder [{name}]; only {INBOX} exists")
        return Pop3Folder(self._session, name)

    def close(self) -> None:
        self._connected = False


class Pop3Folder:
    """The POP3 maildrop, presented as a folder.

    Deletions issued with ``DELE`` are committed when the folder is expunged
    or closed with ``expunge=True``; any other close resets them.
    """

    supports_uid = False
    supports_search = False
    supports_move = False
    supports_flags = False

    def __init__(self, session: MailSession, name: str) -> None:
        self.name = name
        self._session = session
        self._connection: Pop3Connection | None = None
        self._mode: FolderMode | None = None
        self._uids: dict[int, int] | None = None
        self._deleted: set[int] = set()

    def __repr__(self) -> str:
        return f"Pop3Folder({self.name!r}, mode={self._mode!r})"

    @property
    def mode(self) -> FolderMode | None:
        return self._mode

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def open(self, mode: FolderMode) -> None:
        try:
            self._connection = open_connection(self._session)
        except (poplib.error_proto, OSError, MailConnectionError) as exc:
            raise MailboxError(f"Error while opening folder [{self.name}]") from exc
        self._mode = mode
        self._reset_state()
        LOGGER.debug("Opened POP3 folder %s in %s mode", self.name, mode.name)

    def close(self, expunge: bool) -> None:
        if self._connection is None:
            return
        connection, self._connection = self._connection, None
        self._mode = None
        try:
            if self._deleted and not expunge:
                connection.rset()
            connection.quit()
        except (poplib.error_proto, OSError) as exc:
            raise MailboxError(
                f"Error while closing mailbox folder {self.name}"
            ) from exc
        finally:
            self._reset_state()

    def message_count(self) -> int:
        connection = self._require_open()
        try:
            count, _ = connection.stat()
        except (poplib.error_proto, OSError) as exc:
            raise RetrievalError("Unable to count POP3 messages") from exc
        return count

    def get_messages(self, start: int, end: int) -> list[RemoteMessage]:
        end = min(end, self.message_count())
        if end < start:
            return []
        uids = self._uid_table()
        return [
            RemoteMessage(self, number, uids.get(number, NO_ID))
            for number in range(start, end + 1)
        ]

    def get_message(self, number: int) -> RemoteMessage:
        messages = self.get_messages(number, number)
        if not messages:
            raise RetrievalError(f"No message number {number} in [{self.name}]")
        return messages[0]

    def get_message_by_uid(self, uid: int) -> RemoteMessage:
        raise RetrievalError(
            f"Cannot retrieve email id:[{uid}]; POP3 does not address messages by UID"
        )

    def get_uid(self, message: RemoteMessage) -> int:
        return message.uid

    def fetch(self, message: RemoteMessage, read_content: bool) -> FetchedMessage:
        connection = self._require_open()
        try:
            if read_content:
                _, lines, _ = connection.retr(message.number)
            else:
                _, lines, _ = connection.top(message.number, 0)
        except (poplib.error_proto, OSError) as exc:
            raise RetrievalError(
                f"Failed to fetch POP3 message {message.number}"
            ) from exc
        flags = (
            frozenset({EmailFlag.DELETED})
            if message.number in self._deleted
            else frozenset()
        )
        return FetchedMessage(
            payload=b"\r\n".join(lines) + b"\r\n", flags=flags, received_date=None
        )

    def search(self, term: SearchTerm) -> list[RemoteMessage]:
        raise RetrievalError("POP3 does not support server-side search")

    def copy_messages(
        self, messages: Sequence[RemoteMessage], target: MailFolder
    ) -> None:
        raise MailboxError("POP3 cannot copy messages between folders")

    def move_messages(
        self, messages: Sequence[RemoteMessage], target: MailFolder
    ) -> None:
        raise MailboxError("POP3 cannot move messages between folders")

    def set_flag(self, message: RemoteMessage, flag: EmailFlag, value: bool) -> None:
        if flag is not EmailFlag.DELETED or not value:
            raise MailboxError(
                f"POP3 cannot {'set' if value else 'clear'} flag [{flag.value}]"
            )
        connection = self._require_open()
        try:
            connection.dele(message.number)
        except (poplib.error_proto, OSError) as exc:
            raise RetrievalError(
                f"Error while marking the email:[{message.number}] as deleted"
            ) from exc
        self._deleted.add(message.number)

    def expunge(self) -> None:
        """Commit pending deletions by ending and restarting the session."""
        mode = self._mode or FolderMode.READ_WRITE
        self.close(expunge=True)
        self.open(mode)

    # Internal helpers ---------------------------------------------------------
    def _require_open(self) -> Pop3Connection:
        if self._connection is None:
            raise MailboxError(f"Folder [{self.name}] is not open")
        return self._connection

    def _reset_state(self) -> None:
        self._uids = None
        self._deleted = set()

    def _uid_table(self) -> dict[int, int]:
        if self._uids is None:
            connection = self._require_open()
            try:
                _, listing, _ = connection.uidl()
            except poplib.error_proto:
                LOGGER.debug("Server rejected UIDL; message ids are unavailable")
                listing = []
            except OSError as exc:
                raise RetrievalError("UIDL failed") from exc
            table: dict[int, int] = {}
            for line in listing:
                number, _, value = line.partition(b" ")
                table[int(number)] = parse_uid(value.strip())
            self._uids = table
        return self._uids


__all__ = ["INBOX", "Pop3Folder", "Pop3Store", "open_connection", "parse_uid"]
