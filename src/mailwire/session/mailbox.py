"""Retrieval sessions holding one store connection and one open folder."""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from types import TracebackType

from ..core.errors import MailboxError, MailConnectionError, MailError
from ..core.interfaces import FolderMode, MailFolder, MailStore
from ..core.protocol import EmailProtocol
from ..ingestion.parser import EmailParser
from ..operations.flags import FlagOperations
from ..operations.folder import FolderOperations
from ..transport.imap_client import ImapStore
from ..transport.pop3_client import Pop3Store
from .base import MailSession

LOGGER = logging.getLogger(__name__)


def create_store(session: MailSession) -> MailStore:
    """Instantiate the retrieval store for the session protocol."""
    family = session.protocol.family
    if family == "imap":
        return ImapStore(session)
    if family == "pop3":
        return Pop3Store(session)
    raise MailConnectionError(
        f"Protocol {session.protocol.name} cannot be used to retrieve emails"
    )


class MailboxSession(FolderOperations, FlagOperations, MailSession):
    """Connected retrieval session.

    At most one folder is open at a time. ``open_folder``, ``get_folder``,
    ``close_folder`` and ``disconnect`` are serialised by a re-entrant lock.
    """

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        protocol: EmailProtocol,
        username: str | None,
        password: str | None,
        host: str,
        port: int,
        connection_timeout: float,
        read_timeout: float,
        write_timeout: float,
        properties: Mapping[str, str] | None = None,
    ) -> None:
        """Build the session and connect its store."""
        super().__init__(
            protocol,
            username,
            password,
            host,
            port,
            connection_timeout,
            read_timeout,
            write_timeout,
            properties,
        )
        self._lock = threading.RLock()
        self._current_folder: MailFolder | None = None
        self._connected = False
        self.parser = EmailParser(self.default_charset)
        self._store = create_store(self)
        self._store.connect()
        self._connected = True
        LOGGER.info("Connected %s mailbox session to %s", protocol.name, host)

    # Context manager helpers -------------------------------------------------
    def __enter__(self) -> MailboxSession:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.disconnect()

    # Folder discipline ---------------------------------------------------------
    @property
    def current_folder(self) -> MailFolder | None:
        return self._current_folder

    @property
    def is_connected(self) -> bool:
        return self._connected

    def open_folder(self, name: str, mode: FolderMode) -> MailFolder:
        """Open ``name`` in ``mode``, reusing the current folder when it matches.

        Raises:
            MailboxError: If the folder cannot be opened.
        """
        with self._lock:
            self._require_connected()
            current = self._current_folder
            if (
                current is not None
                and current.name.lower() == name.lower()
                and current.mode == mode
                and current.is_open
            ):
                return current
            self._close_current(expunge=False)
            try:
                folder = self._store.get_folder(name)
                folder.open(mode)
            except MailboxError:
                raise
            except MailError as exc:
                raise MailboxError(f"Error while opening folder [{name}]") from exc
            self._current_folder = folder
            return folder

    def get_folder(self, name: str) -> MailFolder:
        """Return a handle for ``name`` without opening it."""
        with self._lock:
            self._require_connected()
            return self._store.get_folder(name)

    def close_folder(self, expunge: bool = False) -> None:
        with self._lock:
            self._close_current(expunge)

    def disconnect(self) -> None:
        """Close the current folder and the store; errors are logged and dropped."""
        with self._lock:
            if not self._connected:
                return
            self._connected = False
            try:
                self._close_current(expunge=False)
            except (MailError, OSError) as exc:
                LOGGER.debug("Ignoring error while closing folder: %s", exc)
            finally:
                self._current_folder = None
            try:
                self._store.close()
            except (MailError, OSError) as exc:
                LOGGER.debug("Ignoring error while closing store: %s", exc)
            LOGGER.info("Disconnected %s mailbox session", self.protocol.name)

    # Internal helpers ---------------------------------------------------------
    def _require_connected(self) -> None:
        if not self._connected:
            raise MailConnectionError("Mailbox session is disconnected")

    def _close_current(self, expunge: bool) -> None:
        folder = self._current_folder
        if folder is None:
            return
        self._current_folder = None
        if folder.is_open:
            folder.close(expunge)


__all__ = ["MailboxSession", "create_store"]
