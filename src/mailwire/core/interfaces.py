"""Protocol interfaces for the mail transport boundary.

Sessions and folder operations talk to remote servers only through
:class:`MailStore` and :class:`MailFolder`. The IMAP and POP3 adapters in
:mod:`mailwire.transport` implement them on top of ``imaplib`` and ``poplib``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import TYPE_CHECKING, Protocol

from .models import EmailFlag

if TYPE_CHECKING:
    from ..search import SearchTerm


class FolderMode(IntEnum):
    """Access mode a folder is opened with."""

    READ_ONLY = 1
    READ_WRITE = 2


@dataclass(frozen=True, slots=True)
class RemoteMessage:
    """Handle addressing one message inside an open folder."""

    folder: MailFolder
    number: int
    uid: int


@dataclass(frozen=True, slots=True)
class FetchedMessage:
    """Raw RFC822 payload of a message plus server side metadata."""

    payload: bytes
    flags: frozenset[EmailFlag]
    received_date: datetime | None


class MailFolder(Protocol):
    """A remote folder; at most one is open per session."""

    name: str
    supports_uid: bool
    supports_search: bool
    supports_move: bool
    supports_flags: bool

    @property
    def mode(self) -> FolderMode | None:
        """Mode the folder is open in, or ``None`` when closed."""
        raise NotImplementedError

    @property
    def is_open(self) -> bool:
        raise NotImplementedError

    def open(self, mode: FolderMode) -> None:
        raise NotImplementedError

    def close(self, expunge: bool) -> None:
        raise NotImplementedError

    def message_count(self) -> int:
        raise NotImplementedError

    def get_messages(self, start: int, end: int) -> list[RemoteMessage]:
        """Return handles for positions ``start`` to ``end`` inclusive."""
        raise NotImplementedError

    def get_message(self, number: int) -> RemoteMessage:
        raise NotImplementedError

    def get_message_by_uid(self, uid: int) -> RemoteMessage:
        raise NotImplementedError

    def get_uid(self, message: RemoteMessage) -> int:
        raise NotImplementedError

    def fetch(self, message: RemoteMessage, read_content: bool) -> FetchedMessage:
        """Download a message; headers only unless ``read_content``."""
        raise NotImplementedError

    def search(self, term: SearchTerm) -> list[RemoteMessage]:
        raise NotImplementedError

    def copy_messages(
        self, messages: Sequence[RemoteMessage], target: MailFolder
    ) -> None:
        raise NotImplementedError

    def move_messages(
        self, messages: Sequence[RemoteMessage], target: MailFolder
    ) -> None:
        raise NotImplementedError

    def set_flag(self, message: RemoteMessage, flag: EmailFlag, value: bool) -> None:
        raise NotImplementedError

    def expunge(self) -> None:
        raise NotImplementedError


class MailStore(Protocol):
    """An authenticated connection to a retrieval server."""

    @property
    def is_connected(self) -> bool:
        raise NotImplementedError

    def connect(self) -> None:
        raise NotImplementedError

    def get_folder(self, name: str) -> MailFolder:
        """Return a folder handle without opening it."""
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError


__all__ = [
    "FetchedMessage",
    "FolderMode",
    "MailFolder",
    "MailStore",
    "RemoteMessage",
]
