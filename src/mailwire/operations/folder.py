"""Retrieve, search and move operations over open folders."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from ..core.errors import InvariantViolation, RetrievalError
from ..core.interfaces import FolderMode, MailFolder, RemoteMessage
from ..core.models import StoredEmail
from ..ingestion.parser import EmailParser
from ..search import AndTerm, SearchTerm, received_between
from .flags import FlagOperations, verify_folder_mode

LOGGER = logging.getLogger(__name__)

# Sentinel for "every message currently in the folder".
ALL_MESSAGES = 2**31 - 1


def get_messages(folder: MailFolder, count: int = ALL_MESSAGES) -> list[RemoteMessage]:
    """Return handles for the first ``count`` messages of ``folder``.

    The folder size is read once and bounds ``count``; :data:`ALL_MESSAGES`
    takes that snapshot as is.
    """
    count = min(count, folder.message_count())
    if count < 1:
        return []
    return folder.get_messages(1, count)


def get_email_uid(message: RemoteMessage) -> int:
    """Server UID of ``message``, or ``-1`` when the protocol has none."""
    return message.folder.get_uid(message)


def search_messages(folder: MailFolder, *terms: SearchTerm) -> list[RemoteMessage]:
    """Run the conjunction of ``terms`` on the server."""
    if not folder.supports_search:
        raise RetrievalError(f"Folder [{folder.name}] does not support search")
    return folder.search(AndTerm(*terms))


def move_messages(
    from_folder: MailFolder,
    messages: Sequence[RemoteMessage],
    to_folder: MailFolder,
) -> None:
    """Relocate ``messages`` from ``from_folder`` into ``to_folder``.

    Raises:
        InvariantViolation: If ``messages`` is empty or ``from_folder`` is
            not open read-write.
    """
    if not messages:
        raise InvariantViolation("No messages to move")
    verify_folder_mode(from_folder, FolderMode.READ_WRITE)
    LOGGER.debug(
        "Moving %d message(s) from %s to %s",
        len(messages),
        from_folder.name,
        to_folder.name,
    )
    if from_folder.supports_move:
        from_folder.move_messages(messages, to_folder)
        return
    from_folder.copy_messages(messages, to_folder)
    FlagOperations.delete_messages(messages)


class FolderOperations:
    """Folder vocabulary shared by mailbox sessions.

    Methods take folders opened through the owning session. Every message of a
    batch is materialised before the batch is returned; one failure fails the
    whole call.
    """

    parser: EmailParser

    def retrieve_by_id(
        self, folder: MailFolder, uid: int, read_content: bool = True
    ) -> StoredEmail:
        """Fetch the message with server UID ``uid``."""
        if not folder.supports_uid:
            raise RetrievalError(
                f"Cannot retrieve email id:[{uid}] from folder [{folder.name}]; "
                "the folder does not address messages by UID"
            )
        message = folder.get_message_by_uid(uid)
        return self.to_stored(message, read_content)

    def retrieve(
        self, folder: MailFolder, read_content: bool, count: int = ALL_MESSAGES
    ) -> list[StoredEmail]:
        """Fetch the first ``count`` messages by position."""
        return self.to_stored_list(get_messages(folder, count), read_content)

    def search(
        self, folder: MailFolder, read_content: bool, *terms: SearchTerm
    ) -> list[StoredEmail]:
        """Fetch messages matching every term, in server result order."""
        return self.to_stored_list(search_messages(folder, *terms), read_content)

    def search_between(
        self,
        folder: MailFolder,
        read_content: bool,
        older_than: datetime,
        newer_than: datetime,
    ) -> list[StoredEmail]:
        """Fetch messages received after ``newer_than`` and before ``older_than``."""
        return self.search(
            folder, read_content, received_between(older_than, newer_than)
        )

    def retrieve_and_move(
        self,
        from_folder: MailFolder,
        read_content: bool,
        count: int,
        to_folder: MailFolder,
    ) -> list[StoredEmail]:
        verify_folder_mode(from_folder, FolderMode.READ_WRITE)
        messages = get_messages(from_folder, count)
        emails = self.to_stored_list(messages, read_content)
        if messages:
            move_messages(from_folder, messages, to_folder)
        return emails

    def search_and_move(
        self,
        folder: MailFolder,
        read_content: bool,
        to_folder: MailFolder,
        *terms: SearchTerm,
    ) -> list[StoredEmail]:
        verify_folder_mode(folder, FolderMode.READ_WRITE)
        messages = search_messages(folder, *terms)
        emails = self.to_stored_list(messages, read_content)
        if messages:
            move_messages(folder, messages, to_folder)
        return emails

    def search_between_and_move(
        self,
        folder: MailFolder,
        read_content: bool,
        to_folder: MailFolder,
        older_than: datetime,
        newer_than: datetime,
    ) -> list[StoredEmail]:
        return self.search_and_move(
            folder, read_content, to_folder, received_between(older_than, newer_than)
        )

    def move(
        self,
        from_folder: MailFolder,
        messages: Sequence[RemoteMessage],
        to_folder: MailFolder,
    ) -> None:
        move_messages(from_folder, messages, to_folder)

    def move_message(
        self, from_folder: MailFolder, message: RemoteMessage, to_folder: MailFolder
    ) -> None:
        move_messages(from_folder, [message], to_folder)

    def move_first(
        self, from_folder: MailFolder, count: int, to_folder: MailFolder
    ) -> None:
        """Move the first ``count`` messages of ``from_folder`` by position."""
        move_messages(from_folder, get_messages(from_folder, count), to_folder)

    # Materialisation -----------------------------------------------------------
    def to_stored(self, message: RemoteMessage, read_content: bool) -> StoredEmail:
        fetched = message.folder.fetch(message, read_content)
        return self.parser.parse(
            fetched,
            uid=get_email_uid(message),
            number=message.number,
            read_content=read_content,
        )

    def to_stored_list(
        self, messages: Sequence[RemoteMessage], read_content: bool
    ) -> list[StoredEmail]:
        emails = [self.to_stored(message, read_content) for message in messages]
        LOGGER.debug("Materialised %d stored email(s)", len(emails))
        return emails


__all__ = [
    "ALL_MESSAGES",
    "FolderOperations",
    "get_email_uid",
    "get_messages",
    "move_messages",
    "search_messages",
]
