"""Sessions for submitting outgoing email."""

from __future__ import annotations

import logging
import threading

from ..core.models import OutgoingEmail
from ..operations.send import send_email
from .base import MailSession

LOGGER = logging.getLogger(__name__)


class SenderSession(MailSession):
    """SMTP session; each send opens, uses and closes its own connection.

    Sends are serialised so the session can be shared across threads.
    """

    def __init__(self, *args, **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__(*args, **kwargs)
        self._send_lock = threading.Lock()

    def send_message(self, email: OutgoingEmail) -> None:
        """Submit ``email`` to all of its To, Cc and Bcc recipients."""
        with self._send_lock:
            send_email(self, email)

    def disconnect(self) -> None:
        """Nothing is held between sends, so there is nothing to release."""
        LOGGER.debug("Sender session for %s released", self.protocol.name)


__all__ = ["SenderSession"]
