"""Mail protocol descriptors and their configuration key vocabulary.

Every protocol maps to a base name used in ``mail.<base>.<property>`` keys of
the session property table. The keys are the external configuration surface
and must stay stable.
"""

from __future__ import annotations

from enum import Enum

DEFAULT_SMTP_PORT = 25
DEFAULT_SMTPS_PORT = 465
DEFAULT_IMAP_PORT = 143
DEFAULT_IMAPS_PORT = 993
DEFAULT_POP3_PORT = 110
DEFAULT_POP3S_PORT = 995

TRANSPORT_NAME_PROPERTY = "mail.transport.name"
MIME_CHARSET_PROPERTY = "mail.mime.charset"


class EmailProtocol(Enum):
    """The six supported mail protocols."""

    SMTP = ("smtp", False, DEFAULT_SMTP_PORT)
    SMTPS = ("smtp", True, DEFAULT_SMTPS_PORT)
    IMAP = ("imap", False, DEFAULT_IMAP_PORT)
    IMAPS = ("imaps", True, DEFAULT_IMAPS_PORT)
    POP3 = ("pop3", False, DEFAULT_POP3_PORT)
    POP3S = ("pop3s", True, DEFAULT_POP3S_PORT)

    def __init__(self, base_name: str, secure: bool, default_port: int) -> None:
        self.base_name = base_name
        self.secure = secure
        self.default_port = default_port

    @property
    def family(self) -> str:
        """Protocol family without the secure suffix: smtp, imap or pop3."""
        return self.name.lower().rstrip("s") if self.secure else self.name.lower()

    @classmethod
    def select(cls, family: str, secure: bool) -> EmailProtocol:
        """Return the cleartext or secure variant of ``family``."""
        for protocol in cls:
            if protocol.family == family and protocol.secure == secure:
                return protocol
        raise ValueError(f"Unknown protocol family '{family}'")

    # Property keys -----------------------------------------------------------
    def _key(self, suffix: str) -> str:
        return f"mail.{self.base_name}.{suffix}"

    @property
    def host_property(self) -> str:
        return self._key("host")

    @property
    def port_property(self) -> str:
        return self._key("port")

    @property
    def auth_property(self) -> str:
        return self._key("auth")

    @property
    def connection_timeout_property(self) -> str:
        """TCP connect and TLS handshake timeout, in milliseconds."""
        return self._key("connectiontimeout")

    @property
    def read_timeout_property(self) -> str:
        """Per-read socket timeout, in milliseconds."""
        return self._key("timeout")

    @property
    def write_timeout_property(self) -> str:
        """Per-write socket timeout, in milliseconds."""
        return self._key("writetimeout")

    @property
    def transport_name_property(self) -> str:
        return TRANSPORT_NAME_PROPERTY

    @property
    def mime_charset_property(self) -> str:
        return MIME_CHARSET_PROPERTY

    @property
    def ssl_enable_property(self) -> str:
        return self._key("ssl.enable")

    @property
    def ssl_trust_property(self) -> str:
        return self._key("ssl.trust")

    @property
    def ssl_protocols_property(self) -> str:
        return self._key("ssl.protocols")

    @property
    def ssl_ciphersuites_property(self) -> str:
        return self._key("ssl.ciphersuites")

    @property
    def ssl_cafile_property(self) -> str:
        return self._key("ssl.cafile")

    @property
    def ssl_certfile_property(self) -> str:
        return self._key("ssl.certfile")

    @property
    def ssl_keyfile_property(self) -> str:
        return self._key("ssl.keyfile")

    @property
    def socket_factory_property(self) -> str:
        return self._key("socketFactory")

    @property
    def socket_factory_port_property(self) -> str:
        return self._key("socketFactory.port")

    @property
    def socket_factory_fallback_property(self) -> str:
        return self._key("socketFactory.fallback")

    @property
    def starttls_property(self) -> str:
        return self._key("starttls.enable")


__all__ = [
    "DEFAULT_IMAPS_PORT",
    "DEFAULT_IMAP_PORT",
    "DEFAULT_POP3S_PORT",
    "DEFAULT_POP3_PORT",
    "DEFAULT_SMTPS_PORT",
    "DEFAULT_SMTP_PORT",
    "EmailProtocol",
    "MIME_CHARSET_PROPERTY",
    "TRANSPORT_NAME_PROPERTY",
]
