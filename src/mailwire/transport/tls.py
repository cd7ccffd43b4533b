"""Connection parameters and TLS contexts derived from session properties."""

from __future__ import annotations

import logging
import socket
import ssl
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..core.errors import MailConnectionError

if TYPE_CHECKING:
    from ..session.base import MailSession

LOGGER = logging.getLogger(__name__)

_TLS_VERSIONS = {
    "TLSV1": ssl.TLSVersion.TLSv1,
    "TLSV1.1": ssl.TLSVersion.TLSv1_1,
    "TLSV1.2": ssl.TLSVersion.TLSv1_2,
    "TLSV1.3": ssl.TLSVersion.TLSv1_3,
}


@dataclass(frozen=True, slots=True)
class ConnectionParameters:
    """Everything a transport needs to open its socket."""

    host: str
    port: int
    connect_timeout: float | None
    io_timeout: float | None
    implicit_tls: bool
    starttls: bool
    fallback: bool

    @classmethod
    def from_session(cls, session: MailSession) -> ConnectionParameters:
        protocol = session.protocol
        port = session.get_int(protocol.socket_factory_port_property)
        if port is None:
            port = session.get_int(protocol.port_property, protocol.default_port)
        read_timeout = session.get_seconds(protocol.read_timeout_property)
        write_timeout = session.get_seconds(protocol.write_timeout_property)
        # A socket has a single timeout covering both directions.
        timeouts = [t for t in (read_timeout, write_timeout) if t is not None]
        return cls(
            host=session.get(protocol.host_property) or "localhost",
            port=port or protocol.default_port,
            connect_timeout=session.get_seconds(protocol.connection_timeout_property),
            io_timeout=max(timeouts) if timeouts else None,
            implicit_tls=protocol.secure
            or session.get_bool(protocol.ssl_enable_property),
            starttls=session.get_bool(protocol.starttls_property),
            fallback=session.get_bool(protocol.socket_factory_fallback_property),
        )


def create_ssl_context(session: MailSession, host: str) -> ssl.SSLContext:
    """Build the client TLS context described by ``mail.<base>.ssl.*`` keys.

    Raises:
        MailConnectionError: If a protocol, cipher or key file is invalid.
    """
    protocol = session.protocol
    try:
        context = ssl.create_default_context(
            cafile=session.get(protocol.ssl_cafile_property)
        )
        cert_file = session.get(protocol.ssl_certfile_property)
        if cert_file:
            context.load_cert_chain(
                cert_file, keyfile=session.get(protocol.ssl_keyfile_property)
            )

        trusted = session.get_list(protocol.ssl_trust_property)
        if "*" in trusted or host in trusted:
            LOGGER.debug("Host %s is trusted; skipping certificate checks", host)
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE

        versions = []
        for name in session.get_list(protocol.ssl_protocols_property):
            version = _TLS_VERSIONS.get(name.upper())
            if version is None:
                raise ValueError(f"Unsupported TLS protocol '{name}'")
            versions.append(version)
        if versions:
            context.minimum_version = min(versions)
            context.maximum_version = max(versions)

        ciphers = session.get_list(protocol.ssl_ciphersuites_property)
        if ciphers:
            context.set_ciphers(":".join(ciphers))
    except (ssl.SSLError, OSError, ValueError) as exc:
        raise MailConnectionError(f"Invalid TLS configuration: {exc}") from exc
    return context


def apply_io_timeout(sock: socket.socket | None, timeout: float | None) -> None:
    """Switch a connected socket from the connect timeout to the I/O timeout."""
    if sock is not None and timeout is not None:
        sock.settimeout(timeout)


__all__ = ["ConnectionParameters", "apply_io_timeout", "create_ssl_context"]
