"""Session properties and the authentication policy shared by all sessions."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from ..core.errors import CredentialsError
from ..core.models import DEFAULT_CHARSET
from ..core.protocol import EmailProtocol

LOGGER = logging.getLogger(__name__)

PASSWORD_NO_USERNAME_ERROR = "Password provided but no username was specified"
USERNAME_NO_PASSWORD_ERROR = "Username provided but no password was specified"


@dataclass(frozen=True, slots=True)
class PasswordAuthenticator:
    """Hands out the username/password pair when a transport logs in."""

    username: str
    password: str = field(repr=False)

    def credentials(self) -> tuple[str, str]:
        return self.username, self.password


def to_millis(seconds: float) -> str:
    """Render a timeout in seconds as the millisecond string of the table."""
    return str(int(round(seconds * 1000)))


def build_session_properties(
    protocol: EmailProtocol,
    host: str,
    port: int,
    connection_timeout: float,
    read_timeout: float,
    write_timeout: float,
) -> dict[str, str]:
    """Compute the basic property table for ``protocol``."""
    return {
        protocol.host_property: host,
        protocol.port_property: str(port),
        protocol.connection_timeout_property: to_millis(connection_timeout),
        protocol.read_timeout_property: to_millis(read_timeout),
        protocol.write_timeout_property: to_millis(write_timeout),
        protocol.transport_name_property: protocol.base_name,
    }


def resolve_authenticator(
    username: str | None, password: str | None
) -> PasswordAuthenticator | None:
    """Apply the credentials policy; ``None`` means anonymous access.

    Raises:
        CredentialsError: If only one of username and password is provided.
    """
    if username is None and password is not None:
        raise CredentialsError(PASSWORD_NO_USERNAME_ERROR)
    if username is not None and password is None:
        raise CredentialsError(USERNAME_NO_PASSWORD_ERROR)
    if username is None or password is None:
        return None
    return PasswordAuthenticator(username, password)


class MailSession:
    """Property table plus authenticator describing how to reach a server.

    The table is built once, at construction. Timeouts are given in seconds
    and stored in milliseconds; caller supplied ``properties`` override the
    computed entries.
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
        """Build the property table and resolve the authenticator."""
        self.protocol = protocol
        table = build_session_properties(
            protocol, host, port, connection_timeout, read_timeout, write_timeout
        )
        if properties:
            table.update({key: str(value) for key, value in properties.items()})

        self._authenticator = resolve_authenticator(username, password)
        if self._authenticator is not None:
            table[protocol.auth_property] = "true"
        self._properties = MappingProxyType(table)
        LOGGER.debug(
            "Created %s session for %s:%s (auth=%s)",
            protocol.name,
            host,
            port,
            self._authenticator is not None,
        )

    @property
    def properties(self) -> Mapping[str, str]:
        """Read-only view of the session property table."""
        return self._properties

    @property
    def authenticator(self) -> PasswordAuthenticator | None:
        return self._authenticator

    @property
    def requires_auth(self) -> bool:
        return self.get_bool(self.protocol.auth_property)

    @property
    def default_charset(self) -> str:
        return self._properties.get(
            self.protocol.mime_charset_property, DEFAULT_CHARSET
        )

    # Typed accessors ------------------------------------------------------------
    def get(self, key: str, default: str | None = None) -> str | None:
        return self._properties.get(key, default)

    def get_bool(self, key: str) -> bool:
        return self._properties.get(key, "false").strip().lower() == "true"

    def get_int(self, key: str, default: int | None = None) -> int | None:
        value = self._properties.get(key)
        if value is None or not value.strip():
            return default
        return int(value)

    def get_seconds(self, key: str) -> float | None:
        """Read a millisecond timeout property as seconds."""
        millis = self.get_int(key)
        if millis is None or millis <= 0:
            return None
        return millis / 1000

    def get_list(self, key: str) -> list[str]:
        """Read a whitespace or comma separated property as a list."""
        value = self._properties.get(key) or ""
        return [item for item in value.replace(",", " ").split() if item]


__all__ = [
    "MailSession",
    "PasswordAuthenticator",
    "build_session_properties",
    "resolve_authenticator",
    "to_millis",
]
