"""Client configuration models and loader utilities."""

from __future__ import annotations

import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any, cast

from dotenv import dotenv_values
from pydantic import BaseModel, Field

from .protocol import EmailProtocol

DEFAULT_TIMEOUT_SECONDS = 10


class TlsConfiguration(BaseModel):
    """TLS parameters applied to secure or STARTTLS connections."""

    enabled_protocols: list[str] = Field(
        default_factory=list,
        description="TLS versions to enable, e.g. TLSv1.2 TLSv1.3",
    )
    enabled_cipher_suites: list[str] = Field(
        default_factory=list, description="OpenSSL cipher names to enable"
    )
    trusted_hosts: list[str] = Field(
        default_factory=list,
        description="Hosts trusted without certificate verification, or '*'",
    )
    starttls: bool = Field(
        default=False,
        description="Upgrade a cleartext connection instead of implicit TLS",
    )
    ca_file: Path | None = Field(default=None, description="CA bundle path")
    cert_file: Path | None = Field(default=None, description="Client certificate")
    key_file: Path | None = Field(default=None, description="Client private key")

    def to_properties(self, protocol: EmailProtocol) -> dict[str, str]:
        """Project the TLS settings onto ``protocol``'s property keys."""
        properties: dict[str, str] = {}
        if self.starttls:
            properties[protocol.starttls_property] = "true"
        else:
            properties[protocol.ssl_enable_property] = "true"
        if self.trusted_hosts:
            properties[protocol.ssl_trust_property] = " ".join(self.trusted_hosts)
        if self.enabled_protocols:
            properties[protocol.ssl_protocols_property] = " ".join(
                self.enabled_protocols
            )
        if self.enabled_cipher_suites:
            properties[protocol.ssl_ciphersuites_property] = " ".join(
                self.enabled_cipher_suites
            )
        for key, path in (
            (protocol.ssl_cafile_property, self.ca_file),
            (protocol.ssl_certfile_property, self.cert_file),
            (protocol.ssl_keyfile_property, self.key_file),
        ):
            if path is not None:
                properties[key] = str(path)
        return properties


class ClientConfiguration(BaseModel):
    """Connection tuning shared by every client façade."""

    connection_timeout: float = Field(
        default=DEFAULT_TIMEOUT_SECONDS,
        gt=0,
        description="TCP connect and TLS handshake timeout in seconds",
    )
    read_timeout: float = Field(
        default=DEFAULT_TIMEOUT_SECONDS, gt=0, description="Read timeout in seconds"
    )
    write_timeout: float = Field(
        default=DEFAULT_TIMEOUT_SECONDS, gt=0, description="Write timeout in seconds"
    )
    properties: dict[str, str] = Field(
        default_factory=dict,
        description="Extra session properties overriding computed ones",
    )
    tls: TlsConfiguration | None = Field(
        default=None, description="TLS settings; None for cleartext"
    )

    def protocol_for(self, family: str) -> EmailProtocol:
        """Pick the cleartext or secure protocol variant for ``family``."""
        secure = self.tls is not None and not self.tls.starttls
        return EmailProtocol.select(family, secure)

    def session_properties(self, protocol: EmailProtocol) -> dict[str, str]:
        """Return TLS derived properties merged with the caller's extras."""
        merged: dict[str, str] = {}
        if self.tls is not None:
            merged.update(self.tls.to_properties(protocol))
        merged.update(self.properties)
        return merged


class ServerSettings(BaseModel):
    """Where and how to reach one mail server."""

    host: str = Field(default="localhost", description="Server hostname")
    port: int | None = Field(
        default=None, description="Server port; protocol default when unset"
    )
    username: str | None = Field(default=None, description="Account username")
    password: str | None = Field(default=None, description="Account password")
    folder: str = Field(default="INBOX", description="Default folder to read")
    client: ClientConfiguration = Field(default_factory=ClientConfiguration)


class LoggingSettings(BaseModel):
    """Logging preferences."""

    level: str = Field(default="INFO", description="Root logging level")
    transport_level: str | None = Field(
        default=None,
        description="Level for mailwire.transport; inherits level when unset",
    )
    structured: bool = Field(
        default=False, description="Toggle JSON structured logging"
    )


class AppSettings(BaseModel):
    """Aggregated configuration for the command line tools."""

    imap: ServerSettings = Field(default_factory=ServerSettings)
    pop3: ServerSettings = Field(default_factory=ServerSettings)
    smtp: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


ENV_PREFIX = "MAILWIRE_"
NESTING_SEPARATOR = "__"
_BOOLEANS = {"true": True, "false": False}


def _prefixed(values: Mapping[str, str | None]) -> dict[str, str | None]:
    """Keep only the ``MAILWIRE_`` entries of ``values``."""
    return {
        key: value
        for key, value in values.items()
        if key and key.startswith(ENV_PREFIX)
    }


def _setting_path(key: str) -> list[str]:
    """``MAILWIRE_IMAP__CLIENT__TLS`` becomes ``["imap", "client", "tls"]``."""
    return [
        part.lower()
        for part in key.removeprefix(ENV_PREFIX).split(NESTING_SEPARATOR)
        if part
    ]


def _coerce(value: str | None) -> Any:
    """Empty strings mean unset; ``true``/``false`` become booleans."""
    if value is None or value == "":
        return None
    return _BOOLEANS.get(value.lower(), value)


def _nest(flat: Mapping[str, str | None]) -> dict[str, Any]:
    """Fold ``MAILWIRE_A__B=value`` entries into ``{"a": {"b": value}}``."""
    tree: dict[str, Any] = {}
    for key, value in flat.items():
        path = _setting_path(key)
        if not path:
            continue
        node = tree
        for part in path[:-1]:
            node = cast(dict[str, Any], node.setdefault(part, {}))
        node[path[-1]] = _coerce(value)
    return tree


def _read_sources(
    env_file: Path | str | None, include_environment: bool
) -> dict[str, str | None]:
    """Merge the env file and the process environment; the environment wins."""
    merged: dict[str, str | None] = {}
    if env_file and Path(env_file).is_file():
        merged.update(_prefixed(dotenv_values(Path(env_file))))
    if include_environment:
        merged.update(_prefixed(os.environ))
    return merged


@lru_cache(maxsize=1)
def load_app_settings(
    env_file: Path | str | None = None,
    include_environment: bool = True,
    **overrides: Any,
) -> AppSettings:
    """Build :class:`AppSettings` from an env file, the environment and overrides.

    Keys use the ``MAILWIRE_`` prefix and ``__`` between nesting levels, for
    example ``MAILWIRE_SMTP__CLIENT__TLS__STARTTLS=true``. Keyword overrides
    replace whole top-level sections.
    """
    collected = _nest(_read_sources(env_file, include_environment))
    collected.update(overrides)
    return AppSettings.model_validate(collected)


__all__ = [
    "AppSettings",
    "ClientConfiguration",
    "LoggingSettings",
    "ServerSettings",
    "TlsConfiguration",
    "load_app_settings",
]
