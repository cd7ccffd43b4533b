"""Command-line entry point for mailwire."""

from __future__ import annotations

import argparse
from pathlib import Path

from mailwire.clients import ImapClient, Pop3Client, SmtpClient
from mailwire.core import (
    AppSettings,
    EmailBuilder,
    MailError,
    ServerSettings,
    configure_logging,
    load_app_settings,
)
from mailwire.core.interfaces import FolderMode
from mailwire.core.models import StoredEmail
from mailwire.operations.folder import ALL_MESSAGES


def build_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser."""
    parser = argparse.ArgumentParser(description="mailwire email client")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to a .env file containing configuration overrides.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="info",
        choices=["info", "list", "send"],
        help="Operation to execute.",
    )
    parser.add_argument(
        "--protocol",
        choices=["imap", "pop3"],
        default="imap",
        help="Retrieval protocol for the list command (default: imap).",
    )
    parser.add_argument(
        "--folder",
        default=None,
        help="Folder to list; defaults to the configured folder.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Number of messages to list; set to 0 for all (default: 20).",
    )
    parser.add_argument(
        "--read-content",
        dest="read_content",
        action="store_true",
        help="Download message bodies; IMAP then marks them as seen.",
    )
    parser.add_argument("--to", action="append", default=[], help="Recipient.")
    parser.add_argument("--subject", default=None, help="Subject for send.")
    parser.add_argument("--body", default="", help="Plain text body for send.")
    return parser


def execute(args: argparse.Namespace, settings: AppSettings) -> None:
    """Execute the requested CLI command."""
    command = args.command
    if command == "info":
        print("mailwire is ready. Configure MAILWIRE_* settings to get started.")
        for name in ("imap", "pop3", "smtp"):
            server: ServerSettings = getattr(settings, name)
            port = server.port if server.port is not None else "default"
            secure = "tls" if server.client.tls is not None else "plain"
            print(f"{name.upper()} host: {server.host}:{port} ({secure})")
    elif command == "list":
        _run_list(
            settings,
            protocol=args.protocol,
            folder=args.folder,
            limit=args.limit,
            read_content=args.read_content,
        )
    elif command == "send":
        _run_send(settings, to=args.to, subject=args.subject, body=args.body)


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    settings = load_app_settings(env_file=args.env_file)
    configure_logging(settings.logging)
    execute(args, settings)


def _run_list(
    settings: AppSettings,
    *,
    protocol: str,
    folder: str | None,
    limit: int,
    read_content: bool,
) -> None:
    """Print one line per message of a remote folder."""
    server = settings.imap if protocol == "imap" else settings.pop3
    folder_name = folder or server.folder
    count = ALL_MESSAGES if limit <= 0 else limit
    client_type = ImapClient if protocol == "imap" else Pop3Client
    try:
        client = client_type(
            server.username, server.password, server.host, server.port, server.client
        )
        with client:
            session = client if isinstance(client, ImapClient) else client.session
            opened = session.open_folder(folder_name, FolderMode.READ_ONLY)
            emails = session.retrieve(opened, read_content, count)
    except MailError as exc:
        print(f"List failed: {exc}")
        return

    if not emails:
        print(f"No messages found in {folder_name}.")
        return
    print(f"Showing {len(emails)} message(s) from {folder_name}:")
    print(f"{'UID':>8}  {'Flags':<5}  {'From':<30}  Subject")
    for email in emails:
        print(_format_row(email))


def _format_row(email: StoredEmail) -> str:
    flags = email.flags
    markers = "".join(
        marker if is_set else "-"
        for marker, is_set in (
            ("A", flags.answered),
            ("D", flags.deleted),
            ("d", flags.draft),
            ("R", flags.recent),
            ("S", flags.seen),
        )
    )
    sender = email.from_addresses[0] if email.from_addresses else ""
    return f"{email.id:>8}  {markers:<5}  {sender[:30]:<30}  {email.subject}"


def _run_send(
    settings: AppSettings, *, to: list[str], subject: str | None, body: str
) -> None:
    """Send a plain text message from the configured SMTP account."""
    server = settings.smtp
    if not server.username:
        print("Send failed: MAILWIRE_SMTP__USERNAME is not configured")
        return
    try:
        email = (
            EmailBuilder()
            .from_(server.username)
            .to(to)
            .subject(subject)
            .body(body)
            .build()
        )
        with SmtpClient(
            server.username, server.password, server.host, server.port, server.client
        ) as client:
            client.send(email)
    except MailError as exc:
        print(f"Send failed: {exc}")
        return
    print(f"Sent '{email.subject}' to {len(email.recipients)} recipient(s).")


__all__ = ["build_parser", "execute", "main"]
