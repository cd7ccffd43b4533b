"""Boolean search term trees rendered as IMAP ``SEARCH`` criteria."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from .core.models import EmailFlag

_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)  # fmt: skip

_FLAG_KEYWORDS = {
    EmailFlag.ANSWERED: ("ANSWERED", "UNANSWERED"),
    EmailFlag.DELETED: ("DELETED", "UNDELETED"),
    EmailFlag.DRAFT: ("DRAFT", "UNDRAFT"),
    EmailFlag.RECENT: ("RECENT", "OLD"),
    EmailFlag.SEEN: ("SEEN", "UNSEEN"),
}


class Comparison(Enum):
    """Comparison operators for date terms."""

    LT = "LT"
    LE = "LE"
    EQ = "EQ"
    NE = "NE"
    GT = "GT"
    GE = "GE"


def imap_date(value: date | datetime) -> str:
    """Format ``value`` as an IMAP ``date`` (``01-Feb-2024``), locale free."""
    return f"{value.day:02d}-{_MONTHS[value.month - 1]}-{value.year:04d}"


def imap_quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class SearchTerm(ABC):
    """A predicate evaluated by the server."""

    @abstractmethod
    def to_imap(self) -> str:
        """Render the term as IMAP search criteria."""


@dataclass(frozen=True, init=False)
class AndTerm(SearchTerm):
    """Conjunction of every child term."""

    terms: tuple[SearchTerm, ...]

    def __init__(self, *terms: SearchTerm) -> None:
        object.__setattr__(self, "terms", tuple(terms))

    def to_imap(self) -> str:
        if not self.terms:
            return "ALL"
        if len(self.terms) == 1:
            return self.terms[0].to_imap()
        return "(" + " ".join(term.to_imap() for term in self.terms) + ")"


@dataclass(frozen=True, init=False)
class OrTerm(SearchTerm):
    """Disjunction of at least two child terms."""

    terms: tuple[SearchTerm, ...]

    def __init__(self, *terms: SearchTerm) -> None:
        if len(terms) < 2:
            raise ValueError("OrTerm needs at least two terms")
        object.__setattr__(self, "terms", tuple(terms))

    def to_imap(self) -> str:
        rendered = self.terms[-1].to_imap()
        for term in reversed(self.terms[:-1]):
            rendered = f"OR {term.to_imap()} {rendered}"
        return rendered


@dataclass(frozen=True)
class NotTerm(SearchTerm):
    term: SearchTerm

    def to_imap(self) -> str:
        return f"NOT {self.term.to_imap()}"


@dataclass(frozen=True)
class _DateTerm(SearchTerm):
    comparison: Comparison
    value: date | datetime

    _before = "BEFORE"
    _on = "ON"
    _since = "SINCE"

    def to_imap(self) -> str:
        day = imap_date(self.value)
        before = f"{self._before} {day}"
        on = f"{self._on} {day}"
        since = f"{self._since} {day}"
        rendered = {
            Comparison.LT: before,
            Comparison.LE: f"OR {before} {on}",
            Comparison.EQ: on,
            Comparison.NE: f"NOT {on}",
            Comparison.GT: f"({since} NOT {on})",
            Comparison.GE: since,
        }
        return rendered[self.comparison]


@dataclass(frozen=True)
class ReceivedDateTerm(_DateTerm):
    """Compare the server's internal (received) date, day granularity."""


@dataclass(frozen=True)
class SentDateTerm(_DateTerm):
    """Compare the ``Date:`` header, day granularity."""

    _before = "SENTBEFORE"
    _on = "SENTON"
    _since = "SENTSINCE"


@dataclass(frozen=True)
class SubjectTerm(SearchTerm):
    pattern: str

    def to_imap(self) -> str:
        return f"SUBJECT {imap_quote(self.pattern)}"


@dataclass(frozen=True)
class FromTerm(SearchTerm):
    address: str

    def to_imap(self) -> str:
        return f"FROM {imap_quote(self.address)}"


@dataclass(frozen=True)
class RecipientTerm(SearchTerm):
    """Match an address in the To, Cc or Bcc header."""

    kind: str
    address: str

    def __post_init__(self) -> None:
        if self.kind.upper() not in ("TO", "CC", "BCC"):
            raise ValueError(f"Unknown recipient kind '{self.kind}'")

    def to_imap(self) -> str:
        return f"{self.kind.upper()} {imap_quote(self.address)}"


@dataclass(frozen=True)
class BodyTerm(SearchTerm):
    pattern: str

    def to_imap(self) -> str:
        return f"BODY {imap_quote(self.pattern)}"


@dataclass(frozen=True)
class HeaderTerm(SearchTerm):
    name: str
    pattern: str

    def to_imap(self) -> str:
        return f"HEADER {imap_quote(self.name)} {imap_quote(self.pattern)}"


@dataclass(frozen=True)
class FlagTerm(SearchTerm):
    """Match messages whose ``flag`` is (or is not) set."""

    flag: EmailFlag
    is_set: bool = True

    def to_imap(self) -> str:
        positive, negative = _FLAG_KEYWORDS[self.flag]
        return positive if self.is_set else negative


@dataclass(frozen=True)
class UidRangeTerm(SearchTerm):
    """Match UIDs from ``start`` to ``end`` inclusive; open ended if ``None``."""

    start: int
    end: int | None = None

    def to_imap(self) -> str:
        end = "*" if self.end is None else str(self.end)
        return f"UID {self.start}:{end}"


def received_between(older_than: datetime, newer_than: datetime) -> AndTerm:
    """Messages received before ``older_than`` and after ``newer_than``."""
    return AndTerm(
        ReceivedDateTerm(Comparison.LT, older_than),
        ReceivedDateTerm(Comparison.GT, newer_than),
    )


__all__ = [
    "AndTerm",
    "BodyTerm",
    "Comparison",
    "FlagTerm",
    "FromTerm",
    "HeaderTerm",
    "NotTerm",
    "OrTerm",
    "ReceivedDateTerm",
    "RecipientTerm",
    "SearchTerm",
    "SentDateTerm",
    "SubjectTerm",
    "UidRangeTerm",
    "imap_date",
    "imap_quote",
    "received_between",
]
