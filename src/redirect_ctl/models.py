"""Core data models used by redirect-ctl."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

AUTOMATIC_TTL = 1


def _canonical_host(name: str) -> str:
    """Return a lowercased hostname without a trailing dot."""
    return name.strip().rstrip(".").lower()


class RecordType(str, Enum):
    """DNS record types the provider understands."""

    A = "A"
    AAAA = "AAAA"
    CNAME = "CNAME"
    TXT = "TXT"
    MX = "MX"
    NS = "NS"
    SRV = "SRV"
    CAA = "CAA"


HOSTNAME_CONTENT_TYPES = {"CNAME", "MX", "NS", "SRV"}


@dataclass(frozen=True)
class DNSRecord:
    """A DNS record as the provider stores it."""

    type: str
    name: str
    content: str
    ttl: int = AUTOMATIC_TTL
    proxied: bool = False
    id: str | None = field(default=None, compare=False)
    zone_name: str | None = field(default=None, compare=False)
    priority: int | None = field(default=None, compare=False)

    def canonical_type(self) -> str:
        """Return the upper-cased record type."""
        return self.type.upper()

    def canonical_name(self) -> str:
        """Return the canonical owner name."""
        return _canonical_host(self.name)

    def canonical_content(self) -> str:
        """Return the record content normalised for comparisons."""
        if self.canonical_type() in HOSTNAME_CONTENT_TYPES:
            return _canonical_host(self.content)
        return self.content.strip()

    def slot(self) -> tuple[str, str]:
        """Return the (type, name) identity of the record."""
        return (self.canonical_type(), self.canonical_name())

    def key(self) -> tuple[str, str, str, bool]:
        """Return the attributes compared when matching records."""
        return (*self.slot(), self.canonical_content(), self.proxied)

    def is_automatic_ttl(self) -> bool:
        return self.ttl == AUTOMATIC_TTL


class RuleStatus(str, Enum):
    ACTIVE = "active"
    DISABLED = "disabled"


class ActionKind(str, Enum):
    """Closed vocabulary of page rule actions the converter understands."""

    FORWARDING_URL = "forwarding_url"
    ALWAYS_USE_HTTPS = "always_use_https"
    UNSUPPORTED = "unsupported"

    @classmethod
    def from_id(cls, action_id: str) -> "ActionKind":
        """Return the kind for a provider action id."""
        try:
            kind = cls(action_id)
        except ValueError:
            return cls.UNSUPPORTED
        return kind


class RedirectType(str, Enum):
    """How a redirect is issued."""

    FORWARDING = "forwarding"
    TEMPORARY = "temporary"

    @property
    def status_code(self) -> int:
        return REDIRECT_STATUS_CODES[self]

    @classmethod
    def from_status_code(cls, code: int) -> "RedirectType":
        for redirect_type, status in REDIRECT_STATUS_CODES.items():
            if status == code:
                return redirect_type
        raise ValueError(f"No redirect type for status code {code}")


REDIRECT_STATUS_CODES = {
    RedirectType.FORWARDING: 301,
    RedirectType.TEMPORARY: 302,
}


@dataclass(frozen=True)
class PageRuleAction:
    """A single action attached to a page rule."""

    id: str
    value: Any = None

    @property
    def kind(self) -> ActionKind:
        return ActionKind.from_id(self.id)


@dataclass(frozen=True)
class PageRule:
    """A provider page rule: a URL pattern plus ordered actions."""

    target_pattern: str
    actions: tuple[PageRuleAction, ...]
    priority: int = 1
    status: RuleStatus = RuleStatus.ACTIVE
    id: str | None = field(default=None, compare=False)

    def action_ids(self) -> tuple[str, ...]:
        return tuple(action.id for action in self.actions)

    def find_action(self, kind: ActionKind) -> PageRuleAction | None:
        """Return the first action of the given kind."""
        for action in self.actions:
            if action.kind == kind:
                return action
        return None


@dataclass(frozen=True)
class Redirect:
    """One human-authored redirect."""

    source: str
    target: str
    type: RedirectType = RedirectType.FORWARDING


@dataclass(frozen=True)
class RedirectDescription:
    """The redirects intended for a domain."""

    domain: str
    redirects: tuple[Redirect, ...] = ()

    def __iter__(self) -> Iterator[Redirect]:
        yield from self.redirects


@dataclass(frozen=True)
class UnsupportedRule:
    """Marker for a page rule that cannot be expressed as a redirect."""

    target_pattern: str
    action_ids: tuple[str, ...]
    reason: str


@dataclass(frozen=True)
class ClassificationResult:
    """Live records partitioned against the required set."""

    required: tuple[DNSRecord, ...]
    satisfying: tuple[DNSRecord, ...] = ()
    conflicting: tuple[DNSRecord, ...] = ()
    unrelated: tuple[DNSRecord, ...] = ()

    @property
    def missing(self) -> tuple[DNSRecord, ...]:
        """Return required records without a matching live record."""
        satisfied = {record.key() for record in self.satisfying}
        return tuple(record for record in self.required if record.key() not in satisfied)

    @property
    def fully_met(self) -> bool:
        return not self.missing and not self.conflicting

    def live_records(self) -> tuple[DNSRecord, ...]:
        return self.satisfying + self.conflicting + self.unrelated


class OperationAction(str, Enum):
    CREATE = "create"
    DELETE = "delete"


@dataclass(frozen=True)
class Operation:
    """A single record mutation."""

    action: OperationAction
    record: DNSRecord


@dataclass(frozen=True)
class Plan:
    """Ordered record mutations for a zone."""

    deletions: tuple[DNSRecord, ...] = ()
    creations: tuple[DNSRecord, ...] = ()

    def operations(self) -> Iterator[Operation]:
        """Yield every deletion before any creation."""
        for record in self.deletions:
            yield Operation(OperationAction.DELETE, record)
        for record in self.creations:
            yield Operation(OperationAction.CREATE, record)

    def is_empty(self) -> bool:
        return not (self.deletions or self.creations)

    def for_name(self, name: str) -> "Plan":
        """Return the part of the plan touching a single hostname."""
        wanted = _canonical_host(name)
        return Plan(
            deletions=tuple(r for r in self.deletions if r.canonical_name() == wanted),
            creations=tuple(r for r in self.creations if r.canonical_name() == wanted),
        )


@dataclass(frozen=True)
class OperationResult:
    """Outcome of one mutation sent to the provider."""

    operation: Operation
    ok: bool
    error: str | None = None


@dataclass
class ExecutionReport:
    """Completed and failed operations of an executed plan."""

    completed: list[Operation] = field(default_factory=list)
    failed: list[OperationResult] = field(default_factory=list)

    def record(self, result: OperationResult) -> None:
        if result.ok:
            self.completed.append(result.operation)
        else:
            self.failed.append(result)

    @property
    def succeeded(self) -> bool:
        return not self.failed


class RedirectCtlError(Exception):
    """Base exception for redirect-ctl."""


class ConversionError(RedirectCtlError):
    """Raised when a redirect or page rule cannot be mapped."""


class ValidationError(RedirectCtlError):
    """Raised when a redirect description is invalid."""


class AmbiguousRequirementError(RedirectCtlError):
    """Raised in strict mode when rules disagree about a required record."""


class ProviderError(RedirectCtlError):
    """Raised when the provider API rejects or fails a request."""


class ConfigError(RedirectCtlError):
    """Raised when configuration values are missing or invalid."""
