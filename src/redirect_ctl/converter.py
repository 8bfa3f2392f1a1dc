"""Conversion between redirects, page rules and the DNS records they imply."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable
from urllib.parse import urlsplit

import dns.exception
import dns.name

from .models import (
    ActionKind,
    ConversionError,
    DNSRecord,
    PageRule,
    PageRuleAction,
    Redirect,
    RedirectDescription,
    RedirectType,
    RecordType,
    RuleStatus,
    UnsupportedRule,
    ValidationError,
)

DEFAULT_APEX_ADDRESS = "192.0.2.1"
WILDCARD_LABEL = "*."


@dataclass
class RuleFailure:
    """A redirect or rule that could not be converted."""

    item: object
    error: Exception


@dataclass
class ConversionReport:
    """Page rules built from a description, with per-redirect failures."""

    page_rules: list[PageRule] = field(default_factory=list)
    failures: list[RuleFailure] = field(default_factory=list)


def _validate_hostname(host: str, allow_wildcard: bool = False) -> str:
    """Return a lowercased hostname or raise ConversionError."""
    candidate = host.strip().rstrip(".").lower()
    labels = candidate[len(WILDCARD_LABEL):] if allow_wildcard and candidate.startswith(WILDCARD_LABEL) else candidate
    if not labels or "*" in labels:
        raise ConversionError(f"'{host}' is not a valid hostname.")
    try:
        dns.name.from_text(labels)
    except dns.exception.DNSException as exc:
        raise ConversionError(f"'{host}' is not a valid hostname: {exc}") from exc
    if any(not label for label in labels.split(".")) or any(ch.isspace() for ch in labels):
        raise ConversionError(f"'{host}' is not a valid hostname.")
    return candidate


def _split_pattern(pattern: str) -> tuple[str, str]:
    """Split a URL pattern into its host part and path part."""
    cleaned = pattern.strip()
    if "://" in cleaned:
        cleaned = cleaned.split("://", 1)[1]
    host, sep, path = cleaned.partition("/")
    return host, f"{sep}{path}"


def hostname_from_pattern(pattern: str) -> str:
    """Return the hostname a page rule target pattern applies to.

    ``*example.com`` and ``example.com`` both name the apex while
    ``*.example.com`` names the wildcard record.
    """
    host, _ = _split_pattern(pattern)
    # drop the port and any trailing glob
    host = host.split(":", 1)[0].rstrip("*").lower()
    if host.startswith(WILDCARD_LABEL):
        return _validate_hostname(host, allow_wildcard=True)
    return _validate_hostname(host.lstrip("*"))


def _domain_from_pattern(domain_pattern: str) -> str:
    host, path = _split_pattern(domain_pattern)
    if path:
        raise ConversionError(f"Domain pattern '{domain_pattern}' must not include a path.")
    return _validate_hostname(host.lstrip("*").lstrip("."))


def _is_under(host: str, domain: str) -> bool:
    bare = host[len(WILDCARD_LABEL):] if host.startswith(WILDCARD_LABEL) else host
    return bare == domain or bare.endswith(f".{domain}")


def _validate_path(path: str, original: str) -> None:
    if any(ch.isspace() for ch in path):
        raise ConversionError(f"'{original}' contains whitespace.")


def _validate_target_url(target: str) -> str:
    """Return the redirect destination or raise ConversionError."""
    cleaned = target.strip()
    parts = urlsplit(cleaned)
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        raise ConversionError(f"Redirect target '{target}' must be an absolute http(s) URL.")
    if any(ch.isspace() for ch in cleaned):
        raise ConversionError(f"Redirect target '{target}' contains whitespace.")
    _validate_hostname(parts.hostname or "")
    return cleaned


def check_redirect_domain(redirect: Redirect, domain: str) -> None:
    """Raise ValidationError unless the redirect source lives under domain."""
    if redirect.source.startswith("/"):
        return
    host, _ = _split_pattern(redirect.source)
    try:
        host = hostname_from_pattern(host)
    except ConversionError as exc:
        raise ValidationError(str(exc)) from exc
    if not _is_under(host, domain.rstrip(".").lower()):
        raise ValidationError(f"Redirect source '{redirect.source}' is not under {domain}.")


def page_rule_from_redirect(redirect: Redirect, domain_pattern: str, priority: int = 1) -> PageRule:
    """Build a forwarding page rule for a redirect.

    A source starting with ``/`` is appended to ``domain_pattern``; any other
    source already names its host and must live under the pattern's domain.
    """
    domain = _domain_from_pattern(domain_pattern)
    try:
        redirect_type = RedirectType(redirect.type)
    except ValueError as exc:
        raise ConversionError(f"Unknown redirect type '{redirect.type}'.") from exc
    source = redirect.source.strip()
    if not source:
        raise ConversionError("Redirect source is empty.")
    if source.startswith("/"):
        _validate_path(source, redirect.source)
        target_pattern = f"{domain_pattern.strip()}{source}"
    else:
        host, path = _split_pattern(source)
        _validate_path(path, redirect.source)
        hostname_from_pattern(host)
        check_redirect_domain(redirect, domain)
        target_pattern = source
    url = _validate_target_url(redirect.target)
    action = PageRuleAction(
        id=ActionKind.FORWARDING_URL.value,
        value={"url": url, "status_code": redirect_type.status_code},
    )
    return PageRule(target_pattern=target_pattern, actions=(action,), priority=priority)


def convert_redirects(description: RedirectDescription, domain_pattern: str | None = None) -> ConversionReport:
    """Convert every redirect of a description, collecting failures."""
    pattern = domain_pattern or f"*{description.domain}"
    report = ConversionReport()
    total = len(description.redirects)
    for index, redirect in enumerate(description.redirects):
        try:
            # earlier redirects get higher priority, matching file order
            rule = page_rule_from_redirect(redirect, pattern, priority=total - index)
        except (ConversionError, ValidationError) as exc:
            report.failures.append(RuleFailure(item=redirect, error=exc))
            continue
        report.page_rules.append(rule)
    return report


def _strip_domain_pattern(target_pattern: str, domain_pattern: str | None) -> str:
    if domain_pattern:
        prefix = domain_pattern.strip()
        remainder = target_pattern[len(prefix):]
        if target_pattern.startswith(prefix) and remainder.startswith("/"):
            return remainder
    return target_pattern


def _redirect_from_rule(rule: PageRule, domain_pattern: str | None) -> Redirect | UnsupportedRule:
    action = rule.find_action(ActionKind.FORWARDING_URL)
    if action is None:
        unknown = [a.id for a in rule.actions if a.kind == ActionKind.UNSUPPORTED]
        reason = f"unsupported actions: {', '.join(unknown)}" if unknown else "no forwarding action"
        return UnsupportedRule(rule.target_pattern, rule.action_ids(), reason)
    value = action.value if isinstance(action.value, dict) else {}
    url = value.get("url")
    if not url:
        return UnsupportedRule(rule.target_pattern, rule.action_ids(), "forwarding action without url")
    try:
        redirect_type = RedirectType.from_status_code(int(value.get("status_code", 301)))
    except (TypeError, ValueError):
        return UnsupportedRule(
            rule.target_pattern,
            rule.action_ids(),
            f"unsupported status code {value.get('status_code')}",
        )
    return Redirect(
        source=_strip_domain_pattern(rule.target_pattern, domain_pattern),
        target=url,
        type=redirect_type,
    )


def page_rules_to_redirects(
    page_rules: Iterable[PageRule],
    domain_pattern: str | None = None,
) -> list[Redirect | UnsupportedRule]:
    """Describe page rules as redirects, marking what cannot be expressed."""
    return [_redirect_from_rule(rule, domain_pattern) for rule in page_rules]


def _apex_for(hostname: str, zone: str | None) -> str:
    bare = hostname[len(WILDCARD_LABEL):] if hostname.startswith(WILDCARD_LABEL) else hostname
    if zone:
        apex = zone.rstrip(".").lower()
        if not _is_under(hostname, apex):
            raise ConversionError(f"Hostname {hostname} is outside zone {apex}.")
        return apex
    labels = bare.split(".")
    return ".".join(labels[-2:])


def required_dns_record_for(
    page_rule: PageRule,
    zone: str | None = None,
    apex_address: str = DEFAULT_APEX_ADDRESS,
) -> DNSRecord:
    """Return the DNS record the rule's hostname must resolve through.

    The apex gets an A record pointing at a placeholder address, every other
    hostname a CNAME to the apex. Both are proxied unless the rule is
    disabled.
    """
    hostname = hostname_from_pattern(page_rule.target_pattern)
    apex = _apex_for(hostname, zone)
    proxied = page_rule.status == RuleStatus.ACTIVE
    if hostname == apex:
        return DNSRecord(type=RecordType.A.value, name=hostname, content=apex_address, proxied=proxied)
    return DNSRecord(type=RecordType.CNAME.value, name=hostname, content=apex, proxied=proxied)
