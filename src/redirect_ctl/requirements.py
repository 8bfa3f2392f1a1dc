"""Derive the DNS records a set of page rules depends on."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from .converter import DEFAULT_APEX_ADDRESS, RuleFailure, required_dns_record_for
from .models import AmbiguousRequirementError, ConversionError, DNSRecord, PageRule

LOG = logging.getLogger("redirect_ctl")


@dataclass
class RequirementReport:
    """Required records plus the rules that could not be mapped."""

    records: tuple[DNSRecord, ...] = ()
    failures: list[RuleFailure] = field(default_factory=list)


def _priority_order(page_rules: Iterable[PageRule]) -> list[PageRule]:
    """Order rules the way the provider evaluates them.

    Higher priority first; ties keep their input order.
    """
    indexed = list(enumerate(page_rules))
    indexed.sort(key=lambda item: (-item[1].priority, item[0]))
    return [rule for _, rule in indexed]


def derive_requirements(
    page_rules: Iterable[PageRule],
    zone: str | None = None,
    apex_address: str = DEFAULT_APEX_ADDRESS,
    strict: bool = False,
) -> RequirementReport:
    """Map rules to required records, one per (type, name), without raising."""
    chosen: dict[tuple[str, str], DNSRecord] = {}
    failures: list[RuleFailure] = []
    for rule in _priority_order(page_rules):
        try:
            record = required_dns_record_for(rule, zone=zone, apex_address=apex_address)
        except ConversionError as exc:
            LOG.warning("Skipping page rule %s: %s", rule.target_pattern, exc)
            failures.append(RuleFailure(item=rule, error=exc))
            continue
        existing = chosen.get(record.slot())
        if existing is None:
            chosen[record.slot()] = record
            continue
        if existing.key() != record.key():
            if strict:
                failures.append(
                    RuleFailure(
                        item=rule,
                        error=AmbiguousRequirementError(
                            f"Page rule {rule.target_pattern} requires {record.type} {record.name} "
                            f"-> {record.content} (proxied={record.proxied}) but an earlier rule "
                            f"requires {existing.content} (proxied={existing.proxied})."
                        ),
                    )
                )
            elif existing.proxied != record.proxied:
                LOG.warning(
                    "Rules disagree on proxying %s %s; keeping proxied=%s from the higher-priority rule",
                    record.type,
                    record.name,
                    existing.proxied,
                )
            else:
                LOG.debug("Keeping first requirement for %s %s", record.type, record.name)
    return RequirementReport(records=tuple(chosen.values()), failures=failures)


def build_required_records(
    page_rules: Iterable[PageRule],
    zone: str | None = None,
    apex_address: str = DEFAULT_APEX_ADDRESS,
    strict: bool = False,
) -> tuple[DNSRecord, ...]:
    """Return the deduplicated records the rules need.

    Raises the first conversion (or, in strict mode, ambiguity) failure.
    """
    report = derive_requirements(page_rules, zone=zone, apex_address=apex_address, strict=strict)
    if report.failures:
        raise report.failures[0].error
    return report.records
