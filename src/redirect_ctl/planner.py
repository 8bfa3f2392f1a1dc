"""Turn a classification into record deletions and creations."""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from .models import ClassificationResult, DNSRecord, Plan


class Strategy(str, Enum):
    """How missing records should be put in place."""

    REQUIRED = "required"
    ALL = "all"
    SKIP = "skip"


def plan_required(classification: ClassificationResult) -> Plan:
    """Delete conflicting records and create the missing required ones.

    Satisfying and unrelated records are left untouched.
    """
    return Plan(deletions=classification.conflicting, creations=classification.missing)


def plan_replace_all(classification: ClassificationResult, live_records: Iterable[DNSRecord]) -> Plan:
    """Replace every live record with the required set.

    One exact match per required record is kept instead of being deleted and
    recreated; the resulting zone is the same.
    """
    keep = {record.key() for record in classification.required}
    deletions: list[DNSRecord] = []
    for record in live_records:
        if record.key() in keep:
            keep.discard(record.key())
            continue
        deletions.append(record)
    creations = tuple(record for record in classification.required if record.key() in keep)
    return Plan(deletions=tuple(deletions), creations=creations)


def plan_for(
    strategy: Strategy,
    classification: ClassificationResult,
    live_records: Iterable[DNSRecord] | None = None,
) -> Plan | None:
    """Return the plan for a strategy, or None when skipping."""
    if strategy == Strategy.REQUIRED:
        return plan_required(classification)
    if strategy == Strategy.ALL:
        records = classification.live_records() if live_records is None else live_records
        return plan_replace_all(classification, records)
    return None
