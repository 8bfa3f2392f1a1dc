"""Classify live DNS records against the records page rules require."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, Tuple

from .models import ClassificationResult, DNSRecord


def _build_slot_map(records: Iterable[DNSRecord]) -> Dict[Tuple[str, str], set[tuple[str, bool]]]:
    """Index required values by (type, name)."""
    index: Dict[Tuple[str, str], set[tuple[str, bool]]] = defaultdict(set)
    for record in records:
        index[record.slot()].add((record.canonical_content(), record.proxied))
    return index


def has_matching_record(required: Iterable[DNSRecord], live_record: DNSRecord) -> bool:
    """Return True when a required record has the same slot, content and proxy flag.

    TTL is ignored: automatic TTL is compatible with any explicit value.
    """
    values = _build_slot_map(required).get(live_record.slot(), set())
    return (live_record.canonical_content(), live_record.proxied) in values


def has_conflicting_record(required: Iterable[DNSRecord], live_record: DNSRecord) -> bool:
    """Return True when the live record occupies a required slot with the wrong value."""
    values = _build_slot_map(required).get(live_record.slot())
    if not values:
        return False
    return (live_record.canonical_content(), live_record.proxied) not in values


def classify(required: Iterable[DNSRecord], live_records: Iterable[DNSRecord]) -> ClassificationResult:
    """Partition live records into satisfying, conflicting and unrelated."""
    required = tuple(required)
    slot_map = _build_slot_map(required)
    satisfying: list[DNSRecord] = []
    conflicting: list[DNSRecord] = []
    unrelated: list[DNSRecord] = []

    for record in live_records:
        values = slot_map.get(record.slot())
        if not values:
            unrelated.append(record)
        elif (record.canonical_content(), record.proxied) in values:
            satisfying.append(record)
        else:
            conflicting.append(record)

    return ClassificationResult(
        required=required,
        satisfying=tuple(satisfying),
        conflicting=tuple(conflicting),
        unrelated=tuple(unrelated),
    )
