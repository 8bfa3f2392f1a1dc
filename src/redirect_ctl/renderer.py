"""Render live DNS records as a BIND zone file via Jinja2 templates."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from .models import DNSRecord

DEFAULT_TTL = 3600


def _owner_for_zone(name: str, origin: str) -> str:
    """Return the owner label relative to the origin."""
    absolute = name.rstrip(".").lower()
    apex = origin.rstrip(".").lower()
    if absolute == apex:
        return "@"
    if absolute.endswith(f".{apex}"):
        return absolute[: -len(apex) - 1]
    return f"{absolute}."


def _record_to_template_data(record: DNSRecord, origin: str) -> dict[str, str | int | bool]:
    """Convert a record into template-friendly data."""
    value = record.content
    rtype = record.canonical_type()
    if rtype in {"CNAME", "NS", "MX"} and not value.endswith("."):
        value = f"{value}."
    elif rtype == "TXT" and not value.startswith('"'):
        value = f'"{value}"'
    if record.priority is not None and rtype in {"MX", "SRV"}:
        value = f"{record.priority} {value}"
    return {
        "owner": _owner_for_zone(record.name, origin),
        # automatic TTL has no BIND equivalent
        "ttl": DEFAULT_TTL if record.is_automatic_ttl() else record.ttl,
        "type": rtype,
        "value": value,
        "proxied": record.proxied,
    }


def render_bind_zone(
    records: Iterable[DNSRecord],
    origin: str,
    templates_dir: Path,
    template_name: str = "zone.j2",
) -> str:
    """Render records as BIND zone text."""
    env = Environment(
        loader=FileSystemLoader(str(templates_dir)),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    template = env.get_template(template_name)
    data = sorted(
        (_record_to_template_data(record, origin) for record in records),
        key=lambda item: (item["owner"] != "@", item["owner"], item["type"], item["value"]),
    )
    text = template.render(origin=f"{origin.rstrip('.')}.", default_ttl=DEFAULT_TTL, records=data)
    return text.strip() + "\n"
