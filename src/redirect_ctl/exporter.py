"""Serialise live page rules as redirect descriptions."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Sequence

import yaml

from .converter import page_rules_to_redirects
from .models import PageRule, Redirect, UnsupportedRule


def _redirect_to_dict(redirect: Redirect) -> dict[str, Any]:
    """Convert a redirect into a serialisable dictionary."""
    return {
        "from": redirect.source,
        "to": redirect.target,
        "type": redirect.type.value,
    }


def _unsupported_to_dict(entry: UnsupportedRule) -> dict[str, Any]:
    return {
        "target": entry.target_pattern,
        "actions": list(entry.action_ids),
        "reason": entry.reason,
    }


def description_to_dict(domain: str, page_rules: Sequence[PageRule]) -> dict[str, Any]:
    """Create a description dictionary for the rules of a domain."""
    ordered = sorted(page_rules, key=lambda rule: -rule.priority)
    entries = page_rules_to_redirects(ordered, f"*{domain}")
    data: dict[str, Any] = {
        "domain": domain,
        "redirects": [_redirect_to_dict(e) for e in entries if isinstance(e, Redirect)],
    }
    unsupported = [_unsupported_to_dict(e) for e in entries if isinstance(e, UnsupportedRule)]
    if unsupported:
        data["unsupported"] = unsupported
    return data


def description_to_yaml(domain: str, page_rules: Sequence[PageRule]) -> str:
    """Return YAML representation of the rules as a description."""
    return yaml.safe_dump(description_to_dict(domain, page_rules), sort_keys=False)


def description_to_json(domain: str, page_rules: Sequence[PageRule]) -> str:
    """Return JSON representation of the rules as a description."""
    return json.dumps(description_to_dict(domain, page_rules), indent=2)


def write_description(path: Path, content: str) -> None:
    """Write content to the given path, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
