"""Load and validate redirect description files."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from jinja2 import Environment, FileSystemLoader, StrictUndefined
from jinja2.exceptions import TemplateError
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import Redirect, RedirectDescription, RedirectType, ValidationError

DESCRIPTION_SUFFIXES = (".json", ".yaml", ".yml")


class RedirectSpec(BaseModel):
    """Schema for a single redirect."""

    model_config = ConfigDict(populate_by_name=True)

    source: str = Field(alias="from", min_length=1)
    target: str = Field(alias="to", min_length=1)
    type: str = RedirectType.FORWARDING.value

    @field_validator("type", mode="before")
    @classmethod
    def _lowercase_type(cls, value: Any) -> Any:
        """Accept redirect types in any case."""
        return value.lower() if isinstance(value, str) else value


class DescriptionSpec(BaseModel):
    """Schema for the description document."""

    domain: str | None = None
    redirects: list[RedirectSpec] = Field(default_factory=list)


def _redirect_type(value: str) -> RedirectType | str:
    """Return the known redirect type, or the raw value for the converter to reject."""
    try:
        return RedirectType(value)
    except ValueError:
        return value


def find_description(domain: str, directory: Path) -> Path | None:
    """Return the description file for domain, preferring JSON."""
    for suffix in DESCRIPTION_SUFFIXES:
        candidate = directory / f"{domain}{suffix}"
        if candidate.is_file():
            return candidate
    return None


def list_descriptions(directory: Path) -> dict[str, Path]:
    """Map domain names to description files found in directory."""
    found: dict[str, Path] = {}
    for path in sorted(directory.iterdir()):
        if path.name.startswith(".") or not path.is_file():
            continue
        if path.suffix.lower() in DESCRIPTION_SUFFIXES:
            found.setdefault(path.stem, path)
    return found


def _render_template(path: Path, extra_context: dict[str, Any] | None = None) -> str:
    """Render a description file through Jinja2."""
    env = Environment(
        loader=FileSystemLoader(str(path.parent)),
        undefined=StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
    )
    template = env.get_template(path.name)
    context = {"env": os.environ}
    if extra_context:
        context.update(extra_context)
    return template.render(**context)


def load_description(
    path: Path,
    domain_hint: str | None = None,
    template_vars: dict[str, Any] | None = None,
) -> RedirectDescription:
    """Load a description file and turn it into a RedirectDescription."""
    try:
        rendered = _render_template(path, template_vars)
    except TemplateError as exc:
        raise ValidationError(f"Failed to render {path.name}: {exc}") from exc
    try:
        data = yaml.safe_load(rendered) or {}
    except yaml.YAMLError as exc:  # noqa: BLE001
        raise ValidationError(f"Failed to parse {path.name}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValidationError(f"{path.name} must contain a mapping at the top level.")

    try:
        spec = DescriptionSpec(**data)
    except Exception as exc:  # noqa: BLE001
        raise ValidationError(f"Description validation error in {path.name}: {exc}") from exc

    domain = (spec.domain or domain_hint or path.stem).strip().rstrip(".").lower()
    if not domain:
        raise ValidationError(f"{path.name} does not name a domain.")

    description = RedirectDescription(
        domain=domain,
        redirects=tuple(
            Redirect(source=item.source.strip(), target=item.target.strip(), type=_redirect_type(item.type))
            for item in spec.redirects
        ),
    )
    return description
