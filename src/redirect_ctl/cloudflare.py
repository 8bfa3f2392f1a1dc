"""Cloudflare API transport built on requests."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional

import requests
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError

from .models import (
    AUTOMATIC_TTL,
    DNSRecord,
    Operation,
    OperationAction,
    OperationResult,
    PageRule,
    PageRuleAction,
    ProviderError,
    RuleStatus,
)

LOG = logging.getLogger("redirect_ctl")

PAGE_SIZE = 100


class APIEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    success: bool = False
    result: Any = None
    errors: List[dict[str, Any]] = Field(default_factory=list)
    messages: List[dict[str, Any]] = Field(default_factory=list)
    result_info: Optional[dict[str, Any]] = None


class ZonePayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    status: str = "active"
    name_servers: List[str] = Field(default_factory=list)
    account: dict[str, Any] = Field(default_factory=dict)
    plan: dict[str, Any] = Field(default_factory=dict)
    meta: dict[str, Any] = Field(default_factory=dict)


class DNSRecordPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    type: str
    name: str
    content: str
    ttl: int = AUTOMATIC_TTL
    proxied: Optional[bool] = None
    zone_name: Optional[str] = None
    priority: Optional[int] = None

    def to_record(self) -> DNSRecord:
        return DNSRecord(
            type=self.type,
            name=self.name,
            content=self.content,
            ttl=self.ttl,
            proxied=bool(self.proxied),
            id=self.id,
            zone_name=self.zone_name,
            priority=self.priority,
        )


class ConstraintPayload(BaseModel):
    operator: str = "matches"
    value: str


class TargetPayload(BaseModel):
    target: str = "url"
    constraint: ConstraintPayload


class ActionPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    value: Any = None


class PageRulePayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    targets: List[TargetPayload]
    actions: List[ActionPayload]
    priority: int = 1
    status: RuleStatus = RuleStatus.ACTIVE

    def to_rule(self) -> PageRule:
        url_targets = [t for t in self.targets if t.target == "url"] or self.targets
        return PageRule(
            target_pattern=url_targets[0].constraint.value,
            actions=tuple(PageRuleAction(id=a.id, value=a.value) for a in self.actions),
            priority=self.priority,
            status=self.status,
            id=self.id,
        )


def record_to_body(record: DNSRecord) -> dict[str, Any]:
    """Return the request body for creating a DNS record."""
    body: dict[str, Any] = {
        "type": record.canonical_type(),
        "name": record.name,
        "content": record.content,
        "ttl": record.ttl,
        "proxied": record.proxied,
    }
    if record.priority is not None:
        body["priority"] = record.priority
    return body


def page_rule_to_body(rule: PageRule) -> dict[str, Any]:
    """Return the request body for creating a page rule."""
    body: dict[str, Any] = {
        "targets": [{"target": "url", "constraint": {"operator": "matches", "value": rule.target_pattern}}],
        "actions": [],
        "priority": rule.priority,
        "status": rule.status.value,
    }
    for action in rule.actions:
        entry: dict[str, Any] = {"id": action.id}
        if action.value is not None:
            entry["value"] = action.value
        body["actions"].append(entry)
    return body


class CloudflareClient:
    """Thin wrapper around the zone, DNS record and page rule endpoints."""

    def __init__(
        self,
        base_url: str,
        api_token: str,
        *,
        timeout: float = 20,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_token:
            raise ProviderError("A Cloudflare API token is required.")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {api_token}",
                "Content-Type": "application/json",
            }
        )

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[dict[str, Any]] = None,
    ) -> APIEnvelope:
        url = f"{self.base_url}{endpoint}"
        LOG.debug("Cloudflare %s %s", method, url)
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json_body,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ProviderError(f"{method} {endpoint} failed: {exc}") from exc

        try:
            raw = response.json()
        except ValueError as exc:
            raise ProviderError(
                f"{method} {endpoint} returned non-JSON response (HTTP {response.status_code})."
            ) from exc

        try:
            envelope = APIEnvelope.model_validate(raw)
        except SchemaError as exc:
            raise ProviderError(f"{method} {endpoint} returned an unexpected payload: {exc}") from exc

        if not envelope.success or response.status_code >= 400:
            messages = "; ".join(str(err.get("message", err)) for err in envelope.errors) or "unknown error"
            if response.status_code == 403:
                messages = f"{messages} (check the API token permissions)"
            raise ProviderError(f"{method} {endpoint} failed with HTTP {response.status_code}: {messages}")
        return envelope

    def _paginate(self, endpoint: str) -> list[Any]:
        results: list[Any] = []
        page = 1
        while True:
            envelope = self._request("GET", endpoint, params={"page": page, "per_page": PAGE_SIZE})
            batch = envelope.result or []
            results.extend(batch)
            info = envelope.result_info or {}
            total_pages = int(info.get("total_pages") or 1)
            if page >= total_pages or not batch:
                return results
            page += 1

    def list_zones(self) -> list[ZonePayload]:
        """Return every zone visible to the token."""
        zones: list[ZonePayload] = []
        for raw in self._paginate("/zones"):
            try:
                zones.append(ZonePayload.model_validate(raw))
            except SchemaError:
                LOG.debug("Skipping invalid zone payload: %s", raw)
        return zones

    def find_zone_id(self, name: str) -> Optional[str]:
        """Return the id of the zone called name, if any."""
        envelope = self._request("GET", "/zones", params={"name": name})
        for raw in envelope.result or []:
            zone = ZonePayload.model_validate(raw)
            if zone.name.lower() == name.lower():
                return zone.id
        return None

    def fetch_dns_records(self, zone_id: str) -> list[DNSRecord]:
        """Return the live DNS records of a zone."""
        records: list[DNSRecord] = []
        for raw in self._paginate(f"/zones/{zone_id}/dns_records"):
            try:
                records.append(DNSRecordPayload.model_validate(raw).to_record())
            except SchemaError:
                LOG.debug("Skipping invalid DNS record payload: %s", raw)
        return records

    def fetch_page_rules(self, zone_id: str) -> list[PageRule]:
        """Return the page rules of a zone."""
        envelope = self._request("GET", f"/zones/{zone_id}/pagerules")
        rules: list[PageRule] = []
        for raw in envelope.result or []:
            try:
                rules.append(PageRulePayload.model_validate(raw).to_rule())
            except SchemaError:
                LOG.debug("Skipping invalid page rule payload: %s", raw)
        return rules

    def create_records(self, zone_id: str, records: Iterable[DNSRecord]) -> list[OperationResult]:
        """Create records one by one, reporting each outcome."""
        results: list[OperationResult] = []
        for record in records:
            operation = Operation(OperationAction.CREATE, record)
            try:
                self._request("POST", f"/zones/{zone_id}/dns_records", json_body=record_to_body(record))
            except ProviderError as exc:
                LOG.error("Could not create %s %s: %s", record.type, record.name, exc)
                results.append(OperationResult(operation, ok=False, error=str(exc)))
                continue
            LOG.info("Created %s %s -> %s", record.type, record.name, record.content)
            results.append(OperationResult(operation, ok=True))
        return results

    def delete_records(self, zone_id: str, records: Iterable[DNSRecord]) -> list[OperationResult]:
        """Delete records one by one, reporting each outcome."""
        results: list[OperationResult] = []
        for record in records:
            operation = Operation(OperationAction.DELETE, record)
            if not record.id:
                results.append(OperationResult(operation, ok=False, error="record has no provider id"))
                continue
            try:
                self._request("DELETE", f"/zones/{zone_id}/dns_records/{record.id}")
            except ProviderError as exc:
                LOG.error("Could not delete %s %s: %s", record.type, record.name, exc)
                results.append(OperationResult(operation, ok=False, error=str(exc)))
                continue
            LOG.info("Deleted %s %s -> %s", record.type, record.name, record.content)
            results.append(OperationResult(operation, ok=True))
        return results

    def create_page_rule(self, zone_id: str, rule: PageRule) -> PageRule:
        """Create a page rule and return it as stored by the provider."""
        envelope = self._request("POST", f"/zones/{zone_id}/pagerules", json_body=page_rule_to_body(rule))
        LOG.info("Created page rule for %s", rule.target_pattern)
        try:
            return PageRulePayload.model_validate(envelope.result).to_rule()
        except SchemaError:
            LOG.debug("Returning submitted rule; unexpected payload: %s", envelope.result)
            return rule
