"""Pytest configuration and fixtures."""
import os

import pytest
from hypothesis import settings

from redirect_ctl.cache import ZoneCache
from redirect_ctl.cloudflare import ZonePayload
from redirect_ctl.config import BUNDLED_TEMPLATES_DIR, AppConfig
from redirect_ctl.controller import ReconcileController
from redirect_ctl.models import (
    DNSRecord,
    Operation,
    OperationAction,
    OperationResult,
    PageRule,
    PageRuleAction,
    ProviderError,
    RuleStatus,
)

# Hypothesis profiles
settings.register_profile("ci", max_examples=100)
settings.register_profile("dev", max_examples=10)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


def forwarding_rule(pattern, url="https://example.org/", status_code=301, priority=1, status=RuleStatus.ACTIVE):
    """Build a forwarding page rule for tests."""
    return PageRule(
        target_pattern=pattern,
        actions=(PageRuleAction("forwarding_url", {"url": url, "status_code": status_code}),),
        priority=priority,
        status=status,
    )


class FakeClient:
    """In-memory stand-in for CloudflareClient."""

    def __init__(self, page_rules=(), records=(), zones=(), fail_deletes=(), reject_rules_after=None):
        self.page_rules = list(page_rules)
        self.records = list(records)
        self.zones = list(zones)
        self.fail_deletes = set(fail_deletes)
        self.reject_rules_after = reject_rules_after
        self.calls = []
        self.created_rules = []

    def find_zone_id(self, name):
        self.calls.append(("find_zone_id", name))
        for zone in self.zones:
            if zone.name == name:
                return zone.id
        return None

    def list_zones(self):
        return list(self.zones)

    def fetch_page_rules(self, zone_id):
        self.calls.append(("fetch_page_rules", zone_id))
        return list(self.page_rules)

    def fetch_dns_records(self, zone_id):
        self.calls.append(("fetch_dns_records", zone_id))
        return list(self.records)

    def delete_records(self, zone_id, records):
        results = []
        for record in records:
            self.calls.append(("delete", record.name))
            ok = record.id not in self.fail_deletes
            if ok:
                self.records = [r for r in self.records if r.id != record.id]
            results.append(OperationResult(Operation(OperationAction.DELETE, record), ok=ok, error=None if ok else "nope"))
        return results

    def create_records(self, zone_id, records):
        results = []
        for record in records:
            self.calls.append(("create", record.name))
            self.records.append(
                DNSRecord(record.type, record.name, record.content, record.ttl, record.proxied, id=f"new-{len(self.records)}")
            )
            results.append(OperationResult(Operation(OperationAction.CREATE, record), ok=True))
        return results

    def create_page_rule(self, zone_id, rule):
        if self.reject_rules_after is not None and len(self.created_rules) >= self.reject_rules_after:
            raise ProviderError("quota exceeded")
        self.created_rules.append(rule)
        return rule


@pytest.fixture
def make_rule():
    return forwarding_rule


@pytest.fixture
def www_required():
    return DNSRecord(type="CNAME", name="www.example.com", content="example.com", proxied=True)


@pytest.fixture
def example_zone():
    return ZonePayload(id="zone1", name="example.com", status="active")


@pytest.fixture
def app_config(tmp_path):
    return AppConfig(
        api_token="token",
        api_url="https://api.example.test",
        redirects_dir=tmp_path,
        cache_path=tmp_path / ".cache-db.json",
        templates_dir=BUNDLED_TEMPLATES_DIR,
        apex_address="192.0.2.1",
        strict_requirements=False,
        request_timeout=5,
        log_level="DEBUG",
    )


@pytest.fixture
def build(app_config):
    """Return a factory for a controller wired to a FakeClient."""

    def _build(**kwargs):
        client = FakeClient(**kwargs)
        cache = ZoneCache(app_config.cache_path)
        return ReconcileController(app_config, client, cache), client, cache

    return _build


@pytest.fixture
def mock_env_vars(monkeypatch, tmp_path):
    """Set up environment variables for load_config."""
    monkeypatch.setenv("CLOUDFLARE_API_TOKEN", "test-token")
    monkeypatch.setenv("REDIRECTS_DIR", str(tmp_path))
    monkeypatch.setenv("CACHE_PATH", str(tmp_path / ".cache-db.json"))
    for name in ("CLOUDFLARE_API_URL", "TEMPLATES_DIR", "APEX_ADDRESS", "STRICT_REQUIREMENTS",
                 "REQUEST_TIMEOUT", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path
