"""Tests for the Cloudflare transport."""
from unittest.mock import MagicMock

import pytest
import requests

from redirect_ctl.cloudflare import CloudflareClient, page_rule_to_body, record_to_body
from redirect_ctl.models import (
    DNSRecord,
    OperationAction,
    PageRule,
    PageRuleAction,
    ProviderError,
    RuleStatus,
)

BASE_URL = "https://api.example.test/client/v4"


def _response(payload, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


def _ok(result, result_info=None):
    payload = {"success": True, "result": result, "errors": [], "messages": []}
    if result_info is not None:
        payload["result_info"] = result_info
    return _response(payload)


@pytest.fixture
def session():
    mock = MagicMock(spec=requests.Session)
    mock.headers = {}
    return mock


@pytest.fixture
def client(session):
    return CloudflareClient(BASE_URL, "secret", timeout=5, session=session)


def test_token_is_sent_as_bearer(client, session):
    assert session.headers["Authorization"] == "Bearer secret"


def test_missing_token_is_rejected(session):
    with pytest.raises(ProviderError):
        CloudflareClient(BASE_URL, "", session=session)


def test_fetch_dns_records_follows_pages(client, session):
    session.request.side_effect = [
        _ok(
            [{"id": "1", "type": "A", "name": "example.com", "content": "192.0.2.1", "ttl": 1, "proxied": True}],
            {"page": 1, "total_pages": 2},
        ),
        _ok(
            [
                {"id": "2", "type": "MX", "name": "example.com", "content": "mail.example.com", "ttl": 300, "priority": 10},
                {"id": "3", "type": "TXT"},
            ],
            {"page": 2, "total_pages": 2},
        ),
    ]

    records = client.fetch_dns_records("zone1")

    assert [(r.id, r.type, r.proxied) for r in records] == [("1", "A", True), ("2", "MX", False)]
    assert [r.priority for r in records] == [None, 10]
    first_call, second_call = session.request.call_args_list
    assert first_call.args == ("GET", f"{BASE_URL}/zones/zone1/dns_records")
    assert second_call.kwargs["params"] == {"page": 2, "per_page": 100}
    assert first_call.kwargs["timeout"] == 5


def test_fetch_page_rules(client, session):
    session.request.return_value = _ok(
        [
            {
                "id": "rule1",
                "targets": [{"target": "url", "constraint": {"operator": "matches", "value": "*example.com/*"}}],
                "actions": [{"id": "forwarding_url", "value": {"url": "https://example.org/$1", "status_code": 301}}],
                "priority": 2,
                "status": "disabled",
            }
        ]
    )

    [rule] = client.fetch_page_rules("zone1")

    assert rule.id == "rule1"
    assert rule.target_pattern == "*example.com/*"
    assert rule.priority == 2
    assert rule.status == RuleStatus.DISABLED
    assert rule.actions[0].value["url"] == "https://example.org/$1"


def test_unsuccessful_envelope_raises(client, session):
    session.request.return_value = _response(
        {"success": False, "errors": [{"code": 9109, "message": "Invalid access token"}]},
        status_code=403,
    )

    with pytest.raises(ProviderError, match="Invalid access token"):
        client.fetch_page_rules("zone1")


def test_non_json_response_raises(client, session):
    response = _response(None, status_code=502)
    response.json.side_effect = ValueError("no json")
    session.request.return_value = response

    with pytest.raises(ProviderError, match="502"):
        client.list_zones()


def test_connection_errors_raise_provider_error(client, session):
    session.request.side_effect = requests.ConnectionError("boom")
    with pytest.raises(ProviderError):
        client.find_zone_id("example.com")


def test_find_zone_id(client, session):
    session.request.return_value = _ok([{"id": "z1", "name": "example.com"}])

    assert client.find_zone_id("Example.com") == "z1"
    assert session.request.call_args.kwargs["params"] == {"name": "Example.com"}


def test_create_and_delete_report_each_record(client, session):
    good = DNSRecord(type="CNAME", name="www.example.com", content="example.com", proxied=True)
    bad = DNSRecord(type="A", name="example.com", content="192.0.2.1", proxied=True)
    session.request.side_effect = [
        _ok({"id": "new"}),
        _response({"success": False, "errors": [{"message": "record already exists"}]}, status_code=400),
    ]

    results = client.create_records("zone1", [good, bad])

    assert [result.ok for result in results] == [True, False]
    assert "record already exists" in results[1].error
    assert session.request.call_args_list[0].kwargs["json"] == record_to_body(good)

    session.request.side_effect = None
    session.request.return_value = _ok({"id": "old"})
    deletions = client.delete_records(
        "zone1",
        [DNSRecord(type="A", name="x.example.com", content="1.2.3.4", id="old"), good],
    )
    assert [(r.operation.action, r.ok) for r in deletions] == [
        (OperationAction.DELETE, True),
        (OperationAction.DELETE, False),
    ]
    assert session.request.call_args.args == ("DELETE", f"{BASE_URL}/zones/zone1/dns_records/old")


def test_create_page_rule_body(client, session):
    rule = PageRule(
        target_pattern="*example.com/*",
        actions=(
            PageRuleAction("forwarding_url", {"url": "https://example.org/", "status_code": 302}),
            PageRuleAction("always_use_https"),
        ),
        priority=3,
    )
    session.request.return_value = _ok(
        {
            "id": "created",
            "targets": page_rule_to_body(rule)["targets"],
            "actions": page_rule_to_body(rule)["actions"],
            "priority": 3,
            "status": "active",
        }
    )

    created = client.create_page_rule("zone1", rule)

    body = session.request.call_args.kwargs["json"]
    assert body["targets"][0]["constraint"] == {"operator": "matches", "value": "*example.com/*"}
    assert body["actions"] == [
        {"id": "forwarding_url", "value": {"url": "https://example.org/", "status_code": 302}},
        {"id": "always_use_https"},
    ]
    assert body["status"] == "active"
    assert created.id == "created"
    assert created == rule


def test_record_body_carries_priority_only_when_set():
    mx = DNSRecord(type="MX", name="example.com", content="mail.example.com", priority=10)
    cname = DNSRecord(type="CNAME", name="www.example.com", content="example.com", proxied=True)

    assert record_to_body(mx)["priority"] == 10
    assert "priority" not in record_to_body(cname)
