"""Tests for deriving required DNS records from page rules."""
import pytest

from redirect_ctl.diffing import classify
from redirect_ctl.models import AmbiguousRequirementError, ConversionError, DNSRecord, RuleStatus
from redirect_ctl.requirements import build_required_records, derive_requirements


def test_no_rules_means_no_requirements():
    assert build_required_records([]) == ()
    report = derive_requirements([])
    assert report.records == ()
    assert report.failures == []


def test_rules_for_the_same_hostname_collapse_to_one_record(make_rule):
    rules = [
        make_rule("www.example.com/a"),
        make_rule("www.example.com/b"),
        make_rule("*example.com/*"),
    ]
    records = build_required_records(rules, zone="example.com")

    assert set(records) == {
        DNSRecord(type="CNAME", name="www.example.com", content="example.com", proxied=True),
        DNSRecord(type="A", name="example.com", content="192.0.2.1", proxied=True),
    }


def test_first_rule_wins_for_conflicting_attributes(make_rule):
    rules = [
        make_rule("shop.example.com/*"),
        make_rule("shop.example.com/old/*", status=RuleStatus.DISABLED),
    ]
    [record] = build_required_records(rules, zone="example.com")
    assert record.proxied is True

    [record] = build_required_records(list(reversed(rules)), zone="example.com")
    assert record.proxied is False


def test_higher_priority_rule_wins_regardless_of_input_order(make_rule):
    rules = [
        make_rule("shop.example.com/old/*", status=RuleStatus.DISABLED, priority=1),
        make_rule("shop.example.com/*", priority=5),
    ]
    [record] = build_required_records(rules, zone="example.com")
    assert record.proxied is True


def test_strict_mode_reports_ambiguity(make_rule):
    rules = [
        make_rule("shop.example.com/*"),
        make_rule("shop.example.com/old/*", status=RuleStatus.DISABLED),
    ]
    report = derive_requirements(rules, zone="example.com", strict=True)

    assert len(report.records) == 1
    assert len(report.failures) == 1
    assert isinstance(report.failures[0].error, AmbiguousRequirementError)
    with pytest.raises(AmbiguousRequirementError):
        build_required_records(rules, zone="example.com", strict=True)


def test_strict_mode_accepts_agreeing_rules(make_rule):
    rules = [make_rule("www.example.com/a"), make_rule("www.example.com/b")]
    assert len(build_required_records(rules, zone="example.com", strict=True)) == 1


def test_unconvertible_rules_are_reported(make_rule):
    rules = [make_rule("www.other.com/*"), make_rule("www.example.com/*")]
    report = derive_requirements(rules, zone="example.com")

    assert [record.name for record in report.records] == ["www.example.com"]
    assert len(report.failures) == 1
    assert isinstance(report.failures[0].error, ConversionError)
    with pytest.raises(ConversionError):
        build_required_records(rules, zone="example.com")


def test_trailing_host_glob_still_requires_the_record(make_rule):
    report = derive_requirements([make_rule("*example.com*"), make_rule("www.example.com*/*")], zone="example.com")

    assert report.failures == []
    assert {(record.type, record.name) for record in report.records} == {
        ("A", "example.com"),
        ("CNAME", "www.example.com"),
    }
    assert classify(report.records, []).fully_met is False


def test_disabled_rule_outranking_an_active_one_is_logged(make_rule, caplog):
    rules = [
        make_rule("shop.example.com/old/*", status=RuleStatus.DISABLED, priority=5),
        make_rule("shop.example.com/*", priority=1),
    ]
    with caplog.at_level("WARNING", logger="redirect_ctl"):
        [record] = build_required_records(rules, zone="example.com")

    assert record.proxied is False
    assert "shop.example.com" in caplog.text
