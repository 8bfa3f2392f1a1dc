"""High-level orchestration for redirect-ctl."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .cache import ZoneCache
from .cloudflare import CloudflareClient
from .config import AppConfig
from .converter import ConversionReport, convert_redirects
from .diffing import classify
from .models import (
    ClassificationResult,
    DNSRecord,
    ExecutionReport,
    Operation,
    OperationAction,
    OperationResult,
    PageRule,
    Plan,
    ProviderError,
    RedirectCtlError,
)
from .planner import Strategy, plan_for
from .requirements import RequirementReport, derive_requirements
from .yaml_loader import find_description, list_descriptions, load_description

LOG = logging.getLogger("redirect_ctl")


class Stage(str, Enum):
    """Steps of a reconcile run, in order."""

    FETCH = "fetch"
    CLASSIFY = "classify"
    CHOOSE = "choose"
    PLAN = "plan"
    EXECUTE = "execute"
    DONE = "done"


@dataclass
class Inspection:
    """Everything known about a zone before choosing a strategy."""

    domain: str
    zone_id: str
    page_rules: list[PageRule]
    live_records: list[DNSRecord]
    requirements: RequirementReport
    classification: ClassificationResult

    @property
    def required(self) -> tuple[DNSRecord, ...]:
        return self.requirements.records


@dataclass
class ZoneSummary:
    """A provider zone and its local description, if any."""

    name: str
    zone_id: str
    status: str
    plan_name: str | None = None
    account_name: str | None = None
    page_rule_quota: int | None = None
    name_servers: list[str] = field(default_factory=list)
    description: Path | None = None


@dataclass
class ZoneListing:
    zones: list[ZoneSummary]
    undeployed: dict[str, Path]


class ReconcileController:
    """Coordinates fetch, classify, plan and execute steps."""

    def __init__(self, config: AppConfig, client: CloudflareClient, cache: ZoneCache):
        """Store collaborators for subsequent runs."""
        self.config = config
        self.client = client
        self.cache = cache
        self.stage = Stage.DONE

    def _enter(self, stage: Stage, domain: str) -> None:
        LOG.debug("%s: %s -> %s", domain, self.stage.value, stage.value)
        self.stage = stage

    def resolve_zone_id(self, domain: str) -> str:
        """Return the zone id for domain, consulting the cache first."""
        zone_id = self.cache.get(domain)
        if zone_id:
            return zone_id
        zone_id = self.client.find_zone_id(domain)
        if not zone_id:
            raise RedirectCtlError(f"No zone named {domain} in this account.")
        self.cache.put(domain, zone_id)
        return zone_id

    def inspect(self, domain: str) -> Inspection:
        """Fetch rules and records and classify the records."""
        self._enter(Stage.FETCH, domain)
        zone_id = self.resolve_zone_id(domain)
        # records are fetched after the rules so they are never older
        page_rules = self.client.fetch_page_rules(zone_id)
        live_records = self.client.fetch_dns_records(zone_id)
        LOG.info("%s has %s page rules and %s DNS records", domain, len(page_rules), len(live_records))

        self._enter(Stage.CLASSIFY, domain)
        requirements = derive_requirements(
            page_rules,
            zone=domain,
            apex_address=self.config.apex_address,
            strict=self.config.strict_requirements,
        )
        for failure in requirements.failures:
            LOG.warning("Ignoring page rule requirement: %s", failure.error)
        classification = classify(requirements.records, live_records)
        self._enter(Stage.CHOOSE, domain)
        return Inspection(
            domain=domain,
            zone_id=zone_id,
            page_rules=page_rules,
            live_records=live_records,
            requirements=requirements,
            classification=classification,
        )

    def plan(self, inspection: Inspection, strategy: Strategy) -> Plan | None:
        """Build the plan for the chosen strategy."""
        self._enter(Stage.PLAN, inspection.domain)
        plan = plan_for(strategy, inspection.classification, inspection.live_records)
        if plan is None:
            LOG.info("Skipping changes for %s", inspection.domain)
            self._enter(Stage.DONE, inspection.domain)
        else:
            LOG.info(
                "Plan for %s (%s): %s deletions, %s creations",
                inspection.domain,
                strategy.value,
                len(plan.deletions),
                len(plan.creations),
            )
        return plan

    def execute(self, zone_id: str, plan: Plan) -> ExecutionReport:
        """Apply deletions, then creations, and report each outcome."""
        self._enter(Stage.EXECUTE, zone_id)
        report = ExecutionReport()
        if plan.is_empty():
            LOG.info("Nothing to apply.")
            self._enter(Stage.DONE, zone_id)
            return report
        for result in self.client.delete_records(zone_id, plan.deletions):
            report.record(result)
        failed_slots = {
            result.operation.record.slot()
            for result in report.failed
            if result.operation.action == OperationAction.DELETE
        }
        creatable: list[DNSRecord] = []
        for record in plan.creations:
            if record.slot() in failed_slots:
                LOG.warning("Not creating %s %s: deletion in the same slot failed", record.type, record.name)
                report.record(
                    OperationResult(
                        Operation(OperationAction.CREATE, record),
                        ok=False,
                        error="deletion in the same slot failed",
                    )
                )
                continue
            creatable.append(record)
        for result in self.client.create_records(zone_id, creatable):
            report.record(result)
        LOG.info("Applied %s operations, %s failed", len(report.completed), len(report.failed))
        self._enter(Stage.DONE, zone_id)
        return report

    def list_zones(self) -> ZoneListing:
        """List provider zones, cache their ids and match local descriptions."""
        descriptions = list_descriptions(self.config.redirects_dir)
        zones = self.client.list_zones()
        self.cache.update({zone.name: zone.id for zone in zones})
        summaries = [
            ZoneSummary(
                name=zone.name,
                zone_id=zone.id,
                status=zone.status,
                plan_name=zone.plan.get("name"),
                account_name=zone.account.get("name"),
                page_rule_quota=zone.meta.get("page_rule_quota"),
                name_servers=list(zone.name_servers),
                description=descriptions.get(zone.name),
            )
            for zone in zones
        ]
        known = {zone.name for zone in zones}
        undeployed = {name: path for name, path in descriptions.items() if name not in known}
        return ZoneListing(zones=summaries, undeployed=undeployed)

    def draft_page_rules(self, domain: str) -> ConversionReport:
        """Convert the local description of domain into page rules."""
        path = find_description(domain, self.config.redirects_dir)
        if path is None:
            raise RedirectCtlError(f"No redirect description for {domain} in {self.config.redirects_dir}.")
        description = load_description(path, domain_hint=domain)
        report = convert_redirects(description, f"*{description.domain}")
        for failure in report.failures:
            LOG.warning("Cannot convert redirect %s: %s", failure.item, failure.error)
        return report

    def publish_page_rules(self, zone_id: str, rules: list[PageRule]) -> list[PageRule]:
        """Submit page rules, stopping at the first rejection."""
        created: list[PageRule] = []
        for rule in rules:
            try:
                created.append(self.client.create_page_rule(zone_id, rule))
            except ProviderError:
                LOG.error("Stopped after %s of %s page rules", len(created), len(rules))
                raise
        return created


def configure_logging(level: str) -> None:
    """Configure logging output."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
