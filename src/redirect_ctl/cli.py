"""Command-line entry point for redirect-ctl."""

from __future__ import annotations

import argparse
import sys

from .cache import ZoneCache
from .cloudflare import CloudflareClient
from .config import load_config
from .controller import Inspection, ReconcileController, configure_logging
from .converter import page_rules_to_redirects
from .exporter import description_to_json, description_to_yaml
from .models import DNSRecord, ExecutionReport, PageRule, Plan, Redirect, RedirectCtlError
from .planner import Strategy
from .renderer import render_bind_zone


def _build_parser() -> argparse.ArgumentParser:
    """Create the CLI parser."""
    parser = argparse.ArgumentParser(description="Keep Cloudflare DNS records in line with page rules.")
    parser.add_argument("--log-level", help="Override log level (default from config).")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("zones", aliases=["domains"], help="List zones in the Cloudflare account.")

    dns_parser = subparsers.add_parser("dns", help="Manage the DNS records for a domain.")
    dns_parser.add_argument("domain", help="A zone name, e.g. example.com.")
    dns_parser.add_argument(
        "--strategy",
        choices=[strategy.value for strategy in Strategy],
        help="How to add missing records (prompted when omitted).",
    )
    dns_parser.add_argument("--yes", action="store_true", help="Skip confirmation prompts.")
    dns_parser.add_argument("--export", action="store_true", help="Print the current records as a BIND zone.")

    rules_parser = subparsers.add_parser("rules", help="Show or publish page rules for a domain.")
    rules_parser.add_argument("domain", help="A zone name, e.g. example.com.")
    rules_parser.add_argument(
        "--export",
        choices=["yaml", "json"],
        help="Print the live page rules as a redirect description.",
    )
    rules_parser.add_argument(
        "--publish",
        action="store_true",
        help="Create page rules from the local redirect description.",
    )
    rules_parser.add_argument("--yes", action="store_true", help="Skip confirmation prompts.")

    return parser


def _confirm(message: str, default: bool = False) -> bool:
    """Prompt the operator for a yes/no answer."""
    suffix = "[Y/n]" if default else "[y/N]"
    response = input(f"{message} {suffix}: ").strip().lower()  # noqa: S322
    if not response:
        return default
    return response in {"y", "yes"}


def _choose_strategy() -> Strategy:
    """Prompt the operator for a remediation strategy."""
    print("How do you want to add these DNS records?")
    print("  1) Replace only the required ones.")
    print("  2) Replace them all.")
    print("  3) Do nothing at this time.")
    choices = {"1": Strategy.REQUIRED, "2": Strategy.ALL, "3": Strategy.SKIP}
    response = input("Choice [3]: ").strip()  # noqa: S322
    return choices.get(response, Strategy.SKIP)


def _format_record(record: DNSRecord) -> str:
    ttl = "auto" if record.is_automatic_ttl() else str(record.ttl)
    proxy = "proxied" if record.proxied else "dns only"
    return f"{record.type:<6} {record.name} -> {record.content} (ttl {ttl}, {proxy})"


def _print_rules(page_rules: list[PageRule], domain: str) -> None:
    if not page_rules:
        print("  (no page rules)")
        return
    for entry in page_rules_to_redirects(page_rules, f"*{domain}"):
        if isinstance(entry, Redirect):
            print(f"  {entry.source} => {entry.target} ({entry.type.value}, {entry.type.status_code})")
        else:
            print(f"  {entry.target_pattern}: {entry.reason}")


def _print_inspection(inspection: Inspection) -> None:
    classification = inspection.classification
    print("Current Page Rules:")
    _print_rules(inspection.page_rules, inspection.domain)
    print("Current DNS records:")
    for record in classification.satisfying:
        print(f" ok {_format_record(record)}")
    for record in classification.conflicting:
        print(f"  ! {_format_record(record)}")
    for record in classification.unrelated:
        print(f"    {_format_record(record)}")
    if not inspection.live_records:
        print("  (no DNS records)")


def _print_plan(plan: Plan) -> None:
    for record in plan.deletions:
        print(f" - {_format_record(record)}")
    for record in plan.creations:
        print(f" + {_format_record(record)}")


def _print_report(report: ExecutionReport) -> None:
    print(f"Completed: {len(report.completed)}")
    for operation in report.completed:
        print(f"  {operation.action.value} {_format_record(operation.record)}")
    if report.failed:
        print(f"Failed: {len(report.failed)}")
        for result in report.failed:
            print(f"  {result.operation.action.value} {_format_record(result.operation.record)}: {result.error}")
        print("Run the command again to plan the remaining changes.")


def _run_zones(controller: ReconcileController) -> None:
    """Execute the zones command."""
    listing = controller.list_zones()
    print(f"{len(listing.zones)} Zones:")
    for zone in listing.zones:
        print(f"\n  {zone.name} - {zone.zone_id} in {zone.account_name or 'unknown account'}")
        quota = zone.page_rule_quota if zone.page_rule_quota is not None else "?"
        print(f"  {zone.status} {zone.plan_name or ''} - {quota} Page Rules available.")
        if zone.description:
            print(f"  Redirect description exists: {zone.description}")
        if zone.status == "pending" and zone.name_servers:
            print(f"  Update the nameservers to: {', '.join(zone.name_servers)}")
    if listing.undeployed:
        print(f"\nThe following {len(listing.undeployed)} domains are not yet in Cloudflare:")
        for name, path in listing.undeployed.items():
            print(f" - {name} (see {path})")


def _run_dns(controller: ReconcileController, args: argparse.Namespace) -> int:
    """Execute the dns command."""
    inspection = controller.inspect(args.domain.lower())
    if args.export:
        print(render_bind_zone(inspection.live_records, inspection.domain, controller.config.templates_dir), end="")
        return 0
    _print_inspection(inspection)
    classification = inspection.classification
    if classification.fully_met:
        print("Congrats! Page Rules should all work as expected.")
        return 0

    print("The current DNS records will not work with the current Page Rules.")
    print("At least these DNS records MUST be added:")
    for record in classification.required:
        print(f" + {_format_record(record)}")

    if args.strategy:
        strategy = Strategy(args.strategy)
    elif not inspection.live_records:
        ready = _confirm("Are you ready to create the missing DNS records on Cloudflare?")
        strategy = Strategy.REQUIRED if ready else Strategy.SKIP
    else:
        strategy = _choose_strategy()

    plan = controller.plan(inspection, strategy)
    if plan is None or plan.is_empty():
        return 0
    print("Planned changes:")
    _print_plan(plan)
    if strategy == Strategy.ALL and not args.yes:
        if not _confirm(f"This deletes {len(plan.deletions)} records from {inspection.domain}. Continue?"):
            print("Aborted.")
            return 0
    report = controller.execute(inspection.zone_id, plan)
    _print_report(report)
    return 0 if report.succeeded else 1


def _run_rules(controller: ReconcileController, args: argparse.Namespace) -> int:
    """Execute the rules command."""
    domain = args.domain.lower()
    if args.publish:
        report = controller.draft_page_rules(domain)
        for failure in report.failures:
            print(f"Skipping {failure.item}: {failure.error}", file=sys.stderr)
        if not report.page_rules:
            print("No page rules to publish.")
            return 1 if report.failures else 0
        print("Page rules to create:")
        _print_rules(report.page_rules, domain)
        if not args.yes and not _confirm("Shall we continue?", default=True):
            print("Aborted.")
            return 0
        zone_id = controller.resolve_zone_id(domain)
        created = controller.publish_page_rules(zone_id, report.page_rules)
        print(f"{len(created)} page rules created.")
        return 1 if report.failures else 0

    zone_id = controller.resolve_zone_id(domain)
    page_rules = controller.client.fetch_page_rules(zone_id)
    if args.export == "json":
        print(description_to_json(domain, page_rules))
    elif args.export == "yaml":
        print(description_to_yaml(domain, page_rules), end="")
    else:
        print("Current Page Rules:")
        _print_rules(page_rules, domain)
    return 0


def main() -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args()
    try:
        config = load_config()
        configure_logging(args.log_level or config.log_level)
        client = CloudflareClient(config.api_url, config.api_token, timeout=config.request_timeout)
        controller = ReconcileController(config, client, ZoneCache(config.cache_path))
        if args.command in {"zones", "domains"}:
            _run_zones(controller)
            status = 0
        elif args.command == "dns":
            status = _run_dns(controller, args)
        elif args.command == "rules":
            status = _run_rules(controller, args)
        else:  # pragma: no cover - argparse ensures we never reach here
            parser.error(f"Unsupported command {args.command}")
    except RedirectCtlError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)
    except Exception as exc:  # noqa: BLE001
        print(f"Unexpected error: {exc}", file=sys.stderr)
        sys.exit(3)
    sys.exit(status)


if __name__ == "__main__":
    main()
