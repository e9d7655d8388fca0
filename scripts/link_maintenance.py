#!/usr/bin/env python3
"""Marketplace link maintenance script.

Runs the periodic hierarchy maintenance passes against the configured
database.

Usage:
    python scripts/link_maintenance.py init-db
    python scripts/link_maintenance.py rebuild --account <account-id>
    python scripts/link_maintenance.py validate [--account <account-id>]
    python scripts/link_maintenance.py repair [--issue orphaned_variant:<link-id> ...]
    python scripts/link_maintenance.py stats [--account <account-id>]
    python scripts/link_maintenance.py auto-link [--exact-sku]
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from marketlinks.application import HierarchyService, build_hierarchy_service
from marketlinks.infrastructure.database import create_tables, engine
from marketlinks.infrastructure.logging import configure_logging


def print_header(title: str) -> None:
    print("=" * 60)
    print(title)
    print("=" * 60)


async def run_rebuild(service: HierarchyService, args: argparse.Namespace) -> int:
    report = await service.rebuild_for_account(args.account)

    print(f"  ✓ Product links processed: {report.product_links_processed}")
    print(f"  ✓ Variant links fixed: {report.variant_links_fixed}")
    print(f"  ✓ Variant links repointed: {report.variant_links_repointed}")
    print(f"  ! Orphaned links found: {report.orphaned_links_found}")
    for error in report.errors:
        print(f"  ✗ Error: {error}")
    return 0 if report.success else 1


async def run_validate(service: HierarchyService, args: argparse.Namespace) -> int:
    report = await service.validate(args.account)

    print(f"Status: {report.status}")
    print(f"Total issues: {report.total_issues}")
    for issue in report.issues:
        print(f"  - [{issue.marketplace}] {issue.id} sku={issue.sku}: {issue.description}")
    return 0 if report.total_issues == 0 else 1


async def run_repair(service: HierarchyService, args: argparse.Namespace) -> int:
    report = await service.repair(args.issue or None, args.account)

    print(f"  ✓ Fixed: {report.fixed_count}")
    for issue in report.fixed:
        print(f"    - {issue.id}")
    print(f"  ✗ Failed: {report.failed_count}")
    for failure in report.failed:
        print(f"    - {failure.issue.id}: {failure.reason}")
    return 0 if report.success else 1


async def run_stats(service: HierarchyService, args: argparse.Namespace) -> int:
    stats = await service.get_hierarchy_statistics(args.account)

    print(f"Total links: {stats.total}")
    print(f"Product links: {stats.product_links}")
    print(f"Variant links: {stats.variant_links}")
    print(f"Hierarchical links: {stats.hierarchical_links}")
    print(f"Orphaned variants: {stats.orphaned_variants}")
    print(f"Hierarchy completion: {stats.hierarchy_completion_pct}%")
    print("By status:")
    for status, count in stats.by_status.items():
        print(f"  {status}: {count}")
    if stats.by_account:
        print("By marketplace:")
        for channel, counts in stats.by_account.items():
            print(
                f"  {channel}: {counts['total']} links, "
                f"{counts['orphaned_variants']} orphaned, "
                f"{counts['hierarchy_completion_pct']}% complete"
            )
    return 0


async def run_auto_link(service: HierarchyService, args: argparse.Namespace) -> int:
    if args.exact_sku:
        report = await service.auto_link_by_exact_sku()
    else:
        report = await service.auto_link_hierarchical()

    print(f"  ✓ Links created: {report.links_created}")
    print(f"    Product links: {report.product_links_created}")
    print(f"    Variant links: {report.variant_links_created}")
    for error in report.errors:
        print(f"  ✗ Error: {error}")
    return 0 if not report.errors else 1


COMMANDS = {
    "rebuild": run_rebuild,
    "validate": run_validate,
    "repair": run_repair,
    "stats": run_stats,
    "auto-link": run_auto_link,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Maintain the marketplace link hierarchy",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: MARKETLINKS_LOG_LEVEL)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create database tables")

    rebuild = subparsers.add_parser("rebuild", help="Rebuild parent references for one account")
    rebuild.add_argument("--account", required=True, help="Marketplace account ID")

    validate = subparsers.add_parser("validate", help="Report hierarchy defects")
    validate.add_argument("--account", default=None, help="Restrict to one marketplace account")

    repair = subparsers.add_parser("repair", help="Fix hierarchy defects")
    repair.add_argument("--account", default=None, help="Restrict to one marketplace account")
    repair.add_argument(
        "--issue",
        action="append",
        help="Issue ID or link ID to fix (repeatable, default: all issues)",
    )

    stats = subparsers.add_parser("stats", help="Show hierarchy statistics")
    stats.add_argument("--account", default=None, help="Restrict to one marketplace account")

    auto_link = subparsers.add_parser("auto-link", help="Link unlinked products by SKU matching")
    auto_link.add_argument(
        "--exact-sku",
        action="store_true",
        help="Create pending product links only, without variant hierarchy",
    )

    return parser


async def main() -> int:
    """Main entry point."""
    args = build_parser().parse_args()
    configure_logging(level=args.log_level)

    print_header(f"Marketplace Links: {args.command}")

    try:
        if args.command == "init-db":
            print("Creating database tables...")
            await create_tables()
            print("Tables ready.")
            return 0

        return await COMMANDS[args.command](build_hierarchy_service(), args)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
