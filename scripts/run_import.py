"""Manual import runner for testing profiles and vendor credentials.

Runs one import profile against the configured database and prints the
resulting run stats and error summary.

Usage:
    python scripts/run_import.py --profile <profile-id>
    python scripts/run_import.py --profile <profile-id> --dry-run
    python scripts/run_import.py --profile <profile-id> --max-items 5
"""

import argparse
import asyncio
import os
import sys

# Add backend to path so we can import okazje modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from okazje.core.exceptions import NotFoundError, ProfileDisabledError
from okazje.core.logging import configure_logging
from okazje.db.session import async_session_factory
from okazje.schemas.run import IngestOptions
from okazje.services.indexing import get_indexing_queue
from okazje.services.ingest_service import IngestService


async def run_import(profile_id: str, dry_run: bool = False, max_items: int = None) -> int:
    """Run one import profile and display the outcome.

    Returns:
        Process exit code
    """
    print(f"\n{'='*70}")
    print(f"  Import profile {profile_id}{' (dry run)' if dry_run else ''}")
    if max_items:
        print(f"  Max items: {max_items}")
    print(f"{'='*70}\n")

    try:
        async with async_session_factory() as db:
            service = IngestService(db)
            result = await service.run_import(
                profile_id,
                IngestOptions(dry_run=dry_run, max_items=max_items, triggered_by="manual"),
            )
    except (NotFoundError, ProfileDisabledError) as e:
        print(f"❌ {e.message}\n")
        return 2
    finally:
        await get_indexing_queue().close()

    print(f"{'✅' if result.ok else '❌'} Run {result.run_id} {'completed' if result.ok else 'failed'}\n")

    print("  Stats:")
    for key, value in result.stats.items():
        print(f"    - {key}: {value}")

    if result.errors:
        print(f"\n  Errors ({len(result.errors)}):")
        for entry in result.errors:
            item = f" [{entry.item_id}]" if entry.item_id else ""
            print(f"    - {entry.code}{item}: {entry.message}")

    print(f"\n{'='*70}\n")
    return 0 if result.ok else 1


def main():
    """Parse arguments and run the import."""
    parser = argparse.ArgumentParser(
        description="Run an Okazje+ import profile",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_import.py --profile 6f1c...
  python scripts/run_import.py --profile 6f1c... --dry-run --max-items 5
        """,
    )

    parser.add_argument("--profile", required=True, help="Import profile id")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Evaluate items without writing products or deals",
    )
    parser.add_argument(
        "--max-items",
        type=int,
        default=None,
        help="Override the profile's max_items_per_run",
    )

    args = parser.parse_args()

    configure_logging()
    sys.exit(asyncio.run(run_import(args.profile, args.dry_run, args.max_items)))


if __name__ == "__main__":
    main()
