from __future__ import annotations

import argparse
import logging
import os
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from ordnance.app import migrate_weapons, migration_stats, reconcile_weapon
from ordnance.config import configure_logging, level_from_name
from ordnance.domain.model import LATEST_SCHEMA_VERSION, SchemaVersion

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile multi-source weapon data")
    subparsers = parser.add_subparsers(dest="command", required=True)

    reconcile = subparsers.add_parser(
        "reconcile", help="Fetch a weapon from every provider and store the merged entity"
    )
    reconcile.add_argument("--name", type=str, required=True, help="Weapon name, e.g. 'MCW'")
    reconcile.add_argument(
        "--game",
        type=str,
        help="Game title or alias (MW3, Warzone, BO6, MW2); inferred from payloads if omitted",
    )
    reconcile.add_argument(
        "--min-sources",
        type=int,
        default=1,
        help="Minimum number of providers that must return data",
    )

    migrate = subparsers.add_parser("migrate", help="Migrate stored weapons to a schema version")
    migrate.add_argument(
        "--target",
        type=str,
        default=LATEST_SCHEMA_VERSION.value,
        choices=[version.value for version in SchemaVersion],
        help="Target schema version (defaults to the latest)",
    )

    subparsers.add_parser("migration-stats", help="Summarise the migration audit log")

    return parser.parse_args(list(argv))


def _log_stats() -> None:
    stats = migration_stats()
    log.info(
        "Migrations: total=%s, migrated=%s, failed=%s, pending=%s, last=%s, avg_ms=%s",
        stats.total,
        stats.migrated,
        stats.failed,
        stats.pending,
        stats.last_migration,
        stats.average_duration_ms,
    )
    for version, count in sorted(stats.by_version.items()):
        log.info("  reached %s: %s", version, count)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging(level=level_from_name(os.getenv("ORDNANCE_LOG_LEVEL")))
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    if parsed_args.command == "reconcile" and parsed_args.min_sources < 1:
        log.error("CLI validation error: --min-sources must be at least 1")
        sys.exit(2)

    try:
        if parsed_args.command == "reconcile":
            result = reconcile_weapon(
                parsed_args.name,
                parsed_args.game,
                min_successful_sources=parsed_args.min_sources,
            )
            log.info(
                "Reconciled %s (%s): valid=%s, failed providers=%s",
                result.merge.weapon.name,
                result.merge.weapon.id,
                result.merge.is_valid,
                ", ".join(failure.source for failure in result.failures) or "none",
            )
        elif parsed_args.command == "migrate":
            outcome = migrate_weapons(parsed_args.target)
            if outcome.failed:
                log.warning("%s entities failed to migrate", outcome.failed)
        elif parsed_args.command == "migration-stats":
            _log_stats()
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
