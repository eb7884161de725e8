from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv
from pydantic import ValidationError

from gearscout.app import (
    ReviewAction,
    detect_duplicates,
    import_catalog,
    ingest_listings,
    merge_duplicates,
    review_listing,
    run_audit,
)
from gearscout.config import ConfigurationError, configure_logging
from gearscout.domain.errors import (
    CatalogEntryNotFoundError,
    ListingNotFoundError,
    ReviewError,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from gearscout.domain.audit import AuditReport
    from gearscout.domain.deduplication import DuplicateGroup, MergeReport

log = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected an integer, got {value!r}") from exc
    if parsed < 1:
        raise argparse.ArgumentTypeError("Value must be at least 1")
    return parsed


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Track used audio gear listings")
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="INFO",
        help="Logging verbosity (default: %(default)s)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Fetch and match new postings")
    ingest.add_argument(
        "--page-size",
        type=_positive_int,
        default=None,
        help="Number of postings to request per page (defaults to config)",
    )
    ingest.add_argument(
        "--max-pages",
        type=_positive_int,
        default=None,
        help="Maximum number of pages to fetch before stopping (defaults to config)",
    )

    catalog = subparsers.add_parser("catalog", help="Catalog maintenance commands")
    catalog_sub = catalog.add_subparsers(dest="catalog_command", required=True)
    catalog_import = catalog_sub.add_parser("import", help="Add entries from a JSON seed file")
    catalog_import.add_argument("path", type=Path, help="Path to the JSON seed file")

    dedupe = subparsers.add_parser("dedupe", help="Detect and merge duplicate catalog entries")
    dedupe.add_argument(
        "--execute",
        action="store_true",
        help="Apply the merges of the last preview (default is a dry run)",
    )

    subparsers.add_parser("audit", help="Report anomalies in stored matches")

    review = subparsers.add_parser("review", help="Record a decision on a match")
    review.add_argument("action", choices=[action.value for action in ReviewAction])
    review.add_argument("--permalink", required=True, help="Permalink of the posting")
    review.add_argument("--entry-id", type=str, help="Catalog entry id (reassign only)")
    review.add_argument("--note", type=str, help="Review note; required for reassign")

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _validate_review_args(args: argparse.Namespace) -> UUID | None:
    action = ReviewAction(args.action)
    if action is ReviewAction.REASSIGN:
        if args.entry_id is None:
            raise ValueError("reassign requires --entry-id")
        if not args.note or not args.note.strip():
            raise ValueError("reassign requires --note with a justification")
        return _parse_uuid(args.entry_id)
    if args.entry_id is not None:
        raise ValueError("--entry-id is only valid with reassign")
    return None


def _log_groups(groups: list[DuplicateGroup]) -> None:
    for group in groups:
        log.info(
            "%s group (min similarity %.2f): keep %s; members: %s",
            group.kind,
            group.min_similarity,
            group.canonical.display_name,
            ", ".join(f"{member.display_name} [{member.id}]" for member in group.members),
        )


def _log_merge_report(report: MergeReport) -> None:
    for outcome in report.outcomes:
        log.info(
            "%s: keep %s, delete %s%s",
            outcome.status,
            outcome.keep_id,
            ", ".join(str(entry_id) for entry_id in outcome.delete_ids),
            f" ({outcome.error})" if outcome.error else "",
        )
    if report.dry_run:
        log.info(
            "Dry run complete: %d merge groups previewed. Re-run with --execute to apply.",
            len(report.outcomes),
        )
    else:
        log.info("Merged %d groups, %d failed", report.merged, report.failed)


def _log_audit_report(report: AuditReport) -> None:
    log.info(
        "Audit: total=%d matched=%d unmatched=%d pending_review=%d confidence=%s",
        report.total,
        report.matched,
        report.unmatched,
        report.pending_review,
        report.confidence,
    )
    for source, stats in sorted(report.by_source.items()):
        log.info(
            "Source %s: total=%d matched=%d unmatched=%d",
            source,
            stats.total,
            stats.matched,
            stats.unmatched,
        )
    for flag in report.flags:
        log.info("Flag %s on %s: %s", flag.kind, flag.permalink, flag.detail)
    for suspect in report.suspects:
        log.warning(
            "Suspect catalog entry %s [%s]: %d flagged postings (%s)",
            suspect.name,
            suspect.entry_id,
            suspect.flagged_postings,
            ", ".join(suspect.kinds),
        )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    entry_id: UUID | None = None
    try:
        parsed_args = _parse_args(args_list)
        if parsed_args.command == "review":
            entry_id = _validate_review_args(parsed_args)
    except ValueError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    configure_logging(level=getattr(logging, parsed_args.log_level), force=True)

    try:
        if parsed_args.command == "ingest":
            ingest_listings(page_size=parsed_args.page_size, max_pages=parsed_args.max_pages)
        elif parsed_args.command == "catalog" and parsed_args.catalog_command == "import":
            summary = import_catalog(parsed_args.path)
            log.info("Imported catalog: added=%d existing=%d", summary.added, summary.existing)
        elif parsed_args.command == "dedupe":
            if not parsed_args.execute:
                _log_groups(detect_duplicates())
            _log_merge_report(merge_duplicates(execute=parsed_args.execute))
        elif parsed_args.command == "audit":
            _log_audit_report(run_audit())
        elif parsed_args.command == "review":
            result = review_listing(
                permalink=parsed_args.permalink,
                action=ReviewAction(parsed_args.action),
                entry_id=entry_id,
                note=parsed_args.note,
            )
            log.info("Match %s is now %s", result.permalink, result.review_status)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except (ConfigurationError, ValidationError, ValueError) as exc:
        log.error("Invalid input: %s", exc)  # noqa: TRY400
        sys.exit(2)
    except (ListingNotFoundError, CatalogEntryNotFoundError, ReviewError) as exc:
        log.error("Review failed: %s", exc)  # noqa: TRY400
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during run")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
