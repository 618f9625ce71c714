"""Session runner for implant inventory reconciliation.

This script restores an article backup, replays a file of raw barcode
payloads through the reconciliation engine, and writes a structured JSON
report under `output/` by default.
"""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Any

from implant_inventory import ReconciliationEngine, ScanOutcome, dump_backup, load_backup
from implant_inventory.expiry import format_for_display
from implant_inventory.importer import ImportResult

log = logging.getLogger("inventur")

DEFAULT_ARTICLES = Path("data/articles.json")
DEFAULT_SCANS = Path("data/scans.txt")
DEFAULT_OUTPUT = Path("output/inventur_report.json")

# Printable stand-in for the ASCII 29 group separator in scan files.
GS_PLACEHOLDER = "<GS>"


@dataclass(slots=True)
class SessionRun:
    """Engine state and per-scan outcomes of one replayed session."""

    engine: ReconciliationEngine
    outcomes: list[ScanOutcome]
    import_result: ImportResult


def read_scan_payloads(scans_path: Path) -> list[str]:
    """Read one raw payload per non-blank line."""

    payloads: list[str] = []
    for line in scans_path.read_text(encoding="utf-8").splitlines():
        if not line.strip():
            continue
        payloads.append(line.replace(GS_PLACEHOLDER, "\x1d"))
    return payloads


def _fixed_clock(today: date):
    """Return a clock pinned to midnight of `today`."""

    moment = datetime.combine(today, time())
    return lambda: moment


def run_session(
    *,
    articles_path: Path,
    scans_path: Path,
    inventory_id: int = 1,
    today: date | None = None,
) -> SessionRun:
    """Restore articles and count every scanned payload against them."""

    import_result = load_backup(articles_path.read_text(encoding="utf-8"), source=str(articles_path))
    engine = ReconciliationEngine(
        inventory_id=inventory_id,
        clock=_fixed_clock(today) if today is not None else None,
    )
    engine.load_articles(import_result.articles)

    # Replay is sequential, so each scan completes before the next starts.
    outcomes = [engine.process_scan(payload) for payload in read_scan_payloads(scans_path)]

    return SessionRun(engine=engine, outcomes=outcomes, import_result=import_result)


def _json_default(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _outcome_to_dict(outcome: ScanOutcome) -> dict[str, Any]:
    """Serialize one scan outcome into a JSON-friendly dictionary."""

    scan = outcome.scan
    return {
        "raw_data": outcome.raw_data,
        "ok": outcome.ok,
        "error": None if outcome.error is None else {"code": outcome.error.code, "message": outcome.error.message},
        "article_id": None if outcome.article is None else outcome.article.id,
        "ref": None if scan is None else scan.ref,
        "lot": None if scan is None else scan.lot,
        "gtin": None if scan is None else scan.gtin,
        "expiry": None if scan is None else format_for_display(scan.expiry_date),
        "advisories": list(outcome.advisories),
        "issues": [] if scan is None else [asdict(issue) for issue in scan.issues],
    }


def build_report(run: SessionRun, *, articles_path: Path, scans_path: Path) -> dict[str, Any]:
    """Build a complete session report payload."""

    statistics = run.engine.statistics()
    failed = [outcome for outcome in run.outcomes if not outcome.ok]

    return {
        "metadata": {
            "generated_at_utc": datetime.now(timezone.utc).isoformat(),
            "articles_path": str(articles_path),
            "scans_path": str(scans_path),
            "inventory_id": run.engine.inventory_id,
        },
        "summary": {
            "scans_total": len(run.outcomes),
            "scans_counted": len(run.outcomes) - len(failed),
            "scans_failed": len(failed),
            "progress_percent": statistics.progress_percent,
        },
        "statistics": asdict(statistics),
        "scans": [_outcome_to_dict(outcome) for outcome in run.outcomes],
        "articles": [asdict(article) for article in run.engine.articles],
        "data_quality_issues": {
            "file_issues": [asdict(issue) for issue in run.import_result.file_issues],
            "row_issues": [asdict(item) for item in run.import_result.row_issues],
        },
    }


def write_report(report: dict[str, Any], *, output_path: Path) -> None:
    """Write report JSON to disk."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(
        json.dumps(report, indent=2, sort_keys=True, ensure_ascii=False, default=_json_default) + "\n",
        encoding="utf-8",
    )


def _parse_args() -> argparse.Namespace:
    """Parse CLI arguments for a session replay."""

    parser = argparse.ArgumentParser(description="Replay barcode scans against an article backup and emit a report.")
    parser.add_argument("--articles", type=Path, default=DEFAULT_ARTICLES, help="Path to the article JSON backup")
    parser.add_argument("--scans", type=Path, default=DEFAULT_SCANS, help="Path to raw scan payloads, one per line")
    parser.add_argument("--output", type=Path, default=DEFAULT_OUTPUT, help="Output JSON path")
    parser.add_argument("--articles-out", type=Path, default=None, help="Write the updated article backup here")
    parser.add_argument("--inventory-id", type=int, default=1, help="Inventory id recorded in scan history")
    parser.add_argument(
        "--today",
        type=date.fromisoformat,
        default=None,
        help="Evaluate expiry dates as of this ISO date instead of the current date",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging verbosity",
    )
    return parser.parse_args()


def main() -> int:
    """Entrypoint for command-line execution."""

    args = _parse_args()
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    run = run_session(
        articles_path=args.articles,
        scans_path=args.scans,
        inventory_id=args.inventory_id,
        today=args.today,
    )
    report = build_report(run, articles_path=args.articles, scans_path=args.scans)
    write_report(report, output_path=args.output)
    log.info("Wrote inventory report: %s", args.output)

    if args.articles_out is not None:
        args.articles_out.parent.mkdir(parents=True, exist_ok=True)
        args.articles_out.write_text(dump_backup(run.engine.articles), encoding="utf-8")
        log.info("Wrote updated article backup: %s", args.articles_out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
