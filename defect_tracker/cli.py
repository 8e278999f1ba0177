"""CLI entry point for the defect tracker."""

import argparse
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from defect_tracker.catalog import UNCATEGORIZED
from defect_tracker.config import TrackerConfig, load_tracker_config
from defect_tracker.models.ingest import IngestedRun
from defect_tracker.models.run import TestRun
from defect_tracker.tracker import DefectTracker

STATUS_SYMBOLS = {
    "passed": "✅",
    "failed": "❌",
    "skipped": "⏭️",
}


def log_run_summary(log: logging.Logger, run: TestRun) -> None:
    """Log a formatted summary of a sealed run."""
    log.info("=" * 80)
    log.info("Run #%d Summary%s:", run.run_number, " (aborted)" if run.aborted else "")
    log.info("=" * 80)

    for outcome in run.outcomes:
        symbol = STATUS_SYMBOLS.get(outcome.status, "?")
        log.info("%s %s: %s", symbol, outcome.test_name or outcome.test_id, outcome.status)
        if outcome.error_message:
            log.info("  Message: %s", outcome.error_message)

    log.info(
        "%d/%d passed (%.2f%%) - %d new, %d fixed, %d reopened, %d open defect(s)",
        run.passed,
        run.total_tests,
        run.pass_rate,
        run.new_defects,
        run.fixed_defects,
        run.reopened_defects,
        run.open_defects,
    )


def resolve_config(
    config_path: Path | None, store: str | None, store_config_json: str | None
) -> TrackerConfig:
    """Build the tracker configuration from a file and command-line overrides."""
    config = load_tracker_config(config_path) if config_path else TrackerConfig()

    overrides: dict[str, Any] = {}
    if store is not None:
        overrides["store"] = store
    if store_config_json is not None:
        overrides["store_config"] = json.loads(store_config_json)

    return config.model_copy(update=overrides) if overrides else config


def ingest(tracker: DefectTracker, payload: IngestedRun) -> TestRun:
    """Replay a results file through the tracker as one run."""
    tracker.start()
    for result in payload.results:
        if result.status == "passed":
            tracker.report_pass(result.test_id, result.test_name, result.category)
        elif result.status == "failed":
            tracker.report_failure(
                result.test_id,
                result.test_name or result.test_id,
                result.category or UNCATEGORIZED,
                result.error_message,
                result.effective_severity,
            )
        else:
            tracker.report_skip(result.test_id, result.test_name, result.category)

    if payload.aborted:
        return tracker.abort(payload.total_tests, payload.duration_ms)
    return tracker.complete(
        total_tests=payload.total_tests, duration_ms=payload.duration_ms
    )


def format_output(tracker: DefectTracker, args: argparse.Namespace) -> Any:
    """Produce the JSON-serialisable output for a read-only subcommand."""
    match args.command:
        case "defects":
            defects = {
                "all": tracker.get_all_defects,
                "open": tracker.get_open_defects,
                "fixed": tracker.get_fixed_defects,
            }[args.status]()
            return [defect.model_dump(mode="json") for defect in defects]
        case "runs":
            return [run.model_dump(mode="json") for run in tracker.get_all_runs()]
        case "stats":
            return {
                **tracker.get_dashboard_summary().model_dump(mode="json"),
                "stats": tracker.get_defect_stats().model_dump(mode="json"),
            }
        case "trends":
            return tracker.get_improvement_metrics(args.window).model_dump(mode="json")
        case "history":
            return [
                run.model_dump(mode="json", exclude={"outcomes"})
                for run in tracker.get_failure_history(args.test_id, args.limit)
            ]
    raise ValueError(f"Unknown command: {args.command}")


def run(args: argparse.Namespace) -> int:
    """Run a subcommand and return its exit code."""
    log = logging.getLogger("defect_tracker")

    config = resolve_config(args.config, args.store, args.store_config)
    log.info("Using store: %s", config.store)

    with DefectTracker.from_config(config) as tracker:
        for warning in tracker.load_warnings:
            if warning.kind == "corrupt":
                log.warning("Run history may be truncated: %s", warning.message)

        if args.command == "ingest":
            try:
                payload = IngestedRun.model_validate_json(args.results.read_bytes())
            except ValidationError as exc:
                log.error("Invalid results file %s: %s", args.results, exc)
                return 2
            sealed = ingest(tracker, payload)
            log_run_summary(log, sealed)
            print(json.dumps(sealed.model_dump(mode="json"), indent=2))
            return 1 if sealed.failed else 0

        if args.command == "clear":
            tracker.clear_all_data()
            print(json.dumps({"cleared": True}))
            return 0

        print(json.dumps(format_output(tracker, args), indent=2))
        return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subparser per command."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a YAML tracker configuration file",
    )
    common.add_argument(
        "--store",
        default=None,
        help="Store key (json-file, sqlite); overrides the config file",
    )
    common.add_argument(
        "--store-config",
        default=None,
        help="JSON configuration for the store; overrides the config file",
    )

    parser = argparse.ArgumentParser(
        description="Track defects and trends across test runs"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    ingest_parser = commands.add_parser(
        "ingest", parents=[common], help="Record a results file as a new run"
    )
    ingest_parser.add_argument("results", type=Path, help="Path to results JSON")

    defects_parser = commands.add_parser(
        "defects", parents=[common], help="List tracked defects"
    )
    defects_parser.add_argument(
        "--status", choices=["all", "open", "fixed"], default="all"
    )

    commands.add_parser("runs", parents=[common], help="List sealed runs")
    commands.add_parser("stats", parents=[common], help="Show defect statistics")

    trends_parser = commands.add_parser(
        "trends", parents=[common], help="Show trend series"
    )
    trends_parser.add_argument(
        "--window", type=int, default=None, help="Number of recent runs"
    )

    history_parser = commands.add_parser(
        "history", parents=[common], help="Runs in which a test failed"
    )
    history_parser.add_argument("test_id", help="Stable test identity")
    history_parser.add_argument("--limit", type=int, default=None)

    commands.add_parser("clear", parents=[common], help="Delete all tracking data")
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    sys.exit(run(args))


if __name__ == "__main__":  # pragma: no cover
    main()
