"""Tests for CLI module."""

import json
import logging
from pathlib import Path

import pytest

from defect_tracker.cli import build_parser, log_run_summary, resolve_config, run
from defect_tracker.models.run import RecordedOutcome
from defect_tracker.testing.factories import TestRunFactory


@pytest.fixture
def store_args(tmp_path: Path) -> list[str]:
    """Arguments pointing the CLI at a temporary JSON store."""
    return [
        "--store",
        "json-file",
        "--store-config",
        json.dumps({"path": str(tmp_path / "tracker.json")}),
    ]


def write_results(path: Path, results: list[dict[str, object]], **extra: object) -> Path:
    path.write_text(json.dumps({"results": results, **extra}))
    return path


def invoke(argv: list[str]) -> int:
    return run(build_parser().parse_args(argv))


def test_log_run_summary(caplog: pytest.LogCaptureFixture) -> None:
    """Logs each outcome with its symbol and the defect counters."""
    sealed = TestRunFactory.build(
        run_number=3,
        total_tests=2,
        passed=1,
        pass_rate=50.0,
        new_defects=1,
        fixed_defects=0,
        reopened_defects=0,
        open_defects=1,
        aborted=False,
        outcomes=[
            RecordedOutcome(test_id="a", status="passed", test_name="Login"),
            RecordedOutcome(
                test_id="b", status="failed", test_name="Logout", error_message="500"
            ),
        ],
    )

    with caplog.at_level(logging.INFO):
        log_run_summary(logging.getLogger(), sealed)

    assert "Run #3 Summary:" in caplog.text
    assert "✅ Login: passed" in caplog.text
    assert "❌ Logout: failed" in caplog.text
    assert "Message: 500" in caplog.text
    assert "1/2 passed (50.00%) - 1 new, 0 fixed, 0 reopened, 1 open" in caplog.text


def test_resolve_config_overrides_file(tmp_path: Path) -> None:
    """Command-line store options override the config file."""
    path = tmp_path / "tracker.yaml"
    path.write_text("store: sqlite\ntrend_window: 3\n")

    config = resolve_config(path, "json-file", '{"path": "x.json"}')

    assert config.store == "json-file"
    assert config.store_config == {"path": "x.json"}
    assert config.trend_window == 3


def test_ingest_records_run(
    tmp_path: Path, store_args: list[str], capsys: pytest.CaptureFixture[str]
) -> None:
    """Ingesting a results file seals a run and exits 1 on failures."""
    results = write_results(
        tmp_path / "results.json",
        [
            {"test_id": "a", "status": "failed", "test_name": "A", "category": "ui"},
            {"test_id": "b", "status": "passed"},
        ],
        total_tests=3,
    )

    exit_code = invoke(["ingest", str(results), *store_args])

    assert exit_code == 1
    output = json.loads(capsys.readouterr().out)
    assert output["run_number"] == 1
    assert output["new_defects"] == 1
    assert output["skipped"] == 1


def test_ingest_passing_run_exits_zero(
    tmp_path: Path, store_args: list[str], capsys: pytest.CaptureFixture[str]
) -> None:
    """A run without failures exits 0."""
    results = write_results(tmp_path / "results.json", [{"test_id": "a", "status": "passed"}])

    assert invoke(["ingest", str(results), *store_args]) == 0
    assert json.loads(capsys.readouterr().out)["pass_rate"] == 100.0


def test_ingest_rejects_invalid_file(
    tmp_path: Path, store_args: list[str], caplog: pytest.LogCaptureFixture
) -> None:
    """An invalid results file exits 2 without starting a run."""
    results = write_results(tmp_path / "results.json", [{"status": "passed"}])

    assert invoke(["ingest", str(results), *store_args]) == 2
    assert "Invalid results file" in caplog.text


def test_ingest_aborted_run(
    tmp_path: Path, store_args: list[str], capsys: pytest.CaptureFixture[str]
) -> None:
    """Aborted result files are sealed as aborted runs."""
    results = write_results(
        tmp_path / "results.json",
        [{"test_id": "a", "status": "passed"}],
        total_tests=4,
        aborted=True,
    )

    invoke(["ingest", str(results), *store_args])

    output = json.loads(capsys.readouterr().out)
    assert output["aborted"] is True
    assert output["skipped"] == 3


def test_read_commands(
    tmp_path: Path, store_args: list[str], capsys: pytest.CaptureFixture[str]
) -> None:
    """Read-only commands print JSON views of the tracker."""
    first = write_results(
        tmp_path / "first.json",
        [{"test_id": "a", "status": "failed", "severity": "high"}],
    )
    second = write_results(tmp_path / "second.json", [{"test_id": "a", "status": "passed"}])
    invoke(["ingest", str(first), *store_args])
    invoke(["ingest", str(second), *store_args])
    capsys.readouterr()

    invoke(["defects", "--status", "fixed", *store_args])
    [defect] = json.loads(capsys.readouterr().out)
    assert defect["test_id"] == "a"
    assert defect["fixed_in_run"] == 2

    invoke(["runs", *store_args])
    assert [r["run_number"] for r in json.loads(capsys.readouterr().out)] == [1, 2]

    invoke(["stats", *store_args])
    stats = json.loads(capsys.readouterr().out)
    assert stats["total_runs"] == 2
    assert stats["stats"]["by_severity"]["high"] == 1

    invoke(["trends", "--window", "1", *store_args])
    assert json.loads(capsys.readouterr().out)["run_labels"] == ["Run #2"]

    invoke(["history", "a", *store_args])
    assert [r["run_number"] for r in json.loads(capsys.readouterr().out)] == [1]


def test_ingest_maps_priority_to_severity(
    tmp_path: Path, store_args: list[str], capsys: pytest.CaptureFixture[str]
) -> None:
    """Priority sets severity unless the result names one explicitly."""
    results = write_results(
        tmp_path / "r.json",
        [
            {"test_id": "a", "status": "failed", "priority": "Critical"},
            {"test_id": "b", "status": "failed", "priority": "low"},
            {"test_id": "c", "status": "failed", "priority": "high", "severity": "low"},
            {"test_id": "d", "status": "failed"},
        ],
    )
    invoke(["ingest", str(results), *store_args])
    capsys.readouterr()

    invoke(["defects", *store_args])
    defects = json.loads(capsys.readouterr().out)

    assert {d["test_id"]: d["severity"] for d in defects} == {
        "a": "critical",
        "b": "medium",
        "c": "low",
        "d": "medium",
    }


def test_clear_command(
    tmp_path: Path, store_args: list[str], capsys: pytest.CaptureFixture[str]
) -> None:
    """Clear wipes all data."""
    results = write_results(tmp_path / "r.json", [{"test_id": "a", "status": "failed"}])
    invoke(["ingest", str(results), *store_args])

    assert invoke(["clear", *store_args]) == 0
    capsys.readouterr()

    invoke(["runs", *store_args])
    assert json.loads(capsys.readouterr().out) == []
