"""CLI integration tests for the local store commands."""

from __future__ import annotations

import json
import zipfile
from pathlib import Path

import pytest
from typer.testing import CliRunner

from awms import cli
from awms.core import pipeline
from awms.services.connectivity import ConnectivityMonitor
from awms.services.sync import SyncResult
from awms.core.errors import SyncWarning


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    monkeypatch.chdir(tmp_path)
    return {"AWMS_ROOT": str(tmp_path / "persist")}


@pytest.fixture
def workbook(tmp_path: Path, xlsx_factory) -> Path:
    path = tmp_path / "roster.xlsx"
    path.write_bytes(
        xlsx_factory(
            {
                "A": [["No", "Name"]] + [[idx, f"Worker {idx}"] for idx in range(1, 26)],
                "B": [["Task"], ["Audit"], ["Review"], ["Ship"]],
            }
        )
    )
    return path


def test_upload_list_view_and_export(
    cli_runner: CliRunner, env: dict[str, str], workbook: Path, tmp_path: Path
) -> None:
    result = cli_runner.invoke(cli.app, ["upload", str(workbook)], env=env)
    assert result.exit_code == 0, result.output
    assert "Saved locally as #1. Sheets: A, B" in result.output

    result = cli_runner.invoke(cli.app, ["list"], env=env)
    assert result.exit_code == 0, result.output
    assert "#1 roster.xlsx" in result.output
    assert "Sheets: 2" in result.output

    result = cli_runner.invoke(cli.app, ["view", "1", "--sheet", "A", "--page", "3"], env=env)
    assert result.exit_code == 0, result.output
    assert "Rows: 25" in result.output
    assert "Worker 21" in result.output
    assert "Page 3 / 3" in result.output

    out_dir = tmp_path / "exports"
    result = cli_runner.invoke(
        cli.app, ["export-csv", "1", "--sheet", "B", "--search", "rev", "--out", str(out_dir)], env=env
    )
    assert result.exit_code == 0, result.output
    assert (out_dir / "roster.xlsx-B.csv").read_text(encoding="utf-8") == 'Task\n"Review"\n'

    result = cli_runner.invoke(cli.app, ["export-all", "--out", str(out_dir)], env=env)
    assert result.exit_code == 0, result.output
    with zipfile.ZipFile(out_dir / "awms-files.zip") as archive:
        assert archive.read("roster.xlsx") == workbook.read_bytes()

    result = cli_runner.invoke(cli.app, ["download", "1", "--out", str(tmp_path / "dl")], env=env)
    assert result.exit_code == 0, result.output
    assert (tmp_path / "dl" / "roster.xlsx").read_bytes() == workbook.read_bytes()

    result = cli_runner.invoke(cli.app, ["delete", "1", "--yes"], env=env)
    assert result.exit_code == 0, result.output
    assert "0 file(s) remain" in result.output


def test_upload_rejects_unparseable_file(cli_runner: CliRunner, env: dict[str, str], tmp_path: Path) -> None:
    bad = tmp_path / "broken.xlsx"
    bad.write_bytes(b"PK\x03\x04not really a workbook")

    result = cli_runner.invoke(cli.app, ["upload", str(bad)], env=env)

    assert result.exit_code == 1
    assert "Error:" in result.output
    listing = cli_runner.invoke(cli.app, ["list"], env=env)
    assert "No files stored locally." in listing.output


def test_upload_sync_failure_is_warning(
    cli_runner: CliRunner,
    env: dict[str, str],
    workbook: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls: list[str] = []

    class FailingSync:
        def __init__(self, **_: object) -> None:
            pass

        def sync(self, filename: str, data: bytes, endpoint: str, **_: object) -> SyncResult:
            calls.append(endpoint)
            return SyncResult(ok=False, endpoint=endpoint, warning=SyncWarning("Server upload timed out"))

    monkeypatch.setattr(pipeline, "RemoteSync", FailingSync)

    result = cli_runner.invoke(
        cli.app, ["upload", str(workbook), "--sync", "--endpoint", "/files"], env=env
    )

    assert result.exit_code == 0, result.output
    assert "Saved locally as #1" in result.output
    assert "Warning: Server upload timed out (kept locally)" in result.output
    assert calls == ["http://localhost:3000/files"]


def test_export_all_on_empty_store_fails(cli_runner: CliRunner, env: dict[str, str], tmp_path: Path) -> None:
    result = cli_runner.invoke(cli.app, ["export-all", "--out", str(tmp_path)], env=env)

    assert result.exit_code == 1
    assert "No files to export" in result.output


def test_view_unknown_record(cli_runner: CliRunner, env: dict[str, str]) -> None:
    result = cli_runner.invoke(cli.app, ["view", "42"], env=env)

    assert result.exit_code == 1
    assert "#42 not found" in result.output


def test_clear_and_health(
    cli_runner: CliRunner,
    env: dict[str, str],
    workbook: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(ConnectivityMonitor, "probe", lambda self: False)
    cli_runner.invoke(cli.app, ["upload", str(workbook)], env=env)

    result = cli_runner.invoke(cli.app, ["health"], env=env)
    assert result.exit_code == 0, result.output
    assert "offline" in result.output
    assert "[OK] local store (1 files)" in result.output

    result = cli_runner.invoke(cli.app, ["clear", "--yes"], env=env)
    assert result.exit_code == 0, result.output
    assert "Local store cleared." in result.output


def test_local_resources(cli_runner: CliRunner, env: dict[str, str]) -> None:
    result = cli_runner.invoke(
        cli.app, ["resources", "add", "employees", '{"name": "Al"}', "--local"], env=env
    )
    assert result.exit_code == 0, result.output
    created = json.loads(result.output.strip().splitlines()[-1])

    result = cli_runner.invoke(cli.app, ["resources", "ls", "employees", "--local"], env=env)
    assert result.exit_code == 0, result.output
    assert json.loads(result.output.strip().splitlines()[-1]) == {"name": "Al", "id": created["id"]}

    result = cli_runner.invoke(cli.app, ["resources", "rm", "employees", str(created["id"]), "--local"], env=env)
    assert result.exit_code == 0, result.output

    result = cli_runner.invoke(cli.app, ["resources", "ls", "employees", "--local"], env=env)
    assert "<empty>" in result.output


def test_resources_rejects_bad_payload(cli_runner: CliRunner, env: dict[str, str]) -> None:
    result = cli_runner.invoke(cli.app, ["resources", "add", "tasks", "[1, 2]", "--local"], env=env)

    assert result.exit_code != 0


def test_unopenable_store_reports_error(cli_runner: CliRunner, env: dict[str, str], tmp_path: Path) -> None:
    (Path(env["AWMS_ROOT"]) / "store" / "awms.db").mkdir(parents=True)
    source = tmp_path / "people.csv"
    source.write_text("Name\nAl\n", encoding="utf-8")

    result = cli_runner.invoke(cli.app, ["upload", str(source)], env=env)

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Error:" in result.output and "awms.db" in result.output

    listing = cli_runner.invoke(cli.app, ["list"], env=env)
    assert listing.exit_code == 1
    assert isinstance(listing.exception, SystemExit)
    assert "Error:" in listing.output


def test_app_log_written_under_configured_root(
    cli_runner: CliRunner, env: dict[str, str], tmp_path: Path
) -> None:
    source = tmp_path / "people.csv"
    source.write_text("Name\nAl\n", encoding="utf-8")

    result = cli_runner.invoke(cli.app, ["upload", str(source)], env=env)

    assert result.exit_code == 0, result.output
    log_file = Path(env["AWMS_ROOT"]) / "logs" / "app.log"
    assert log_file.exists()
    assert "Saved locally as #1" in log_file.read_text(encoding="utf-8")
