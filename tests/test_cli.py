"""Tests for the administration CLI."""
import json

from click.testing import CliRunner

from caretrack.cli import cli


def _invoke(data_dir, *args, input=None):
    runner = CliRunner()
    return runner.invoke(cli, ["--data-dir", str(data_dir), *args], input=input)


def test_init_creates_collection_files(tmp_path):
    data_dir = tmp_path / "data"
    result = _invoke(data_dir, "init")
    assert result.exit_code == 0, result.output
    assert "Storage initialized" in result.output
    payload = json.loads((data_dir / "clients.json").read_text(encoding="utf-8"))
    assert payload["records"] == []


def test_backup_list_and_restore(tmp_path):
    data_dir = tmp_path / "data"
    assert _invoke(data_dir, "init").exit_code == 0

    result = _invoke(data_dir, "backup")
    assert result.exit_code == 0, result.output
    backup_id = result.output.strip().rsplit(" ", 1)[-1]

    result = _invoke(data_dir, "list-backups")
    assert result.exit_code == 0
    assert backup_id in result.output

    result = _invoke(data_dir, "restore", backup_id, "--yes")
    assert result.exit_code == 0, result.output
    assert f"Restored backup {backup_id}" in result.output


def test_restore_asks_for_confirmation(tmp_path):
    data_dir = tmp_path / "data"
    backup_id = _invoke(data_dir, "backup").output.strip().rsplit(" ", 1)[-1]

    result = _invoke(data_dir, "restore", backup_id, input="n\n")
    assert result.exit_code == 1
    assert "Aborted" in result.output


def test_restore_unknown_backup_reports_code(tmp_path):
    result = _invoke(tmp_path / "data", "restore", "missing", "--yes")
    assert result.exit_code == 1
    assert "BACKUP_NOT_FOUND" in result.output


def test_list_backups_when_empty(tmp_path):
    result = _invoke(tmp_path / "data", "list-backups")
    assert result.exit_code == 0
    assert "No backups found" in result.output


def test_stats(tmp_path):
    result = _invoke(tmp_path / "data", "stats")
    assert result.exit_code == 0, result.output
    assert "Total records: 0" in result.output
    assert "clients: 0" in result.output
    assert "Last backup: never" in result.output
