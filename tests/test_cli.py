"""Tests for the sfbm command-line interface."""

import importlib
from unittest.mock import MagicMock

import pytest
import yaml
from click.testing import CliRunner

from sforce_batch_manager.cli.cli import cli
from sforce_batch_manager.core.errors import BulkSubmissionError
from sforce_batch_manager.core.models import BulkJobResults

# the package re-exports the click group under the module name
cli_module = importlib.import_module("sforce_batch_manager.cli.cli")


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "config.yaml"


@pytest.fixture
def csv_file(tmp_path):
    path = tmp_path / "accounts.csv"
    path.write_text("Name\nAcme\nGlobex\n", encoding="utf-8")
    return path


@pytest.fixture
def fake_client(monkeypatch):
    client = MagicMock()
    monkeypatch.setattr(cli_module, "_create_client", lambda config: client)
    return client


class TestConfigCommands:
    def test_set_writes_yaml(self, runner, config_path):
        result = runner.invoke(cli, ["--config", str(config_path), "config", "set", "batch_size_max", "100"])

        assert result.exit_code == 0
        saved = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        assert saved["batch_size_max"] == 100
        assert saved["api_version"] == "v62.0"

    def test_set_parses_yaml_values(self, runner, config_path):
        runner.invoke(cli, ["--config", str(config_path), "config", "set", "compression_headers", "true"])
        runner.invoke(cli, ["--config", str(config_path), "config", "set", "http_timeout", "null"])

        saved = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        assert saved["compression_headers"] is True
        assert saved["http_timeout"] is None

    def test_set_invalid_value(self, runner, config_path):
        result = runner.invoke(cli, ["--config", str(config_path), "config", "set", "batch_size_max", "500"])

        assert result.exit_code == 1
        assert not config_path.exists()

    def test_set_unknown_key(self, runner, config_path):
        result = runner.invoke(cli, ["--config", str(config_path), "config", "set", "colour", "blue"])

        assert result.exit_code == 1

    def test_show(self, runner, config_path):
        result = runner.invoke(cli, ["--config", str(config_path), "config", "show"])

        assert result.exit_code == 0

    def test_broken_config_file(self, runner, config_path):
        config_path.write_text("- not\n- a mapping\n", encoding="utf-8")

        result = runner.invoke(cli, ["--config", str(config_path), "config", "show"])

        assert result.exit_code == 1


class TestBulkCommand:
    def test_submits_file(self, runner, config_path, csv_file, fake_client):
        fake_client.submit_bulk_file.return_value = ["7501", "7502"]

        result = runner.invoke(cli, [
            "--config", str(config_path), "bulk", "insert", "Account", str(csv_file),
            "--batch-size", "1", "--wait",
        ])

        assert result.exit_code == 0
        assert "7501\n7502\n" in result.output
        args, kwargs = fake_client.submit_bulk_file.call_args
        assert args == ("insert", "Account", str(csv_file), 1, True)
        assert kwargs["external_id_field"] == ""

    def test_upsert_requires_external_id(self, runner, config_path, csv_file, fake_client):
        result = runner.invoke(cli, ["--config", str(config_path), "bulk", "upsert", "Account", str(csv_file)])

        assert result.exit_code == 2
        fake_client.submit_bulk_file.assert_not_called()

    def test_invalid_batch_size(self, runner, config_path, csv_file, fake_client):
        result = runner.invoke(cli, [
            "--config", str(config_path), "bulk", "insert", "Account", str(csv_file), "--batch-size", "0",
        ])

        assert result.exit_code == 2

    def test_submission_failure(self, runner, config_path, csv_file, fake_client):
        fake_client.submit_bulk_file.side_effect = BulkSubmissionError("stopped", job_ids=["7501"])

        result = runner.invoke(cli, ["--config", str(config_path), "bulk", "delete", "Account", str(csv_file)])

        assert result.exit_code == 1

    def test_missing_credentials(self, runner, config_path, csv_file, clean_env):
        result = runner.invoke(cli, ["--config", str(config_path), "bulk", "insert", "Account", str(csv_file)])

        assert result.exit_code == 1


class TestJobResultsCommand:
    def test_writes_failed_records(self, runner, config_path, tmp_path, fake_client):
        fake_client.get_job_results.return_value = BulkJobResults(
            id="7501", state="JobComplete", number_records_failed=1,
            successful_records=[],
            failed_records=[{"sf__Id": "001X", "sf__Error": "REQUIRED_FIELD_MISSING:Name", "Name": "Acme"}],
        )
        output = tmp_path / "failed.csv"

        result = runner.invoke(cli, [
            "--config", str(config_path), "job-results", "7501", "--failed-output", str(output),
        ])

        assert result.exit_code == 0
        assert output.read_text(encoding="utf-8").splitlines() == [
            "sf__Id,sf__Error,Name", "001X,REQUIRED_FIELD_MISSING:Name,Acme",
        ]

    def test_incomplete_job_writes_nothing(self, runner, config_path, tmp_path, fake_client):
        fake_client.get_job_results.return_value = BulkJobResults(id="7501", state="InProgress")
        output = tmp_path / "failed.csv"

        result = runner.invoke(cli, [
            "--config", str(config_path), "job-results", "7501", "--failed-output", str(output),
        ])

        assert result.exit_code == 0
        assert not output.exists()


class TestQueryExportCommand:
    def test_exports(self, runner, config_path, tmp_path, fake_client):
        output = tmp_path / "accounts.csv"
        fake_client.query_bulk_export.return_value = output

        result = runner.invoke(cli, [
            "--config", str(config_path), "query-export", "SELECT Id FROM Account", str(output),
        ])

        assert result.exit_code == 0
        fake_client.query_bulk_export.assert_called_once_with("SELECT Id FROM Account", str(output))
