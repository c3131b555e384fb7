"""Tests for the infra-reconcile command line interface."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from infra_reconcile.cli import cli
from infra_reconcile.models import (
    CloudResource,
    OperationResult,
    ResolutionAction,
    ResourceKind,
    ScanResult,
)

CONFIG = {
    "project": {
        "name": "proj",
        "gcpProjectId": "my-gcp",
        "region": "us-central1",
        "networks": [{"name": "main", "functions": [{"name": "api"}]}],
    }
}


@pytest.fixture
def project_dir(tmp_path):
    (tmp_path / "stack.config.json").write_text(json.dumps(CONFIG))
    return tmp_path


@pytest.fixture
def runner():
    return CliRunner()


def scan_result(*names):
    return ScanResult(
        resources=[CloudResource(kind=ResourceKind.STORAGE_BUCKET, name=n) for n in names]
    )


@pytest.fixture
def mock_scanner():
    """Patch the scanner the reconciler builds."""
    with patch("infra_reconcile.reconciler.ResourceScanner") as scanner_cls:
        scanner = MagicMock()
        scanner.scan = AsyncMock(return_value=scan_result("proj-uploads"))
        scanner_cls.return_value = scanner
        yield scanner


@pytest.fixture
def mock_executor():
    """Patch the executor the reconciler builds."""
    with patch("infra_reconcile.reconciler.ReconciliationExecutor") as executor_cls:
        executor = MagicMock()
        executor.execute = AsyncMock(
            return_value=OperationResult(
                action=ResolutionAction.IMPORT_ALL, succeeded=["proj-uploads"], mutated=True
            )
        )
        executor_cls.return_value = executor
        yield executor


def invoke(runner, project_dir, *args, **kwargs):
    return runner.invoke(cli, ["--project-dir", str(project_dir), *args], **kwargs)


class TestValidateCommand:
    def test_valid_config(self, runner, project_dir):
        result = invoke(runner, project_dir, "validate")
        assert result.exit_code == 0
        assert "valid" in result.output

    def test_invalid_config(self, runner, tmp_path):
        config = json.loads(json.dumps(CONFIG))
        config["project"]["networks"][0]["containers"] = [{"name": "api"}]
        (tmp_path / "stack.config.json").write_text(json.dumps(config))

        result = invoke(runner, tmp_path, "validate")

        assert result.exit_code == 1
        assert "naming errors found" in result.output

    def test_missing_config(self, runner, tmp_path):
        result = invoke(runner, tmp_path, "validate")
        assert result.exit_code == 1
        assert "No config file found" in result.output


class TestScanCommand:
    def test_json_output(self, runner, project_dir):
        with patch("infra_reconcile.cli.ResourceScanner") as scanner_cls:
            scanner_cls.return_value.scan = AsyncMock(return_value=scan_result("proj-uploads"))
            result = invoke(runner, project_dir, "scan", "--json")

        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload["resources"][0]["name"] == "proj-uploads"
        assert payload["resources"][0]["kind"] == "storage"
        assert payload["errors"] == []


class TestRefreshCommand:
    def test_in_sync(self, runner, project_dir, mock_scanner, mock_executor):
        mock_scanner.scan.return_value = scan_result()

        result = invoke(runner, project_dir, "refresh", "--yes")

        assert result.exit_code == 0
        assert "No conflicts" in result.output
        mock_executor.execute.assert_not_called()

    def test_dry_run(self, runner, project_dir, mock_scanner, mock_executor):
        result = invoke(runner, project_dir, "refresh", "--dry-run")

        assert result.exit_code == 0
        assert "Dry run" in result.output
        assert "terraform import" in result.output
        mock_executor.execute.assert_not_called()

    def test_yes_imports_all(self, runner, project_dir, mock_scanner, mock_executor):
        result = invoke(runner, project_dir, "refresh", "--yes")

        assert result.exit_code == 0
        assert "Succeeded: 1" in result.output
        plan = mock_executor.execute.call_args.args[0]
        assert plan.action == ResolutionAction.IMPORT_ALL

    def test_failure_exits_nonzero(self, runner, project_dir, mock_scanner, mock_executor):
        failed_result = OperationResult(action=ResolutionAction.IMPORT_ALL)
        failed_result.record_failure("proj-uploads", "Error: permission denied")
        mock_executor.execute.return_value = failed_result

        result = invoke(runner, project_dir, "refresh", "--yes")

        assert result.exit_code == 1
        assert "permission denied" in result.output

    def test_interactive_list_details(self, runner, project_dir, mock_scanner, mock_executor):
        mock_executor.execute.return_value = OperationResult(
            action=ResolutionAction.LIST_DETAILS, details=["Storage Buckets: proj-uploads"]
        )

        result = invoke(runner, project_dir, "refresh", input="list_details\n")

        assert result.exit_code == 0
        assert "Storage Buckets: proj-uploads" in result.output
        plan = mock_executor.execute.call_args.args[0]
        assert plan.action == ResolutionAction.LIST_DETAILS

    def test_interactive_bad_prefix_then_cancel(
        self, runner, project_dir, mock_scanner, mock_executor
    ):
        mock_executor.execute.return_value = OperationResult(
            action=ResolutionAction.CANCEL, message="Cancelled. No changes made."
        )

        result = invoke(
            runner, project_dir, "refresh", input="change_prefix\nBAD\ncancel\n"
        )

        assert result.exit_code == 0
        assert "Invalid prefix" in result.output
        plan = mock_executor.execute.call_args.args[0]
        assert plan.action == ResolutionAction.CANCEL

    def test_delete_declined_becomes_cancel(
        self, runner, project_dir, mock_scanner, mock_executor
    ):
        result = invoke(runner, project_dir, "refresh", input="delete_all\nn\n")

        assert result.exit_code == 0
        plan = mock_executor.execute.call_args.args[0]
        assert plan.action == ResolutionAction.CANCEL
