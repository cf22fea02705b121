"""
Tests for the command line interface.
"""

import json
import sys
import tempfile
from pathlib import Path

import pytest
from click.testing import CliRunner

sys.path.insert(0, str(Path(__file__).parent.parent))

from filemanager import filemanager, load_batch


@pytest.fixture
def workdir():
    """Create a temporary working directory."""
    with tempfile.TemporaryDirectory(prefix="fm-") as d:
        yield Path(d)


@pytest.fixture
def config(workdir):
    """Config file pointing the audit log into the temp directory."""
    path = workdir / "config.yaml"
    path.write_text(
        "filemanager:\n"
        f"  audit_log: {workdir / 'audit.jsonl'}\n"
    )
    return str(path)


@pytest.fixture
def cli():
    return CliRunner()


class TestLoadBatch:
    """Test batch file parsing."""

    def test_flat_entries(self, workdir):
        batch = workdir / "batch.yaml"
        batch.write_text("- operation: exists\n  targetPath: /tmp\n")

        items, params = load_batch(str(batch))

        assert len(items) == 1
        assert items[0].json == {}
        assert params == [{"operation": "exists", "targetPath": "/tmp"}]

    def test_entries_with_records(self, workdir):
        batch = workdir / "batch.json"
        batch.write_text(json.dumps({"items": [
            {"params": {"operation": "list", "targetPath": "/"}, "json": {"id": 7}},
        ]}))

        items, params = load_batch(str(batch))

        assert items[0].json == {"id": 7}
        assert params[0]["operation"] == "list"


class TestRunCommand:
    """Test `filemanager run`."""

    def test_run_batch_json_output(self, cli, config, workdir):
        target = workdir / "hello.txt"
        batch = workdir / "batch.yaml"
        batch.write_text(
            f"- operation: write\n  targetPath: {target}\n  data: hello\n"
            f"- operation: read\n  targetPath: {target}\n"
        )

        result = cli.invoke(filemanager, ["--config", config, "run", str(batch), "--json"])

        assert result.exit_code == 0, result.output
        outcomes = json.loads(result.output)
        assert outcomes[1]["json"]["data"] == "hello"
        assert outcomes[1]["json"]["success"] is True

    def test_run_strict_failure_exits_non_zero(self, cli, config, workdir):
        batch = workdir / "batch.yaml"
        batch.write_text(f"- operation: read\n  targetPath: {workdir / 'missing.txt'}\n")

        result = cli.invoke(filemanager, ["--config", config, "run", str(batch)])

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_run_continue_on_fail(self, cli, config, workdir):
        batch = workdir / "batch.yaml"
        batch.write_text(
            f"- operation: read\n  targetPath: {workdir / 'missing.txt'}\n"
            f"- operation: exists\n  targetPath: {workdir}\n"
        )

        result = cli.invoke(filemanager, ["--config", config, "run", str(batch), "--continue-on-fail", "--json"])

        assert result.exit_code == 0, result.output
        outcomes = json.loads(result.output)
        assert outcomes[0]["error"]["type"] == "FilesystemError"
        assert outcomes[0]["pairedItem"] == 0
        assert outcomes[1]["json"]["exists"] is True

    def test_run_table_output(self, cli, config, workdir):
        batch = workdir / "batch.yaml"
        batch.write_text(f"- operation: exists\n  targetPath: {workdir}\n")

        result = cli.invoke(filemanager, ["--config", config, "run", str(batch)])

        assert result.exit_code == 0, result.output
        assert "exists" in result.output


class TestOpCommand:
    """Test `filemanager op`."""

    def test_create_and_metadata(self, cli, config, workdir):
        path = workdir / "new.txt"

        result = cli.invoke(filemanager, ["--config", config, "op", "create", "--source", str(path)])
        assert result.exit_code == 0, result.output
        assert path.is_file()

        result = cli.invoke(filemanager, ["--config", config, "op", "metadata", "--target", str(path), "--json"])
        assert result.exit_code == 0, result.output
        record = json.loads(result.output)[0]["json"]
        assert record["size"] == 0
        assert record["isFile"] is True

    def test_chmod_with_octal_string(self, cli, config, workdir):
        path = workdir / "file.txt"
        path.write_text("x")

        result = cli.invoke(filemanager, ["--config", config, "op", "chmod", "--target", str(path),
                                          "--mode", "600", "--json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)[0]["json"]["mode"] == 0o600

    def test_unknown_operation_rejected(self, cli, config):
        result = cli.invoke(filemanager, ["--config", config, "op", "explode"])

        assert result.exit_code == 2


class TestAuditCommand:
    """Test `filemanager audit`."""

    def test_empty_log(self, cli, config):
        result = cli.invoke(filemanager, ["--config", config, "audit"])

        assert result.exit_code == 0
        assert "No audit entries found" in result.output

    def test_shows_failed_items(self, cli, config, workdir):
        cli.invoke(filemanager, ["--config", config, "op", "read", "--target", str(workdir / "missing")])

        result = cli.invoke(filemanager, ["--config", config, "audit", "--failed"])

        assert result.exit_code == 0
        assert "read" in result.output
        assert "failed" in result.output


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
