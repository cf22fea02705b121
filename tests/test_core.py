"""
Tests for the core module: configuration, audit logger and exceptions.
"""

import errno
import os
import tempfile
from pathlib import Path

import pytest

# Add parent directory to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import Settings, load_config, load_settings
from core.exceptions import (
    ArchiverProcessError,
    FileManagerError,
    FilesystemError,
    UnknownOperationError,
)
from core.logger import AuditLogger, ActionType, ActionStatus


class TestSettings:
    """Test configuration loading."""

    @pytest.fixture
    def temp_config(self):
        """Create a temporary config file."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write("""filemanager:
  continue_on_fail: true
  audit_log: /tmp/fm-audit.jsonl
  archiver:
    command: gtar
    timeout: 30
  defaults:
    encoding: latin1
    mode: "600"
""")
        yield f.name
        os.unlink(f.name)

    def test_missing_file_uses_defaults(self):
        settings = load_settings("/nonexistent/config.yaml")

        assert settings.continue_on_fail is False
        assert settings.archiver_command == "tar"
        assert settings.archiver_timeout is None
        assert settings.defaults["encoding"] == "utf8"

    def test_load_from_file(self, temp_config):
        settings = load_settings(temp_config)

        assert settings.continue_on_fail is True
        assert settings.audit_log == "/tmp/fm-audit.jsonl"
        assert settings.archiver_command == "gtar"
        assert settings.archiver_timeout == 30.0
        assert settings.defaults["encoding"] == "latin1"
        assert settings.defaults["mode"] == "600"
        # keys not in the file keep their defaults
        assert settings.defaults["recursive"] is True

    def test_parameter_defaults(self, temp_config):
        defaults = load_settings(temp_config).parameter_defaults()

        assert defaults["data"] == ""
        assert defaults["encoding"] == "latin1"

    def test_config_without_section(self):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write("continue_on_fail: true\n")
        try:
            assert load_config(f.name) == {"continue_on_fail": True}
        finally:
            os.unlink(f.name)

    def test_invalid_yaml_uses_defaults(self):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write("filemanager: [unclosed\n")
        try:
            assert load_settings(f.name) == Settings()
        finally:
            os.unlink(f.name)

    def test_scalar_section_uses_defaults(self):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write("filemanager: just-a-string\n")
        try:
            assert load_settings(f.name) == Settings()
        finally:
            os.unlink(f.name)

    def test_scalar_nested_sections_ignored(self):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write("filemanager:\n  continue_on_fail: true\n  archiver: gtar\n  defaults: 5\n")
        try:
            settings = load_settings(f.name)
        finally:
            os.unlink(f.name)

        assert settings.continue_on_fail is True
        assert settings.archiver_command == "tar"
        assert settings.archiver_timeout is None
        assert settings.defaults == Settings().defaults


class TestExceptions:
    """Test the exception hierarchy."""

    def test_all_errors_share_base(self):
        assert issubclass(UnknownOperationError, FileManagerError)
        assert issubclass(FilesystemError, FileManagerError)
        assert issubclass(ArchiverProcessError, FileManagerError)

    def test_item_index_in_message(self):
        error = UnknownOperationError("explode")
        assert str(error) == 'Unknown operation "explode"'

        error.item_index = 3
        assert str(error) == 'Unknown operation "explode" [item 3]'

    def test_from_os_error(self):
        os_error = FileNotFoundError(errno.ENOENT, "No such file or directory", "/tmp/missing")

        error = FilesystemError.from_os_error(os_error, "read")

        assert error.errno == errno.ENOENT
        assert error.code == "ENOENT"
        assert error.path == "/tmp/missing"
        assert error.operation == "read"
        assert "No such file or directory" in error.message

    def test_archiver_error_includes_stderr(self):
        error = ArchiverProcessError("tar exited with code 2", exit_code=2, stderr="tar: bad archive\n")

        assert error.exit_code == 2
        assert str(error) == "tar exited with code 2: tar: bad archive"


class TestAuditLogger:
    """Test AuditLogger class."""

    @pytest.fixture
    def temp_log(self):
        """Create a temporary log file."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.jsonl', delete=False) as f:
            yield f.name
        os.unlink(f.name)

    @pytest.fixture
    def logger(self, temp_log):
        """Create a logger with temp file."""
        return AuditLogger(log_path=temp_log)

    def test_log_action(self, logger):
        """Test logging an action."""
        entry = logger.log_action(
            action_type=ActionType.WRITE,
            operation="write",
            item_index=0,
            status=ActionStatus.EXECUTED,
            metadata={"targetPath": "/tmp/x"}
        )

        assert entry.operation == "write"
        assert entry.status == "executed"

        stored = logger.get_recent(limit=1)[0]
        assert stored.metadata == {"targetPath": "/tmp/x"}

    def test_get_recent(self, logger):
        """Test getting recent entries."""
        for i in range(5):
            logger.log_action(
                action_type=ActionType.READ,
                operation="read",
                item_index=i
            )

        entries = logger.get_recent(limit=3)

        assert len(entries) == 3
        assert [e.item_index for e in entries] == [4, 3, 2]

    def test_get_failed(self, logger):
        """Test getting failed and tolerated items."""
        logger.log_action(ActionType.READ, "read", 0, ActionStatus.EXECUTED)
        logger.log_action(ActionType.DELETE, "remove", 1, ActionStatus.FAILED, result="ENOTEMPTY")
        logger.log_action(ActionType.EXECUTE, "extract", 2, ActionStatus.TOLERATED)

        failed = logger.get_failed()

        assert [e.operation for e in failed] == ["extract", "remove"]

    def test_get_by_operation(self, logger):
        logger.log_action(ActionType.READ, "read", 0)
        logger.log_action(ActionType.WRITE, "copy", 1)
        logger.log_action(ActionType.WRITE, "copy", 2)

        entries = logger.get_by_operation("copy")

        assert [e.item_index for e in entries] == [2, 1]

    def test_creates_log_directory(self):
        with tempfile.TemporaryDirectory() as d:
            log_path = Path(d) / "nested" / "audit.jsonl"
            AuditLogger(log_path=str(log_path))

            assert log_path.exists()

    def test_skips_corrupt_lines(self, logger, temp_log):
        with open(temp_log, "a", encoding="utf-8") as f:
            f.write("not json\n")
        logger.log_action(ActionType.READ, "list", 0)

        assert len(logger.get_recent()) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
