"""
Unit tests for startup preparation.
"""

import stat
import sys

from docserve.bootstrap import (
    SAMPLE_INDEX_HTML,
    check_interpreter,
    prepare_document_root,
)


class TestPrepareDocumentRoot:
    """Tests for prepare_document_root()."""

    def test_creates_and_seeds(self, tmp_path):
        """Test a missing root is created with sample files."""
        root = tmp_path / "www"

        assert prepare_document_root(root) is True

        assert (root / "index.html").read_text() == SAMPLE_INDEX_HTML
        assert "<?php" in (root / "info.php").read_text()
        assert stat.S_IMODE(root.stat().st_mode) == 0o700

    def test_other_script_extension(self, tmp_path):
        """Test the sample script follows the configured extension."""
        root = tmp_path / "www"

        prepare_document_root(root, script_extension="py")

        assert (root / "info.py").exists()
        assert not (root / "info.php").exists()

    def test_nested_root(self, tmp_path):
        """Test parents are created."""
        root = tmp_path / "a" / "b" / "www"

        assert prepare_document_root(root) is True
        assert (root / "index.html").is_file()

    def test_existing_root_untouched(self, tmp_path):
        """Test an existing (even empty) root is left alone."""
        assert prepare_document_root(tmp_path) is False
        assert list(tmp_path.iterdir()) == []


class TestCheckInterpreter:
    """Tests for check_interpreter()."""

    def test_executable(self):
        """Test the running Python passes."""
        assert check_interpreter(sys.executable) is True

    def test_missing(self, tmp_path, caplog):
        """Test a missing interpreter warns."""
        assert check_interpreter(str(tmp_path / "php")) is False
        assert "not found or not executable" in caplog.text

    def test_not_executable(self, tmp_path):
        """Test a plain file is rejected."""
        path = tmp_path / "php"
        path.write_text("")
        path.chmod(0o644)

        assert check_interpreter(str(path)) is False

    def test_bare_name_on_path(self, tmp_path, monkeypatch):
        """Test a bare interpreter name is found on PATH."""
        path = tmp_path / "php"
        path.write_text("#!/bin/sh\n")
        path.chmod(0o755)
        monkeypatch.setenv("PATH", str(tmp_path))

        assert check_interpreter("php") is True

    def test_bare_name_missing(self, tmp_path, monkeypatch):
        """Test a bare name absent from PATH warns."""
        monkeypatch.setenv("PATH", str(tmp_path))

        assert check_interpreter("php") is False
