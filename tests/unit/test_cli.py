"""
Unit tests for the command line.
"""

import pytest

from docserve.__main__ import build_parser, config_from_args, main, parse_mime
from docserve.config import ServerConfig


def configure(argv, base=None):
    args = build_parser().parse_args(argv)
    return config_from_args(args, base or ServerConfig())


class TestParseArgs:
    """Tests for flag handling."""

    def test_no_flags_keeps_base(self):
        """Test that unset flags do not override anything."""
        base = ServerConfig(port=3000, interpreter="/opt/php")

        assert configure([], base) == base

    def test_network_flags(self):
        """Test host, port and socket settings."""
        config = configure([
            "-H", "127.0.0.1", "-p", "9000", "--backlog", "5",
            "--buffer-size", "8192", "--timeout", "2.5",
        ])

        assert config.host == "127.0.0.1"
        assert config.port == 9000
        assert config.backlog == 5
        assert config.buffer_size == 8192
        assert config.timeout == 2.5

    def test_content_flags(self):
        """Test root, interpreter and script settings."""
        config = configure([
            "-r", "/srv/www", "-i", "/usr/bin/python3",
            "--script-ext", "py", "--script-ext", ".CGI",
            "--max-path-length", "1024", "--script-timeout", "10",
        ])

        assert config.document_root == "/srv/www"
        assert config.interpreter == "/usr/bin/python3"
        assert config.script_extensions == ("py", "cgi")
        assert config.max_path_length == 1024
        assert config.script_timeout == 10.0

    def test_mime_flags_merge(self):
        """Test --mime adds to types from the environment."""
        base = ServerConfig(mime_types={"md": "text/markdown"})

        config = configure(["--mime", "log=text/plain", "--mime", ".YAML=application/yaml"], base)

        assert config.mime_types == {
            "md": "text/markdown",
            "log": "text/plain",
            "yaml": "application/yaml",
        }

    def test_logging_flags(self):
        """Test log level and format."""
        config = configure(["-l", "DEBUG", "--log-format", "json"])

        assert config.log_level == "DEBUG"
        assert config.log_format == "json"

    def test_bad_mime(self):
        """Test a malformed EXT=TYPE pair is rejected."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--mime", "markdown"])

    def test_parse_mime(self):
        """Test the EXT=TYPE splitter."""
        assert parse_mime(" md = text/markdown ") == ("md", "text/markdown")

    def test_version(self, capsys):
        """Test --version output."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--version"])

        assert "docserve 1.0.0" in capsys.readouterr().out


class TestMain:
    """Tests for main()."""

    def test_invalid_config(self, capsys):
        """Test a validation error exits before binding."""
        assert main(["--port", "70000", "--no-seed"]) == 2
        assert "Invalid port" in capsys.readouterr().err
