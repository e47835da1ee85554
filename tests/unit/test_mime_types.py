"""
Unit tests for MIME classification.
"""

import pytest

from docserve.config import ServerConfig
from docserve.http.mime_types import (
    DEFAULT_MIME_TYPE,
    ContentClassifier,
    get_mime_type,
)


class TestGetMimeType:
    """Tests for the module-level lookup."""

    @pytest.mark.parametrize("name,expected", [
        ("index.html", "text/html"),
        ("page.htm", "text/html"),
        ("site.css", "text/css"),
        ("app.js", "application/javascript"),
        ("photo.jpg", "image/jpeg"),
        ("photo.jpeg", "image/jpeg"),
        ("logo.png", "image/png"),
        ("anim.gif", "image/gif"),
        ("notes.txt", "text/plain"),
    ])
    def test_known_extensions(self, name, expected):
        """Test the built-in table."""
        assert get_mime_type(name) == expected

    def test_unknown_extension(self):
        """Test the octet-stream default."""
        assert get_mime_type("blob.xyz") == DEFAULT_MIME_TYPE
        assert get_mime_type("Makefile") == "application/octet-stream"

    def test_explicit_default(self):
        """Test overriding the fallback."""
        assert get_mime_type("blob.xyz", default="text/plain") == "text/plain"

    def test_case_insensitive(self):
        """Test that upper-case extensions match."""
        assert get_mime_type("LOGO.PNG") == "image/png"

    def test_custom_table(self):
        """Test looking up in a table other than the built-in one."""
        table = {".md": "text/markdown"}

        assert get_mime_type("README.MD", table=table) == "text/markdown"
        assert get_mime_type("a.css", table=table) == DEFAULT_MIME_TYPE

    def test_no_charset_parameter(self):
        """Test that values are emitted exactly as listed."""
        assert ";" not in get_mime_type("index.html")


class TestContentClassifier:
    """Tests for ContentClassifier."""

    def test_is_script_default(self):
        """Test that .php is a script by default."""
        classifier = ContentClassifier()

        assert classifier.is_script("www/info.php")
        assert classifier.is_script("www/INFO.PHP")
        assert not classifier.is_script("www/index.html")
        assert not classifier.is_script("www/php")

    def test_custom_script_extensions(self):
        """Test dotted and undotted extension forms."""
        classifier = ContentClassifier(script_extensions=(".py", "phtml"))

        assert classifier.is_script("a.py")
        assert classifier.is_script("a.phtml")
        assert not classifier.is_script("a.php")

    def test_extra_types(self):
        """Test that configured types extend and override the table."""
        classifier = ContentClassifier(extra_types={"md": "text/markdown", ".txt": "text/x-log"})

        assert classifier.mime_type("README.md") == "text/markdown"
        assert classifier.mime_type("build.txt") == "text/x-log"
        assert classifier.mime_type("a.css") == "text/css"

    def test_extra_types_do_not_leak(self):
        """Test that one classifier's table does not change the module table."""
        ContentClassifier(extra_types={"md": "text/markdown"})

        assert get_mime_type("README.md") == DEFAULT_MIME_TYPE

    def test_from_config(self):
        """Test building from ServerConfig."""
        config = ServerConfig(script_extensions=("cgi",), mime_types={"MD": "text/markdown"})
        classifier = ContentClassifier.from_config(config)

        assert classifier.is_script("run.cgi")
        assert not classifier.is_script("info.php")
        assert classifier.mime_type("a.md") == "text/markdown"
