"""
Startup preparation: seed a missing document root, check the interpreter.

Neither step is needed to serve requests. They exist so that a fresh
checkout answers something useful on http://localhost:8080/ instead of a
wall of 404s.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Union


logger = logging.getLogger(__name__)


SAMPLE_INDEX_HTML = """\
<!DOCTYPE html>
<html>
<head>
    <title>Welcome to docserve</title>
</head>
<body>
    <h1>Welcome to docserve</h1>
    <p>This is a sample HTML file served from the document root.</p>
    <p>Place your HTML files in this directory to serve them.</p>
</body>
</html>
"""

SAMPLE_PHP_SCRIPT = """\
<?php
    echo "<h1>PHP is working!</h1>";
    echo "<p>This page is generated by PHP, relayed by docserve.</p>";
    echo "<h2>PHP Information</h2>";
    phpinfo();
?>
"""

SAMPLE_GENERIC_SCRIPT = """\
<h1>Script output goes here</h1>
"""


def check_interpreter(interpreter: str) -> bool:
    """
    Warn when the interpreter cannot be executed.

    A bare name such as "php" is looked up on PATH, as Popen does.

    The server still starts: static files work, scripts answer 500.
    """
    resolved = shutil.which(interpreter)
    if resolved and os.path.isfile(resolved):
        return True

    logger.warning(f"Interpreter {interpreter} not found or not executable.")
    logger.warning("Scripts will answer 500 until it is installed or --interpreter is set.")
    return False


def prepare_document_root(root: Union[str, Path], script_extension: str = "php") -> bool:
    """
    Create `root` with sample content if it does not exist yet.

    An existing directory is never touched, even if empty.

    Returns:
        True if the directory was created and seeded.
    """
    root = Path(root)
    if root.exists():
        return False

    logger.info(f"Creating document root {root}...")
    root.mkdir(mode=0o700, parents=True)

    (root / "index.html").write_text(SAMPLE_INDEX_HTML)
    logger.info("Created sample index.html file.")

    sample = SAMPLE_PHP_SCRIPT if script_extension == "php" else SAMPLE_GENERIC_SCRIPT
    script_name = f"info.{script_extension}"
    (root / script_name).write_text(sample)
    logger.info(f"Created sample {script_name} file.")

    return True
