"""Round-trip text through the user's $EDITOR."""

import logging
import os
import shlex
import subprocess
import tempfile

from constants import DEFAULT_EDITOR

logger = logging.getLogger(__name__)


def resolve_editor() -> list[str]:
    """Command for $VISUAL, then $EDITOR, then the default editor."""
    command = os.getenv("VISUAL") or os.getenv("EDITOR") or DEFAULT_EDITOR
    return shlex.split(command)


def edit_text(initial: str = "", suffix: str = ".txt") -> str:
    """
    Open ``initial`` in an external editor and return what the user saved.

    Returns an empty string if the editor exits with an error, which callers
    treat as a cancelled edit.
    """
    fd, path = tempfile.mkstemp(prefix="canvas-submission-", suffix=suffix)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(initial)

        result = subprocess.run([*resolve_editor(), path], check=False)
        if result.returncode != 0:
            logger.warning("Editor exited with status %s; discarding text", result.returncode)
            return ""

        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    finally:
        os.remove(path)
