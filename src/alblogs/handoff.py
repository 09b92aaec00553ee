"""
Interactive hand-off to the sqlite3 shell.

Once a run has closed its database, an operator at a terminal is dropped
straight into `sqlite3 <db>`. Scripted runs (stdin or stdout redirected)
and hosts without the sqlite3 binary just get the path printed.
"""

import logging
import os
import shutil
import sys
from pathlib import Path
from typing import Optional, TextIO, Union

logger = logging.getLogger(__name__)

SQLITE_SHELL = "sqlite3"


def is_interactive(
    stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None
) -> bool:
    """Return True when both stdin and stdout are attached to a terminal."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    try:
        return stdin.isatty() and stdout.isatty()
    except (AttributeError, ValueError):
        # Closed or replaced streams
        return False


def find_shell() -> Optional[str]:
    return shutil.which(SQLITE_SHELL)


def hand_off_to_shell(db_path: Union[str, Path]) -> bool:
    """
    Replace the current process with the sqlite3 shell when interactive.

    Returns:
        False if no hand-off happened; on hand-off this never returns

    Raises:
        OSError: If the shell was found but could not be executed
    """
    if not is_interactive():
        return False

    shell = find_shell()
    if shell is None:
        logger.debug(f"{SQLITE_SHELL} not found on PATH, skipping shell hand-off")
        return False

    sys.stdout.flush()
    sys.stderr.flush()
    os.execv(shell, [SQLITE_SHELL, str(db_path)])
    return True  # pragma: no cover
