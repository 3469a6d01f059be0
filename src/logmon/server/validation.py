"""Boundary checks applied to paths before they reach the registry."""

from __future__ import annotations

import os
import stat
from pathlib import Path


class InvalidPathError(ValueError):
    """A submitted path cannot be watched. The message is user-facing."""


def check_watchable(path: str | Path) -> os.stat_result:
    """Ensure ``path`` is an existing, readable regular file.

    Returns:
        The stat result of the file (its size is reported to clients).

    Raises:
        InvalidPathError: with the reason the path was rejected
    """
    try:
        st = os.stat(path)
    except OSError as e:
        raise InvalidPathError("failed to get file's stat") from e

    if stat.S_ISDIR(st.st_mode):
        raise InvalidPathError("must be a file, not a directory")
    if not stat.S_ISREG(st.st_mode):
        raise InvalidPathError("must be a regular file")
    if not os.access(path, os.R_OK):
        raise InvalidPathError("file is not readable")
    return st
