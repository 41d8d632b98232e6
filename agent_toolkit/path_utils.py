"""Path helpers shared by the tools."""

from __future__ import annotations

import os


def resolve_to_cwd(path: str, cwd: str) -> str:
    """Resolve *path* against *cwd*, expanding ``~``.

    Absolute paths are returned normalized; relative paths are joined onto
    the working directory.
    """
    expanded = os.path.expanduser(path.strip())
    if os.path.isabs(expanded):
        return os.path.normpath(expanded)
    return os.path.normpath(os.path.join(os.path.abspath(cwd), expanded))
