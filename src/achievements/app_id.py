"""
App id extraction from achievement file paths.
"""

from pathlib import Path
from typing import Union


def extract_app_id(path: Union[str, Path]) -> str:
    """
    Find the app id in a path.

    Emulators store achievement files under a folder named after the
    numeric Steam app id, e.g. ``.../Steam/CODEX/1245620/achievements.ini``.

    Args:
        path: Path to an achievement file

    Returns:
        The first all-digit path segment, or "" if there is none
    """
    for part in Path(path).parts:
        if part.isascii() and part.isdigit():
            return part
    return ""
