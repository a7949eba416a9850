"""
Parser for INI achievement files (CODEX, RUNE, SmartSteamEmu and friends).
"""

from typing import List, Optional

from .base import BaseParser
from ..exceptions import MalformedContentError
from ..models import Achievement, Snapshot


ACHIEVED_KEYS = {"achieved", "state", "haveachieved", "unlocked", "earned"}

_TRUE_LITERALS = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_LITERALS = {"0", "f", "F", "FALSE", "false", "False"}


def parse_bool(value: str) -> bool:
    """
    Parse a boolean literal.

    Raises:
        ValueError: If the literal is not recognized
    """
    if value in _TRUE_LITERALS:
        return True
    if value in _FALSE_LITERALS:
        return False
    raise ValueError(f"invalid boolean literal: {value!r}")


def should_include_achievement(name: str) -> bool:
    """Skip unnamed sections and the emulator's bookkeeping section."""
    if not name.strip():
        return False
    return name.lower() != "steamachievements"


class IniParser(BaseParser):
    """
    Parser for INI files with one section per achievement.

    Example::

        [ACH_WIN_ONE_GAME]
        Achieved=1
        UnlockTime=1700000000
    """

    def supported_extensions(self) -> List[str]:
        return [".ini"]

    def parse(self, content: str) -> Snapshot:
        achievements: Snapshot = {}
        section: Optional[str] = None
        achieved = False

        for line_no, raw_line in enumerate(content.splitlines(), start=1):
            line = raw_line.strip()
            if not line:
                continue

            if line.startswith("[") and line.endswith("]"):
                if section is not None and should_include_achievement(section):
                    achievements[section] = Achievement(name=section, achieved=achieved)
                section = line.strip("[]")
                achieved = False
                continue

            if section is None or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip().lower()
            if key not in ACHIEVED_KEYS:
                continue

            try:
                achieved = parse_bool(value.strip())
            except ValueError as e:
                raise MalformedContentError(
                    f"Invalid boolean value for '{key}' in section {section} (line {line_no}): {e}"
                ) from e

        if section is not None and should_include_achievement(section):
            achievements[section] = Achievement(name=section, achieved=achieved)

        return achievements
