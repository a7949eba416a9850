"""
Parser for JSON achievement files (Goldberg, Empress and friends).
"""

import json
from typing import Any, List, Optional

from .base import BaseParser
from ..exceptions import MalformedContentError
from ..models import Achievement, Snapshot


ACHIEVED_KEYS = ("achieved", "earned", "unlocked")
NAME_KEYS = ("displayname", "name")


def _lookup(entry: dict, keys) -> Optional[Any]:
    """Case-insensitive lookup of the first present key."""
    lowered = {str(k).lower(): v for k, v in entry.items()}
    for key in keys:
        if key in lowered:
            return lowered[key]
    return None


def _to_bool(value: Any, achievement_id: str) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    raise MalformedContentError(
        f"Invalid achieved value for {achievement_id}: {value!r}"
    )


class JsonParser(BaseParser):
    """
    Parser for JSON files mapping achievement ids to state objects.

    Accepts either ``{"ACH_ID": {"earned": true, ...}, ...}`` or a list of
    objects each carrying a ``name`` field.
    """

    def supported_extensions(self) -> List[str]:
        return [".json"]

    def parse(self, content: str) -> Snapshot:
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise MalformedContentError(f"Error parsing JSON: {e}") from e

        if isinstance(data, list):
            entries = []
            for entry in data:
                if not isinstance(entry, dict) or "name" not in entry:
                    raise MalformedContentError("List entries must be objects with a 'name'")
                entries.append((str(entry["name"]), entry))
        elif isinstance(data, dict):
            entries = list(data.items())
        else:
            raise MalformedContentError(
                f"Expected a JSON object or list, got {type(data).__name__}"
            )

        achievements: Snapshot = {}
        for achievement_id, entry in entries:
            if not isinstance(entry, dict):
                raise MalformedContentError(
                    f"Achievement {achievement_id} is not an object"
                )
            achieved = _to_bool(_lookup(entry, ACHIEVED_KEYS), achievement_id)
            name_keys = NAME_KEYS if isinstance(data, dict) else ("displayname",)
            display_name = _lookup(entry, name_keys)
            achievements[achievement_id] = Achievement(
                name=achievement_id,
                achieved=achieved,
                display_name=str(display_name) if display_name else "",
            )

        return achievements
