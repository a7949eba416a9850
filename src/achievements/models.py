"""
Data models for achievement tracking.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Achievement:
    """
    State of one achievement as read from a local file.

    Attributes:
        name: Achievement id (API name), unique within an app
        achieved: Whether the achievement is unlocked
        display_name: Human readable name if the file carries one
    """
    name: str
    achieved: bool = False
    display_name: str = ""

    def __post_init__(self):
        if not self.display_name:
            object.__setattr__(self, "display_name", self.name)


# achievement id -> state, in the order the file listed them
Snapshot = Dict[str, Achievement]


@dataclass
class AchievementInfo:
    """Remote metadata for one achievement."""
    api_name: str
    display_name: str
    description: str = ""
    icon: str = ""
    icon_gray: str = ""
    hidden: bool = False
    rarity: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "AchievementInfo":
        """Create from the cached API representation."""
        return cls(
            api_name=data.get("internal_name", ""),
            display_name=data.get("localized_name", "") or data.get("internal_name", ""),
            description=data.get("localized_desc", "") or "",
            icon=data.get("icon", "") or "",
            icon_gray=data.get("icon_gray", "") or "",
            hidden=bool(data.get("hidden", False)),
            rarity=str(data.get("player_percent_unlocked", "") or ""),
        )

    def to_dict(self) -> dict:
        """Convert to the cached API representation."""
        return {
            "internal_name": self.api_name,
            "localized_name": self.display_name,
            "localized_desc": self.description,
            "icon": self.icon,
            "icon_gray": self.icon_gray,
            "hidden": self.hidden,
            "player_percent_unlocked": self.rarity,
        }


@dataclass
class ScanResult:
    """One pre-existing achievement file found by the initial scan."""
    app_id: str
    path: Path
    snapshot: Snapshot

    @property
    def unlocked_count(self) -> int:
        return sum(1 for a in self.snapshot.values() if a.achieved)


@dataclass
class UnlockNotification:
    """A notification that was (or failed to be) shown for a new unlock."""
    app_id: str
    achievement_id: str
    title: str = ""
    body: str = ""
    icon_path: Optional[Path] = None
    delivered: bool = False


@dataclass
class EventOutcome:
    """What handling one file event produced."""
    app_id: str
    path: Path
    new_unlocks: List[str] = field(default_factory=list)
    notifications: List[UnlockNotification] = field(default_factory=list)
    error: Optional[str] = None
