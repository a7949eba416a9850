"""
Persisted user settings (API key and watched folders).
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from .exceptions import SettingsError

logger = logging.getLogger(__name__)


def default_folders() -> List[str]:
    """
    Folders where common emulators keep achievement state.

    Entries whose base environment variable is unset are left out.
    """
    candidates = [
        ("PUBLIC", ("Documents", "Steam", "CODEX")),
        ("PUBLIC", ("Documents", "Steam", "RUNE")),
        ("PUBLIC", ("Documents", "OnlineFix")),
        ("PUBLIC", ("Documents", "Empress")),
        ("APPDATA", ("Empress",)),
        ("APPDATA", ("Steam", "CODEX")),
        ("APPDATA", ("SmartSteamEmu",)),
        ("APPDATA", ("CreamAPI",)),
        ("PROGRAMDATA", ("Steam",)),
        ("LOCALAPPDATA", ("skidrow",)),
    ]
    folders = []
    for env_var, parts in candidates:
        base = os.environ.get(env_var)
        if base:
            folders.append(str(Path(base).joinpath(*parts)))
    return folders


@dataclass
class Settings:
    """User settings stored as JSON."""
    api_key: str = ""
    folders: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to the on-disk representation."""
        return {"apiKey": self.api_key, "folders": list(self.folders)}

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        """Create from the on-disk representation."""
        folders = data.get("folders") or []
        if not isinstance(folders, list):
            raise SettingsError(f"'folders' must be a list, got {type(folders).__name__}")
        return cls(
            api_key=str(data.get("apiKey") or ""),
            folders=[str(f) for f in folders],
        )

    def add_folder(self, folder: str) -> bool:
        """Add a folder; returns False if it was already present."""
        if folder in self.folders:
            return False
        self.folders.append(folder)
        return True

    def remove_folder(self, folder: str) -> bool:
        """Remove a folder; returns False if it was not present."""
        if folder not in self.folders:
            return False
        self.folders.remove(folder)
        return True


def save_settings(settings: Settings, path: Path) -> None:
    """
    Write settings to disk, creating the parent directory.

    Raises:
        SettingsError: If the file cannot be written
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(settings.to_dict(), indent=2), encoding="utf-8")
    except OSError as e:
        raise SettingsError(f"Error writing settings file {path}: {e}") from e


def load_settings(path: Path) -> Settings:
    """
    Load settings, creating a default file on first use.

    Raises:
        SettingsError: If the file cannot be read or decoded
    """
    if not path.exists():
        settings = Settings(folders=default_folders())
        save_settings(settings, path)
        logger.info(f"Created default settings at {path}")
        return settings

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise SettingsError(f"Error reading settings file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise SettingsError(f"Error decoding settings file {path}: {e}") from e

    if not isinstance(data, dict):
        raise SettingsError(f"Settings file {path} must contain a JSON object")
    return Settings.from_dict(data)
