"""
Configuration for the achievements package.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from src.dirwatch.filters import PathFilter, should_include

APP_DIR_NAME = "Achievement-Thing"

DEFAULT_ACHIEVEMENT_FILES = [
    "achievements.ini",
    "achievements.json",
    "achiev.ini",
    "Achievements.ini",
]


def default_data_dir() -> Path:
    """
    Directory holding settings and the metadata cache.

    ACHIEVEMENT_WATCHER_HOME wins; otherwise %LOCALAPPDATA%/Achievement-Thing
    on Windows and ~/.local/share/achievement-thing elsewhere.
    """
    override = os.environ.get("ACHIEVEMENT_WATCHER_HOME")
    if override:
        return Path(override)
    local_app_data = os.environ.get("LOCALAPPDATA")
    if local_app_data:
        return Path(local_app_data) / APP_DIR_NAME
    return Path.home() / ".local" / "share" / APP_DIR_NAME.lower()


@dataclass
class MetadataConfig:
    """Configuration for the remote metadata cache."""
    api_base: str = "https://api.steampowered.com"
    cdn_base: str = "https://steamcdn-a.akamaihd.net/steamcommunity/public/images/apps"
    language: str = "english"
    metadata_max_age_days: int = 90
    image_max_age_days: int = 180
    request_timeout_s: float = 30.0

    # API key (can be overridden by env vars)
    api_key: Optional[str] = None
    api_key_env: str = "STEAM_API_KEY"

    def get_api_key(self) -> Optional[str]:
        """Get API key from config or environment."""
        return self.api_key or os.environ.get(self.api_key_env) or None


@dataclass
class AppConfig:
    """Main configuration for the achievement watcher."""
    # Storage
    data_dir: Path = field(default_factory=default_data_dir)
    settings_path: Optional[Path] = None
    cache_dir: Optional[Path] = None

    # File selection
    achievement_files: List[str] = field(default_factory=lambda: list(DEFAULT_ACHIEVEMENT_FILES))
    ignore_patterns: List[str] = field(default_factory=list)

    # Watching
    debounce_ms: int = 100

    # Notification policy
    max_notify_achievements: int = 2
    sort_notifications: bool = False
    cache_cooldown_s: float = 5.0

    # Remote metadata
    metadata: MetadataConfig = field(default_factory=MetadataConfig)

    # Background work (cache warm-up, notifications)
    worker_threads: int = 4

    def __post_init__(self):
        if isinstance(self.data_dir, str):
            self.data_dir = Path(self.data_dir)
        if isinstance(self.settings_path, str):
            self.settings_path = Path(self.settings_path)
        if isinstance(self.cache_dir, str):
            self.cache_dir = Path(self.cache_dir)
        if self.settings_path is None:
            self.settings_path = self.data_dir / "settings.json"
        if self.cache_dir is None:
            self.cache_dir = self.data_dir / "cache"
        if isinstance(self.metadata, dict):
            self.metadata = MetadataConfig(**self.metadata)
        if self.max_notify_achievements < 1:
            raise ValueError(
                f"max_notify_achievements must be at least 1: {self.max_notify_achievements}"
            )

    def is_achievement_file(self, path: Path) -> bool:
        """Check if a path looks like an achievement file we track."""
        return should_include(path, self.achievement_files, self.ignore_patterns)

    def path_filter(self) -> PathFilter:
        """Filter selecting achievement files."""
        return PathFilter(
            whitelist=tuple(self.achievement_files),
            ignore=tuple(self.ignore_patterns),
        )
