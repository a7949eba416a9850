"""
Achievements Package

Detects newly unlocked achievements in emulator achievement files and
notifies about them.

Features:
- Per-app diffing of achievement snapshots
- Guard against notification storms on first load or bulk rewrites
- Cooldown gate in front of remote metadata refreshes
- INI and JSON achievement file parsers
- Steam metadata and icon cache
- Desktop notifications
"""

from .models import (
    Achievement,
    Snapshot,
    AchievementInfo,
    ScanResult,
    UnlockNotification,
    EventOutcome,
)

from .config import AppConfig, MetadataConfig, default_data_dir

from .exceptions import (
    AchievementError,
    ParseError,
    UnsupportedFormatError,
    MalformedContentError,
    MetadataError,
    AchievementNotFoundError,
    SettingsError,
)

from .app_id import extract_app_id
from .cache_gate import RemoteCacheGate
from .diff_tracker import AchievementDiffTracker, diff_snapshots
from .parsers import ParserRegistry, IniParser, JsonParser, create_default_registry
from .metadata import SteamMetadataCache
from .notifier import Notifier, LogNotifier, CommandNotifier, create_default_notifier
from .settings import Settings, load_settings, save_settings, default_folders
from .service import AchievementWatcherService, scan_existing


__all__ = [
    # Models
    "Achievement",
    "Snapshot",
    "AchievementInfo",
    "ScanResult",
    "UnlockNotification",
    "EventOutcome",
    # Config
    "AppConfig",
    "MetadataConfig",
    "default_data_dir",
    # Exceptions
    "AchievementError",
    "ParseError",
    "UnsupportedFormatError",
    "MalformedContentError",
    "MetadataError",
    "AchievementNotFoundError",
    "SettingsError",
    # Components
    "extract_app_id",
    "RemoteCacheGate",
    "AchievementDiffTracker",
    "diff_snapshots",
    "ParserRegistry",
    "IniParser",
    "JsonParser",
    "create_default_registry",
    "SteamMetadataCache",
    "Notifier",
    "LogNotifier",
    "CommandNotifier",
    "create_default_notifier",
    "Settings",
    "load_settings",
    "save_settings",
    "default_folders",
    # Service
    "AchievementWatcherService",
    "scan_existing",
]

__version__ = "0.1.0"
