#!/usr/bin/env python3
"""
CLI for the achievement watcher.

Usage:
    python -m src.cli watch
    python -m src.cli watch --folders /path/to/CODEX /path/to/Goldberg --api-key KEY
    python -m src.cli scan
    python -m src.cli add-folder /path/to/folder
    python -m src.cli list-folders
"""

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from src.achievements import (
    AchievementWatcherService,
    AppConfig,
    SettingsError,
    default_data_dir,
    load_settings,
    save_settings,
    scan_existing,
)
from src.dirwatch import WatcherError

# Load .env from project root, then the working directory
_env_file = Path(__file__).parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    load_dotenv()


logger = logging.getLogger("cli")


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """Configure console logging and an optional log file."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logging.getLogger().addHandler(file_handler)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


class GracefulShutdown:
    """Handle graceful shutdown on SIGINT/SIGTERM."""

    def __init__(self):
        self.stop_event = threading.Event()
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

    def _handler(self, signum, frame):
        logger.info("Received shutdown signal, stopping...")
        self.stop_event.set()


def build_config(args) -> AppConfig:
    """Build the application config from CLI arguments."""
    data_dir = Path(args.data_dir) if args.data_dir else default_data_dir()
    config = AppConfig(data_dir=data_dir)
    if getattr(args, "debounce", None) is not None:
        config.debounce_ms = args.debounce
    if getattr(args, "max_notify", None) is not None:
        config.max_notify_achievements = args.max_notify
    if getattr(args, "sort", False):
        config.sort_notifications = True
    if getattr(args, "api_key", None):
        config.metadata.api_key = args.api_key
    return config


def cmd_watch(args):
    """Run the achievement watcher until interrupted."""
    config = build_config(args)
    settings = load_settings(config.settings_path)
    if args.folders:
        settings.folders = [str(Path(f).resolve()) for f in args.folders]

    service = AchievementWatcherService(config=config, settings=settings)
    shutdown = GracefulShutdown()
    try:
        service.run_forever(shutdown.stop_event)
    except WatcherError as e:
        logger.error(f"Error starting file watcher: {e}")
        sys.exit(1)


def cmd_scan(args):
    """Print the achievement files found in the configured folders."""
    config = build_config(args)
    settings = load_settings(config.settings_path)
    folders: List[str] = args.folders or settings.folders

    count = 0
    for result in scan_existing(folders, config.path_filter()):
        count += 1
        print(f"{result.app_id}\t{result.unlocked_count}/{len(result.snapshot)}\t{result.path}")
    print(f"\n{count} achievement files found")


def cmd_add_folder(args):
    """Add a folder to the watched folders."""
    config = build_config(args)
    settings = load_settings(config.settings_path)
    folder = str(Path(args.path).resolve())
    if not Path(folder).is_dir():
        print(f"Warning: folder does not exist yet: {folder}")
    if settings.add_folder(folder):
        save_settings(settings, config.settings_path)
        print(f"Added folder: {folder}")
    else:
        print(f"Folder already watched: {folder}")


def cmd_remove_folder(args):
    """Remove a folder from the watched folders."""
    config = build_config(args)
    settings = load_settings(config.settings_path)
    folder = args.path
    if not settings.remove_folder(folder):
        folder = str(Path(args.path).resolve())
        if not settings.remove_folder(folder):
            print(f"Folder not found: {args.path}")
            sys.exit(1)
    save_settings(settings, config.settings_path)
    print(f"Removed folder: {folder}")


def cmd_list_folders(args):
    """List the watched folders."""
    config = build_config(args)
    settings = load_settings(config.settings_path)
    if not settings.folders:
        print("No folders configured")
        return
    for folder in settings.folders:
        status = "ok" if Path(folder).is_dir() else "missing"
        print(f"[{status}] {folder}")


def cmd_set_api_key(args):
    """Store the Steam Web API key."""
    config = build_config(args)
    settings = load_settings(config.settings_path)
    settings.api_key = args.key
    save_settings(settings, config.settings_path)
    print("API key saved")


def cmd_settings_path(args):
    """Print the settings file location."""
    config = build_config(args)
    print(config.settings_path)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Watch emulator achievement files and notify about new unlocks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument("--data-dir", help="Directory for settings and cache")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    watch_parser = subparsers.add_parser("watch", help="Watch folders and send notifications")
    watch_parser.add_argument("--folders", nargs="+", help="Folders to watch (overrides settings)")
    watch_parser.add_argument("--api-key", help="Steam Web API key (overrides settings)")
    watch_parser.add_argument("--debounce", type=int, help="Debounce quiet period in ms")
    watch_parser.add_argument("--max-notify", type=int, help="Largest batch of unlocks to notify about")
    watch_parser.add_argument("--sort", action="store_true", help="Notify in achievement id order")

    scan_parser = subparsers.add_parser("scan", help="List existing achievement files")
    scan_parser.add_argument("--folders", nargs="+", help="Folders to scan (overrides settings)")

    add_folder_parser = subparsers.add_parser("add-folder", help="Add a folder to watch")
    add_folder_parser.add_argument("path", help="Folder path")

    remove_folder_parser = subparsers.add_parser("remove-folder", help="Stop watching a folder")
    remove_folder_parser.add_argument("path", help="Folder path")

    subparsers.add_parser("list-folders", help="List watched folders")

    set_key_parser = subparsers.add_parser("set-api-key", help="Store the Steam Web API key")
    set_key_parser.add_argument("key", help="Steam Web API key")

    subparsers.add_parser("settings-path", help="Show the settings file location")

    return parser


COMMANDS = {
    "watch": cmd_watch,
    "scan": cmd_scan,
    "add-folder": cmd_add_folder,
    "remove-folder": cmd_remove_folder,
    "list-folders": cmd_list_folders,
    "set-api-key": cmd_set_api_key,
    "settings-path": cmd_settings_path,
}


def main(argv: Optional[List[str]] = None) -> None:
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.verbose, args.log_file)

    try:
        COMMANDS[args.command](args)
    except SettingsError as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
