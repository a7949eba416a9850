"""
Desktop notification backends.
"""

import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Abstract base class for notification backends."""

    @abstractmethod
    def notify(self, title: str, body: str, icon_path: Optional[Path] = None) -> bool:
        """
        Show a notification.

        Args:
            title: Notification title
            body: Notification text
            icon_path: Local image to show, if any

        Returns:
            True if the notification was shown
        """
        pass


class LogNotifier(Notifier):
    """Writes notifications to the log. Used when no desktop backend exists."""

    def notify(self, title: str, body: str, icon_path: Optional[Path] = None) -> bool:
        logger.info(f"Achievement unlocked: {title} - {body}")
        return True


class CommandNotifier(Notifier):
    """
    Shows notifications by running an external command such as
    ``notify-send``.
    """

    def __init__(
        self,
        command: str = "notify-send",
        app_name: str = "Achievement Watcher",
        timeout: float = 10.0,
    ):
        self.command = command
        self.app_name = app_name
        self.timeout = timeout

    def build_args(self, title: str, body: str, icon_path: Optional[Path] = None) -> List[str]:
        """Command line for one notification."""
        args = [self.command, "--app-name", self.app_name]
        if icon_path:
            args += ["--icon", str(icon_path)]
        # Achievement names may start with a dash.
        args += ["--", title, body]
        return args

    def notify(self, title: str, body: str, icon_path: Optional[Path] = None) -> bool:
        args = self.build_args(title, body, icon_path)
        try:
            result = subprocess.run(args, capture_output=True, text=True, timeout=self.timeout)
        except (OSError, subprocess.SubprocessError) as e:
            logger.error(f"Failed to run {self.command}: {e}")
            return False

        if result.returncode != 0:
            logger.error(
                f"{self.command} exited with {result.returncode}: {result.stderr.strip()}"
            )
            return False
        return True


def create_default_notifier() -> Notifier:
    """Use notify-send when it is installed, otherwise log notifications."""
    if shutil.which("notify-send"):
        return CommandNotifier()
    logger.info("notify-send not found, notifications will only be logged")
    return LogNotifier()
