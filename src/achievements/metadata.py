"""
On-disk cache of Steam achievement metadata and icons.
"""

import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional

import httpx

from .config import MetadataConfig
from .exceptions import AchievementNotFoundError, MetadataError
from .models import AchievementInfo

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


class SteamMetadataCache:
    """
    Caches the achievement schema of each app under
    ``<cache_dir>/<app_id>/achievements.json`` and icons under
    ``<cache_dir>/<app_id>/images/``.

    Cached files are refreshed once they are older than the configured
    number of days. Fetches for one app are serialized so concurrent
    callers never write the same file at once.
    """

    def __init__(
        self,
        cache_dir: Path,
        api_key: Optional[str] = None,
        config: Optional[MetadataConfig] = None,
        client: Optional[httpx.Client] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache.

        Args:
            cache_dir: Root directory of the cache
            api_key: Steam Web API key (falls back to config / STEAM_API_KEY)
            config: Metadata configuration
            client: HTTP client to use (created on demand if omitted)
            clock: Wall clock used for staleness checks
        """
        self.cache_dir = Path(cache_dir)
        self.config = config or MetadataConfig()
        self.api_key = api_key or self.config.get_api_key() or ""
        self._client = client
        self._owns_client = client is None
        self._clock = clock
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.config.request_timeout_s)
        return self._client

    def _lock_for(self, app_id: str) -> threading.Lock:
        with self._locks_lock:
            lock = self._locks.get(app_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[app_id] = lock
            return lock

    def schema_path(self, app_id: str) -> Path:
        """Path of the cached schema file for an app."""
        return self.cache_dir / app_id / "achievements.json"

    def _is_stale(self, path: Path, max_age_days: int) -> bool:
        age = self._clock() - path.stat().st_mtime
        return age > max_age_days * SECONDS_PER_DAY

    def _icon_url(self, app_id: str, icon: str) -> str:
        if not icon or icon.startswith(("http://", "https://")):
            return icon
        return f"{self.config.cdn_base.rstrip('/')}/{app_id}/{icon}"

    @staticmethod
    def _write_atomic(path: Path, data: bytes) -> None:
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_bytes(data)
        os.replace(tmp_path, path)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def ensure_cached(self, app_id: str) -> bool:
        """
        Make sure a fresh schema for an app is on disk.

        Args:
            app_id: Steam app id

        Returns:
            True if a fresh schema is cached, False on any failure
        """
        if not self.api_key or not app_id:
            logger.warning("API key or app id is empty, cannot cache achievements")
            return False

        with self._lock_for(app_id):
            path = self.schema_path(app_id)
            try:
                if path.exists() and not self._is_stale(path, self.config.metadata_max_age_days):
                    logger.debug(f"Cache file is recent, skipping fetch for app {app_id}")
                    return True
            except OSError as e:
                logger.error(f"Error checking cache file age for app {app_id}: {e}")
                return False

            try:
                achievements = self._fetch_schema(app_id)
            except MetadataError as e:
                logger.error(f"Error caching achievements for app {app_id}: {e}")
                return False

            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                payload = {
                    "appid": app_id,
                    "achievements": [a.to_dict() for a in achievements],
                }
                self._write_atomic(path, json.dumps(payload).encode("utf-8"))
            except OSError as e:
                logger.error(f"Error writing cache file for app {app_id}: {e}")
                return False

        logger.info(f"Cached {len(achievements)} achievements for app {app_id}")
        return True

    def _fetch_schema(self, app_id: str) -> List[AchievementInfo]:
        url = f"{self.config.api_base.rstrip('/')}/IPlayerService/GetGameAchievements/v1/"
        params = {
            "language": self.config.language,
            "key": self.api_key,
            "appid": app_id,
        }
        try:
            resp = self._get_client().get(url, params=params)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise MetadataError(
                f"Steam API returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise MetadataError(f"Error fetching data from Steam API: {e}") from e
        except ValueError as e:
            raise MetadataError(f"Error decoding Steam API response: {e}") from e

        response = data.get("response") if isinstance(data, dict) else None
        if not isinstance(response, dict):
            raise MetadataError("Steam API response has no 'response' object")

        entries = response.get("achievements") or []
        if not isinstance(entries, list):
            raise MetadataError("Steam API 'achievements' field is not a list")

        achievements = []
        for entry in entries:
            if not isinstance(entry, dict):
                logger.warning(f"Skipping malformed achievement entry for app {app_id}: {entry!r}")
                continue
            info = AchievementInfo.from_dict(entry)
            info.icon = self._icon_url(app_id, info.icon)
            info.icon_gray = self._icon_url(app_id, info.icon_gray)
            achievements.append(info)
        return achievements

    def lookup(self, app_id: str, achievement_id: str) -> AchievementInfo:
        """
        Look up one achievement in the cached schema.

        Fetches the schema first if nothing is cached yet.

        Raises:
            AchievementNotFoundError: If the schema has no such achievement
            MetadataError: If the schema is unavailable or unreadable
        """
        path = self.schema_path(app_id)
        if not path.exists() and not self.ensure_cached(app_id):
            raise MetadataError(f"No cached achievements for app {app_id}")

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise MetadataError(f"Error reading cache file for app {app_id}: {e}") from e
        if not isinstance(data, dict):
            raise MetadataError(f"Cache file for app {app_id} is not a JSON object")

        for entry in data.get("achievements") or []:
            if isinstance(entry, dict) and entry.get("internal_name") == achievement_id:
                return AchievementInfo.from_dict(entry)

        raise AchievementNotFoundError(
            f"Achievement {achievement_id} not found for app {app_id}"
        )

    def get_image(self, app_id: str, image_url: str) -> Path:
        """
        Download an icon into the cache, reusing a fresh copy.

        Returns:
            Local path of the image

        Raises:
            MetadataError: If the image cannot be downloaded or stored
        """
        image_dir = self.cache_dir / app_id / "images"
        image_path = image_dir / Path(image_url.split("?", 1)[0]).name

        with self._lock_for(app_id):
            try:
                if image_path.exists() and not self._is_stale(image_path, self.config.image_max_age_days):
                    return image_path
            except OSError as e:
                raise MetadataError(f"Error checking image age {image_path}: {e}") from e

            try:
                resp = self._get_client().get(image_url)
                resp.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise MetadataError(
                    f"Failed to fetch image {image_url}: HTTP {e.response.status_code}",
                    status_code=e.response.status_code,
                ) from e
            except httpx.HTTPError as e:
                raise MetadataError(f"Failed to fetch image {image_url}: {e}") from e

            try:
                image_dir.mkdir(parents=True, exist_ok=True)
                self._write_atomic(image_path, resp.content)
            except OSError as e:
                raise MetadataError(f"Error writing image {image_path}: {e}") from e

        return image_path

    def close(self) -> None:
        """Close the HTTP client if this cache created it."""
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None
