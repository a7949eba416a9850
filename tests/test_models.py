"""Tests for data models."""

from pathlib import Path

import pytest

from src.achievements.models import Achievement, AchievementInfo, ScanResult
from src.dirwatch.models import RawEventType, WatchEvent, WatchEventKind


class TestWatchEvent:
    """Tests for WatchEvent class."""

    def test_requires_absolute_path(self):
        with pytest.raises(ValueError):
            WatchEvent(WatchEventKind.ADDED, Path("relative/achievements.ini"))


class TestRawEventType:
    """Tests for RawEventType enum."""

    def test_is_write(self):
        assert RawEventType.CREATED.is_write
        assert RawEventType.MODIFIED.is_write
        assert not RawEventType.DELETED.is_write
        assert not RawEventType.MOVED.is_write


class TestAchievement:
    """Tests for Achievement class."""

    def test_display_name_defaults_to_name(self):
        assert Achievement("ACH_ONE").display_name == "ACH_ONE"

    def test_equality(self):
        assert Achievement("A", True) == Achievement("A", True)
        assert Achievement("A", True) != Achievement("A", False)


class TestAchievementInfo:
    """Tests for AchievementInfo class."""

    def test_from_api_dict(self):
        info = AchievementInfo.from_dict({
            "internal_name": "ACH_ONE",
            "localized_name": "First Win",
            "localized_desc": "Win a game",
            "icon": "https://cdn/1/a.jpg",
            "hidden": True,
            "player_percent_unlocked": "12.5",
        })

        assert info.api_name == "ACH_ONE"
        assert info.display_name == "First Win"
        assert info.description == "Win a game"
        assert info.hidden is True
        assert info.rarity == "12.5"

    def test_display_name_falls_back_to_api_name(self):
        assert AchievementInfo.from_dict({"internal_name": "ACH_ONE"}).display_name == "ACH_ONE"

    def test_to_dict_keys(self):
        data = AchievementInfo("A", "Name").to_dict()
        assert data["internal_name"] == "A"
        assert data["localized_name"] == "Name"


class TestScanResult:
    """Tests for ScanResult class."""

    def test_unlocked_count(self):
        result = ScanResult(
            app_id="1",
            path=Path("/g/1/achievements.ini"),
            snapshot={"A": Achievement("A", True), "B": Achievement("B", False)},
        )
        assert result.unlocked_count == 1
