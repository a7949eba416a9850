"""
Custom exceptions for the achievements package.
"""


class AchievementError(Exception):
    """Base exception for achievement tracking errors."""
    pass


class ParseError(AchievementError):
    """Error while parsing an achievement state file."""
    pass


class UnsupportedFormatError(ParseError):
    """File format is not supported."""
    pass


class MalformedContentError(ParseError):
    """File content could not be interpreted."""
    pass


class MetadataError(AchievementError):
    """Error fetching or reading remote achievement metadata."""
    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class AchievementNotFoundError(MetadataError):
    """Achievement is not present in the cached metadata."""
    pass


class SettingsError(AchievementError):
    """Settings could not be loaded or saved."""
    pass
