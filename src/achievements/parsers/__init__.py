"""
Achievement file parsers.
"""

from .base import BaseParser, ParserRegistry
from .ini import IniParser
from .json_file import JsonParser

__all__ = [
    "BaseParser",
    "ParserRegistry",
    "IniParser",
    "JsonParser",
    "create_default_registry",
]


def create_default_registry() -> ParserRegistry:
    """Create a parser registry with all default parsers."""
    registry = ParserRegistry()
    registry.register(IniParser())
    registry.register(JsonParser())
    return registry
