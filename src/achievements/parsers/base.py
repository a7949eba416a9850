"""
Base parser class and registry.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..models import Snapshot
from ..exceptions import UnsupportedFormatError

logger = logging.getLogger(__name__)


class BaseParser(ABC):
    """Abstract base class for achievement file parsers."""

    @abstractmethod
    def supported_extensions(self) -> List[str]:
        """Return list of supported file extensions (with dot, e.g., '.ini')."""
        pass

    @abstractmethod
    def parse(self, content: str) -> Snapshot:
        """
        Parse file content into a snapshot.

        Args:
            content: Decoded file content

        Returns:
            Mapping of achievement id to state

        Raises:
            MalformedContentError: If the content cannot be interpreted
        """
        pass

    def can_parse(self, format_hint: Union[str, Path]) -> bool:
        """
        Check if this parser can handle the file.

        Args:
            format_hint: File name, path or extension

        Returns:
            True if this parser can handle the file
        """
        return _extension(format_hint) in self.supported_extensions()


def _extension(format_hint: Union[str, Path]) -> str:
    path = Path(format_hint)
    # A bare extension like ".ini" has no suffix of its own.
    if not path.suffix and path.name.startswith("."):
        return path.name.lower()
    return path.suffix.lower()


class ParserRegistry:
    """Registry for achievement file parsers."""

    def __init__(self):
        self._parsers: List[BaseParser] = []
        self._extension_map: Dict[str, BaseParser] = {}

    def register(self, parser: BaseParser) -> None:
        """
        Register a parser.

        Args:
            parser: Parser instance to register
        """
        self._parsers.append(parser)
        for ext in parser.supported_extensions():
            self._extension_map[ext.lower()] = parser

    def get_parser(self, format_hint: Union[str, Path]) -> Optional[BaseParser]:
        """
        Get appropriate parser for a file.

        Args:
            format_hint: File name, path or extension

        Returns:
            Parser instance or None if no parser found
        """
        return self._extension_map.get(_extension(format_hint))

    def can_parse(self, format_hint: Union[str, Path]) -> bool:
        """Check if any parser can handle the file."""
        return self.get_parser(format_hint) is not None

    def parse(self, content: str, format_hint: Union[str, Path]) -> Snapshot:
        """
        Parse content using the parser registered for its format.

        Args:
            content: Decoded file content
            format_hint: File name, path or extension

        Returns:
            Parsed snapshot

        Raises:
            UnsupportedFormatError: If no parser handles the format
            MalformedContentError: If the content is invalid
        """
        parser = self.get_parser(format_hint)
        if parser is None:
            raise UnsupportedFormatError(
                f"Unsupported file format: {_extension(format_hint) or format_hint}"
            )
        return parser.parse(content)

    def parse_file(self, path: Path) -> Snapshot:
        """
        Read and parse an achievement file.

        Args:
            path: File to read

        Returns:
            Parsed snapshot

        Raises:
            UnsupportedFormatError: If no parser handles the format
            MalformedContentError: If the content is invalid
            OSError: If the file cannot be read
        """
        logger.debug(f"ParserRegistry.parse_file called for: {path}")
        if not self.can_parse(path):
            raise UnsupportedFormatError(f"Unsupported file format: {Path(path).suffix}")
        content = Path(path).read_text(encoding="utf-8-sig", errors="replace")
        return self.parse(content, path)

    def supported_extensions(self) -> List[str]:
        """Get all supported file extensions."""
        return list(self._extension_map.keys())

    def __len__(self) -> int:
        return len(self._parsers)
