"""Whitelist/ignore path filtering."""

import fnmatch
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence, Tuple, Union


def matches_pattern(path: Union[str, Path], pattern: str) -> bool:
    """
    Check a single pattern against a path.

    A pattern matches if it glob-matches the final path segment, or if the
    raw pattern occurs anywhere in the full path string. Patterns may
    therefore be bare file names ("achievements.ini") or path fragments.

    Args:
        path: Path to check
        pattern: Glob or path fragment

    Returns:
        True if either rule matches
    """
    if not pattern:
        return False
    path_str = str(path)
    name = Path(path_str).name
    if fnmatch.fnmatchcase(name, pattern):
        return True
    return pattern in path_str


def should_include(
    path: Union[str, Path],
    whitelist: Sequence[str],
    ignore: Sequence[str],
) -> bool:
    """
    Decide whether a path passes the whitelist and ignore patterns.

    Args:
        path: Path to check
        whitelist: If non-empty, the path must match at least one entry
        ignore: Any match excludes the path

    Returns:
        True if the path should be delivered
    """
    if whitelist and not any(matches_pattern(path, p) for p in whitelist):
        return False
    if any(matches_pattern(path, p) for p in ignore):
        return False
    return True


@dataclass(frozen=True)
class PathFilter:
    """Immutable whitelist/ignore pair usable as a predicate."""
    whitelist: Tuple[str, ...] = field(default_factory=tuple)
    ignore: Tuple[str, ...] = field(default_factory=tuple)

    def __call__(self, path: Union[str, Path]) -> bool:
        return should_include(path, self.whitelist, self.ignore)
