"""Thread-safe registry of watched directory trees."""

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Optional, Set


@dataclass
class WatchedTree:
    """
    A root directory plus every directory registered beneath it.

    Directories are only ever added. Removed directories stay registered.
    """
    root: Path
    directories: Set[Path] = field(default_factory=set)

    def __contains__(self, path: Path) -> bool:
        return path in self.directories

    def __len__(self) -> int:
        return len(self.directories)


class TreeRegistry:
    """
    Thread-safe management of watched trees.

    Provides methods to add roots and directories and to query which
    root a given path belongs to.
    """

    def __init__(self):
        """Initialize the registry."""
        self._trees: Dict[Path, WatchedTree] = {}
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        """Lock shared by explicit root registration and auto-registration."""
        return self._lock

    def add_root(self, root: Path) -> WatchedTree:
        """
        Get or create the tree for a root directory.

        Args:
            root: Absolute path to the root

        Returns:
            The tree for this root
        """
        with self._lock:
            tree = self._trees.get(root)
            if tree is None:
                tree = WatchedTree(root=root)
                self._trees[root] = tree
            return tree

    def register_directory(self, directory: Path) -> bool:
        """
        Record a directory seen beneath a watched root.

        The directory is attached to the tree of its innermost root. A
        directory outside every root becomes its own root.

        Args:
            directory: Absolute directory path

        Returns:
            True if the directory was not registered before
        """
        with self._lock:
            if self.is_registered(directory):
                return False
            root = self.find_root_for_path(directory)
            tree = self._trees[root] if root is not None else self.add_root(directory)
            tree.directories.add(directory)
            return True

    def is_registered(self, directory: Path) -> bool:
        """
        Check whether a directory is registered in any tree.

        Args:
            directory: Directory to check

        Returns:
            True if the directory is registered
        """
        with self._lock:
            return any(directory in tree for tree in self._trees.values())

    def find_root_for_path(self, path: Path) -> Optional[Path]:
        """
        Find the innermost root that contains the given path.

        Args:
            path: Path to check

        Returns:
            The root path that contains this path, or None
        """
        best: Optional[Path] = None
        with self._lock:
            for root in self._trees:
                try:
                    path.relative_to(root)
                except ValueError:
                    continue
                if best is None or len(root.parts) > len(best.parts):
                    best = root
        return best

    def get_roots(self) -> FrozenSet[Path]:
        """
        Get the current set of roots.

        Returns:
            Frozen set of root paths
        """
        with self._lock:
            return frozenset(self._trees)

    def directory_count(self) -> int:
        """Total number of registered directories across all trees."""
        with self._lock:
            return sum(len(tree) for tree in self._trees.values())

    def clear(self) -> int:
        """
        Remove all trees.

        Returns:
            Number of trees removed
        """
        with self._lock:
            count = len(self._trees)
            self._trees.clear()
            return count

    def __len__(self) -> int:
        """Return the number of roots."""
        with self._lock:
            return len(self._trees)

    def __contains__(self, root: Path) -> bool:
        """Check if a path is a registered root."""
        with self._lock:
            return root in self._trees
