"""Custom exceptions for the directory watcher package."""


class WatcherError(Exception):
    """Base exception for all watcher errors."""
    pass


class WatchSourceError(WatcherError):
    """The underlying OS notification primitive could not be created or scheduled."""
    pass


class RootError(WatcherError):
    """Error related to watched root directories."""
    pass


class RootNotFoundError(RootError):
    """Specified root directory does not exist."""
    pass


class WatcherClosedError(WatcherError):
    """Watcher has already been closed."""
    pass


class WatcherAlreadyRunningError(WatcherError):
    """Watcher dispatch loop is already running."""
    pass
