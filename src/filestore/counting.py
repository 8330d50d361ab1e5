"""Count entries under a store path."""

from __future__ import annotations

import re

from filestore.errors import ConfigurationError
from filestore.file_store import FileStore
from filestore.models import FileInfo, PathConfig, WalkInput


def count_objects(store: FileStore, path: PathConfig, pattern: str | None = None) -> int:
    """Walk a store from path and count what the walk visits.

    Args:
        store: Store to walk.
        path: Starting path.
        pattern: Optional regular expression; only visited paths containing
            a match are counted.

    Returns:
        Number of counted entries.

    Raises:
        ConfigurationError: If pattern is not a valid regular expression.
        FileStoreError: If the walk fails.
    """
    matcher: re.Pattern[str] | None = None
    if pattern:
        try:
            matcher = re.compile(pattern)
        except re.error as e:
            raise ConfigurationError(f"Failed to compile file search pattern: {e}", cause=e) from e

    count = 0

    def visit(visited: str, info: FileInfo) -> None:
        nonlocal count
        if matcher is None or matcher.search(visited):
            count += 1

    store.walk(WalkInput(path=path), visit)
    return count
