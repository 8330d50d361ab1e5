"""Path composition helpers.

Builds slash-separated store paths from ordered segments. Every composed
path is passed through sanitize_path(), which removes the two-character
sequence ".." verbatim. This is a sanitizer, not a canonicaliser: nothing
is resolved, the characters are simply dropped.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum


class PathType(Enum):
    """Rendering style for a composed path."""

    FILE = "file"
    FOLDER = "folder"


def sanitize_path(path: str) -> str:
    """Remove every occurrence of ".." from a path."""
    return path.replace("..", "")


def build_path(segments: Iterable[str], path_type: PathType = PathType.FILE) -> str:
    """Join segments into an absolute slash-separated path.

    Each segment has embedded "//" collapsed and leading/trailing slashes
    stripped; segments that reduce to empty are skipped. Folder-style paths
    get a trailing "/".

    Example:
        >>> build_path(["/data/", "runs//a", "b.txt"])
        '/data/runs/a/b.txt'
        >>> build_path(["data", ""], PathType.FOLDER)
        '/data/'
    """
    out: list[str] = []
    for segment in segments:
        part = segment.replace("//", "/").strip("/")
        if part:
            out.append("/" + part)
    if path_type is PathType.FOLDER:
        out.append("/")
    return sanitize_path("".join(out))


@dataclass
class PathParts:
    """A reusable base path expressed as segments."""

    parts: list[str] = field(default_factory=list)

    def to_path(self, *additional_parts: str) -> str:
        """Render base + additional parts as a folder path (trailing slash)."""
        return build_path([*self.parts, *additional_parts], PathType.FOLDER)

    def to_file_path(self, *additional_parts: str) -> str:
        """Render base + additional parts as a file path."""
        return build_path([*self.parts, *additional_parts], PathType.FILE)
