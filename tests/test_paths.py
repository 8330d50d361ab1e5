"""Tests for store path composition.

- build_path joins segments with single slashes and a leading "/"
- Empty segments are skipped; folder paths end with "/"
- ".." is removed verbatim from every composed path
"""

from __future__ import annotations

from filestore.paths import PathParts, PathType, build_path, sanitize_path


class TestBuildPath:
    """Tests for build_path()."""

    def test_joins_segments_with_single_slashes(self) -> None:
        """Leading, trailing and doubled slashes inside segments are normalised."""
        assert build_path(["/data/", "runs//a", "b.txt"]) == "/data/runs/a/b.txt"

    def test_file_path_has_no_trailing_slash(self) -> None:
        """File-style paths do not end with a slash."""
        assert build_path(["a", "b"], PathType.FILE) == "/a/b"

    def test_folder_path_has_trailing_slash(self) -> None:
        """Folder-style paths end with exactly one slash."""
        assert build_path(["a", "b/"], PathType.FOLDER) == "/a/b/"

    def test_empty_segments_are_skipped(self) -> None:
        """Segments reducing to empty contribute nothing."""
        assert build_path(["a", "", "/", "b"]) == "/a/b"

    def test_no_segments(self) -> None:
        """No segments produce an empty file path and a bare folder path."""
        assert build_path([]) == ""
        assert build_path([], PathType.FOLDER) == "/"

    def test_dot_dot_is_removed(self) -> None:
        """Parent references are stripped from the result."""
        result = build_path(["a", "..", "b"])
        assert ".." not in result
        assert result == "/a//b"

    def test_default_is_file(self) -> None:
        """Without a path type the result is file-style."""
        assert build_path(["x"]) == "/x"


class TestSanitizePath:
    """Tests for sanitize_path()."""

    def test_removes_every_occurrence(self) -> None:
        """Every ".." is dropped, nothing is resolved."""
        assert sanitize_path("/a/../b/../../c") == "/a//b///c"

    def test_single_dots_kept(self) -> None:
        """Single dots are not parent references."""
        assert sanitize_path("/a/./b.txt") == "/a/./b.txt"

    def test_triple_dot(self) -> None:
        """Three dots lose the first pair only."""
        assert sanitize_path("...") == "."


class TestPathParts:
    """Tests for PathParts."""

    def test_to_path_is_folder_style(self) -> None:
        """to_path renders base plus extra parts with a trailing slash."""
        base = PathParts(["/data", "project"])
        assert base.to_path("runs") == "/data/project/runs/"

    def test_to_file_path(self) -> None:
        """to_file_path renders without a trailing slash."""
        base = PathParts(["data"])
        assert base.to_file_path("model", "out.csv") == "/data/model/out.csv"

    def test_base_is_reusable(self) -> None:
        """Rendering does not mutate the base parts."""
        base = PathParts(["root"])
        base.to_path("a")
        base.to_file_path("b")
        assert base.parts == ["root"]
