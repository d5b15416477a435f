"""Tests for path normalization (utils/paths.py)."""

from __future__ import annotations

from pathlib import Path

import pytest

from prcov.utils.paths import normalize_path, relativize_path

# ── normalize_path ───────────────────────────────────────────────


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("src/a.js", "src/a.js"),
        ("./src/a.js", "src/a.js"),
        ("././src/a.js", "src/a.js"),
        ("src\\lib\\a.js", "src/lib/a.js"),
        (".\\src\\a.js", "src/a.js"),
        ("src/./a.js", "src/./a.js"),
    ],
)
def test_normalize_path(raw: str, expected: str) -> None:
    assert normalize_path(raw) == expected


def test_normalize_path_same_key_with_and_without_dot_prefix() -> None:
    assert normalize_path("./src/a.js") == normalize_path("src/a.js")


def test_normalize_path_is_idempotent() -> None:
    once = normalize_path("./src\\a.js")
    assert normalize_path(once) == once


# ── relativize_path ──────────────────────────────────────────────


class TestRelativizePath:
    def test_strips_root_prefix(self) -> None:
        assert relativize_path("/home/ci/repo/src/a.js", "/home/ci/repo") == "src/a.js"

    def test_root_with_trailing_slash(self) -> None:
        assert relativize_path("/home/ci/repo/src/a.js", "/home/ci/repo/") == "src/a.js"

    def test_relative_path_untouched(self) -> None:
        assert relativize_path("src/a.js", "/home/ci/repo") == "src/a.js"

    def test_leading_separator_removed_outside_root(self) -> None:
        assert relativize_path("/other/place/a.js", "/home/ci/repo") == "other/place/a.js"

    def test_root_is_not_a_partial_directory_match(self) -> None:
        assert relativize_path("/home/ci/repo2/a.js", "/home/ci/repo") == "home/ci/repo2/a.js"

    def test_dot_prefix_normalized(self) -> None:
        assert relativize_path("./src/a.js", "/home/ci/repo") == "src/a.js"

    def test_windows_separators(self) -> None:
        assert relativize_path("C:\\work\\repo\\src\\a.js", "C:\\work\\repo") == "src/a.js"

    def test_defaults_to_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        absolute = str(Path.cwd() / "lib" / "b.ts")
        assert relativize_path(absolute) == "lib/b.ts"

    def test_accepts_path_root(self) -> None:
        assert relativize_path("/srv/app/x.js", Path("/srv/app")) == "x.js"
