"""Tests for playpub.platform.files module."""

from __future__ import annotations

from pathlib import Path

from playpub.platform.files import find_files


def _touch(base: Path, relative: str) -> None:
    path = base / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x")


class TestFindFiles:
    def test_recursive_glob(self, tmp_path: Path) -> None:
        _touch(tmp_path, "app/build/outputs/apk/app-release.apk")
        _touch(tmp_path, "lib/build/outputs/apk/lib-release.apk")
        _touch(tmp_path, "app/build/outputs/mapping.txt")

        found = find_files(tmp_path, "**/*-release.apk")

        assert found == [
            "app/build/outputs/apk/app-release.apk",
            "lib/build/outputs/apk/lib-release.apk",
        ]

    def test_comma_separated_patterns_are_deduplicated(self, tmp_path: Path) -> None:
        _touch(tmp_path, "a.apk")
        _touch(tmp_path, "sub/b.apk")

        found = find_files(tmp_path, "*.apk, **/*.apk ,")

        assert found == ["a.apk", "sub/b.apk"]

    def test_plain_file_name(self, tmp_path: Path) -> None:
        _touch(tmp_path, "app.apk")
        assert find_files(tmp_path, "app.apk") == ["app.apk"]

    def test_directories_are_skipped(self, tmp_path: Path) -> None:
        (tmp_path / "dir.apk").mkdir()
        assert find_files(tmp_path, "*.apk") == []

    def test_missing_base_dir(self, tmp_path: Path) -> None:
        assert find_files(tmp_path / "missing", "**/*.apk") == []

    def test_absolute_file_outside_base_dir(self, tmp_path: Path) -> None:
        _touch(tmp_path, "dist/app.apk")
        (tmp_path / "work").mkdir()
        absolute = (tmp_path / "dist" / "app.apk").as_posix()

        assert find_files(tmp_path / "work", absolute) == [absolute]

    def test_absolute_glob_inside_base_dir_is_relative(self, tmp_path: Path) -> None:
        _touch(tmp_path, "out/a.apk")
        _touch(tmp_path, "out/sub/b.apk")

        found = find_files(tmp_path, f"{tmp_path.as_posix()}/out/**/*.apk")

        assert found == ["out/a.apk", "out/sub/b.apk"]

    def test_absolute_glob_ignores_missing_base_dir(self, tmp_path: Path) -> None:
        _touch(tmp_path, "app.apk")
        absolute = (tmp_path / "app.apk").as_posix()

        assert find_files(tmp_path / "missing", f"*.apk, {absolute}") == [absolute]

    def test_no_match(self, tmp_path: Path) -> None:
        _touch(tmp_path, "app.aab")
        assert find_files(tmp_path, "*.apk") == []
