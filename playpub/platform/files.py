"""Locate files in a build output directory."""

from __future__ import annotations

from pathlib import Path

__all__ = ["find_files"]


def _split_glob(base_dir: Path, glob: str) -> tuple[Path, str]:
    anchor = Path(glob).anchor
    if not anchor:
        return base_dir, glob
    return Path(anchor), glob[len(anchor) :]


def _display_path(base_dir: Path, path: Path) -> str:
    for base in (base_dir, base_dir.absolute()):
        if path.is_relative_to(base):
            return path.relative_to(base).as_posix()
    return path.as_posix()


def find_files(base_dir: Path, pattern: str) -> list[str]:
    """Return files matching an Ant-style pattern.

    ``pattern`` may hold several comma-separated globs
    (``"app/build/**/*.apk, extra/*.apk"``); ``**`` matches any number of
    directories. Relative globs are searched under ``base_dir``; absolute
    ones from their own root. Results are POSIX paths, relative to
    ``base_dir`` when they lie inside it and absolute otherwise, sorted and
    de-duplicated. A missing ``base_dir`` yields nothing for relative globs.
    """
    found: set[str] = set()
    for part in pattern.split(","):
        glob = part.strip().replace("\\", "/")
        if not glob:
            continue
        root, relative = _split_glob(base_dir, glob)
        if not relative or not root.is_dir():
            continue
        for path in root.glob(relative):
            if path.is_file():
                found.add(_display_path(base_dir, path))

    return sorted(found)
