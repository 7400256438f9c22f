"""Expansion files (OBBs) for newly uploaded APKs.

Each APK may carry one ``main`` and one ``patch`` expansion file. A new APK
either gets a freshly uploaded file, or (when inheritance is enabled) a
reference to the newest earlier APK that owns a real file of that type.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path

from playpub.core.result import Err, Ok, Result
from playpub.output.console import ConsoleProtocol
from playpub.services.publish.errors import (
    InvalidOptions,
    MissingMainExpansionFile,
    PublishError,
)
from playpub.services.publish.model import (
    ExpansionFileInfo,
    ExpansionFileSet,
    ExpansionFileType,
)
from playpub.services.publish.registrar import ArtifactIndex
from playpub.services.publish.session import EditSession

# main.<versionCode>.<applicationId>.obb
OBB_FILE_REGEX = re.compile(r"^(main|patch)\.([0-9]+)\.([._a-z0-9]+)\.obb$", re.IGNORECASE)


def find_expansion_files(paths: Iterable[Path]) -> Result[dict[int, ExpansionFileSet], InvalidOptions]:
    """Group expansion files by the version code in their file name.

    Files not following the ``main|patch.<versionCode>.<applicationId>.obb``
    convention are ignored.
    """
    found: dict[int, dict[ExpansionFileType, Path]] = {}
    problems: list[str] = []
    for path in sorted(paths):
        match = OBB_FILE_REGEX.match(path.name)
        if match is None:
            continue
        file_type = ExpansionFileType(match.group(1).lower())
        version_code = int(match.group(2))
        slot = found.setdefault(version_code, {})
        if file_type in slot:
            problems.append(
                f"Multiple {file_type} expansion files for versionCode {version_code}: "
                f"{slot[file_type].name}, {path.name}"
            )
            continue
        slot[file_type] = path

    if problems:
        return Err(InvalidOptions(problems=tuple(problems)))

    return Ok(
        {
            vc: ExpansionFileSet(
                main=slot.get(ExpansionFileType.MAIN),
                patch=slot.get(ExpansionFileType.PATCH),
            )
            for vc, slot in found.items()
        }
    )


class LatestExpansionFileLookup:
    """Finds the newest existing APK owning a real expansion file of a type.

    Candidates are the APKs listed at the start of the task, newest first.
    An APK whose file is itself a reference resolves directly to the APK it
    references; references are never chained further. Lookups are cached for
    the lifetime of the task.
    """

    def __init__(self, session: EditSession, index: ArtifactIndex) -> None:
        self._session = session
        self._index = index
        self._infos: dict[tuple[int, ExpansionFileType], ExpansionFileInfo | None] = {}

    def _info(
        self, version_code: int, file_type: ExpansionFileType
    ) -> Result[ExpansionFileInfo | None, PublishError]:
        key = (version_code, file_type)
        if key not in self._infos:
            result = self._session.get_expansion_file(version_code, file_type)
            if isinstance(result, Err):
                return result
            self._infos[key] = result.value
        return Ok(self._infos[key])

    def find(
        self, file_type: ExpansionFileType, *, exclude: int | None = None
    ) -> Result[int | None, PublishError]:
        codes = self._index.version_codes()
        if isinstance(codes, Err):
            return codes

        for version_code in sorted(codes.value, reverse=True):
            if version_code == exclude:
                continue
            info = self._info(version_code, file_type)
            if isinstance(info, Err):
                return info
            if info.value is None:
                continue
            if info.value.is_upload:
                return Ok(version_code)
            if info.value.is_reference and info.value.references_version != exclude:
                return Ok(info.value.references_version)
        return Ok(None)


def _check_patch_has_main(
    version_codes: Sequence[int],
    files: Mapping[int, ExpansionFileSet],
    inherit_if_missing: bool,
) -> MissingMainExpansionFile | None:
    if inherit_if_missing:
        return None
    orphans = tuple(
        vc
        for vc in version_codes
        if (fs := files.get(vc)) is not None and fs.patch is not None and fs.main is None
    )
    if orphans:
        return MissingMainExpansionFile(version_codes=orphans)
    return None


def _apply_expansion_file(
    *,
    session: EditSession,
    lookup: LatestExpansionFileLookup,
    version_code: int,
    file_type: ExpansionFileType,
    path: Path | None,
    inherit_if_missing: bool,
    console: ConsoleProtocol,
) -> Result[None, PublishError]:
    if path is not None:
        console.print(f"- Uploading new {file_type} expansion file: {path.name}")
        return session.upload_expansion_file(version_code, file_type, path)

    if not inherit_if_missing:
        console.print(f"- No {file_type} expansion file to apply")
        return Ok(None)

    latest = lookup.find(file_type, exclude=version_code)
    if isinstance(latest, Err):
        return latest
    if latest.value is None:
        console.info(
            f"No {file_type} expansion file to apply, and no existing APK with a "
            f"{file_type} expansion file was found"
        )
        return Ok(None)

    console.print(f"- Applying {file_type} expansion file from previous APK: {latest.value}")
    return session.set_expansion_file_reference(version_code, file_type, latest.value)


def associate_expansion_files(
    *,
    session: EditSession,
    lookup: LatestExpansionFileLookup,
    version_codes: Sequence[int],
    files: Mapping[int, ExpansionFileSet],
    inherit_if_missing: bool,
    console: ConsoleProtocol,
) -> Result[None, PublishError]:
    """Attach main/patch expansion files to each newly uploaded version code.

    A patch file without a main file (and without inheritance) fails the whole
    batch before any expansion file is uploaded: Google Play requires a main
    file alongside any patch file.
    """
    orphan = _check_patch_has_main(version_codes, files, inherit_if_missing)
    if orphan is not None:
        return Err(orphan)

    for version_code in version_codes:
        file_set = files.get(version_code, ExpansionFileSet())
        console.print(f"Handling expansion files for versionCode {version_code}")
        for file_type in (ExpansionFileType.MAIN, ExpansionFileType.PATCH):
            applied = _apply_expansion_file(
                session=session,
                lookup=lookup,
                version_code=version_code,
                file_type=file_type,
                path=file_set.get(file_type),
                inherit_if_missing=inherit_if_missing,
                console=console,
            )
            if isinstance(applied, Err):
                return applied
        console.newline()

    return Ok(None)
