"""Reading APK metadata and content hashes.

Metadata (application id, version code, minimum SDK) comes from the Android
SDK's ``aapt2 dump badging`` (or the older ``aapt``), whose first lines look
like::

    package: name='com.example.app' versionCode='42' versionName='1.4.2'
    sdkVersion:'21'
"""

from __future__ import annotations

import hashlib
import os
import re
import shutil
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from playpub.core.result import Err, Ok, Result
from playpub.output.console import ConsoleProtocol
from playpub.platform.files import find_files
from playpub.platform.process import run as run_process
from playpub.services.publish.errors import (
    ArtifactParseError,
    InconsistentApplicationIds,
    NoArtifactsFound,
    PublishError,
)
from playpub.services.publish.model import ApkMetadata, LocalArtifact
from playpub.services.publish.timeouts import AAPT_TIMEOUT_SECONDS

_PACKAGE_LINE = re.compile(r"^package:\s")
_ATTRIBUTE = re.compile(r"(\w+)='([^']*)'")
_SDK_LINE = re.compile(r"^(?:sdkVersion|minSdkVersion):'([^']*)'", re.MULTILINE)

_HASH_CHUNK_SIZE = 1024 * 1024


class ArtifactReader(Protocol):
    def read(self, path: Path) -> Result[ApkMetadata, ArtifactParseError]: ...


def parse_badging(output: str) -> ApkMetadata | None:
    """Parse ``dump badging`` output; None if the package line is unusable."""
    attributes: dict[str, str] | None = None
    for line in output.splitlines():
        if _PACKAGE_LINE.match(line):
            attributes = dict(_ATTRIBUTE.findall(line))
            break
    if attributes is None:
        return None

    application_id = attributes.get("name", "").strip()
    version_code = attributes.get("versionCode", "").strip()
    if not application_id or not version_code.isdigit():
        return None

    sdk = _SDK_LINE.search(output)
    return ApkMetadata(
        application_id=application_id,
        version_code=int(version_code),
        min_sdk_version=sdk.group(1) if sdk else "1",
    )


def _version_key(path: Path) -> tuple[int, ...]:
    return tuple(int(part) if part.isdigit() else -1 for part in path.name.split("."))


def find_aapt(environ: Mapping[str, str] | None = None) -> Path | None:
    """Locate aapt2 (or aapt) on PATH, then in the newest SDK build-tools."""
    for name in ("aapt2", "aapt"):
        found = shutil.which(name)
        if found:
            return Path(found)

    env = environ if environ is not None else os.environ
    for var in ("ANDROID_HOME", "ANDROID_SDK_ROOT"):
        sdk = env.get(var)
        if not sdk:
            continue
        build_tools = Path(sdk) / "build-tools"
        if not build_tools.is_dir():
            continue
        for version_dir in sorted(build_tools.iterdir(), key=_version_key, reverse=True):
            for name in ("aapt2", "aapt"):
                candidate = version_dir / name
                if candidate.is_file():
                    return candidate
    return None


class AaptArtifactReader:
    def __init__(self, tool: Path | None = None, *, timeout: float = AAPT_TIMEOUT_SECONDS) -> None:
        self._tool = tool
        self._timeout = timeout

    def read(self, path: Path) -> Result[ApkMetadata, ArtifactParseError]:
        tool = self._tool or find_aapt()
        if tool is None:
            return Err(
                ArtifactParseError(
                    path=path,
                    reason="aapt2 not found; install Android SDK build-tools or set ANDROID_HOME",
                )
            )

        result = run_process(
            [str(tool), "dump", "badging", str(path)],
            cwd=Path.cwd(),
            timeout=self._timeout,
        )
        if isinstance(result, Err):
            reason = result.error.stderr.strip() or str(result.error)
            return Err(ArtifactParseError(path=path, reason=reason))

        metadata = parse_badging(result.value)
        if metadata is None:
            return Err(ArtifactParseError(path=path, reason="no package name or versionCode found"))
        return Ok(metadata)


def sha1_hex(path: Path) -> str:
    """SHA-1 of a file's content, lower-case hex."""
    digest = hashlib.sha1()
    with path.open("rb") as f:
        while chunk := f.read(_HASH_CHUNK_SIZE):
            digest.update(chunk)
    return digest.hexdigest()


def read_local_artifact(
    path: Path, reader: ArtifactReader, *, display_name: str = ""
) -> Result[LocalArtifact, ArtifactParseError]:
    """Metadata and hash of one APK on disk."""
    metadata = reader.read(path)
    if isinstance(metadata, Err):
        return metadata

    try:
        sha1 = sha1_hex(path)
    except OSError as e:
        return Err(ArtifactParseError(path=path, reason=f"cannot read file: {e}"))

    return Ok(
        LocalArtifact(
            path=path,
            application_id=metadata.value.application_id,
            version_code=metadata.value.version_code,
            sha1=sha1,
            min_sdk_version=metadata.value.min_sdk_version,
            display_name=display_name,
        )
    )


@dataclass(frozen=True, slots=True)
class ArtifactBatch:
    """APKs found for one upload or move, all of the same application."""

    application_id: str
    artifacts: tuple[LocalArtifact, ...]

    @property
    def version_codes(self) -> tuple[int, ...]:
        return tuple(sorted({a.version_code for a in self.artifacts}))


def collect_artifacts(
    base_dir: Path,
    pattern: str,
    *,
    reader: ArtifactReader,
    console: ConsoleProtocol,
) -> Result[ArtifactBatch, PublishError]:
    """Find the APKs matching ``pattern`` and read each one.

    All APKs must share one application id.
    """
    names = find_files(base_dir, pattern)
    if not names:
        return Err(NoArtifactsFound(pattern=pattern))

    artifacts: list[LocalArtifact] = []
    for name in names:
        read = read_local_artifact(base_dir / name, reader, display_name=name)
        if isinstance(read, Err):
            return read
        artifacts.append(read.value)
        console.print(f"Found APK file with version code {read.value.version_code}: {name}")

    application_ids = sorted({a.application_id for a in artifacts})
    if len(application_ids) != 1:
        return Err(InconsistentApplicationIds(application_ids=tuple(application_ids)))

    return Ok(ArtifactBatch(application_id=application_ids[0], artifacts=tuple(artifacts)))
