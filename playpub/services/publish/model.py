from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class TrackName(Enum):
    """Release tracks to which APKs can be assigned.

    ``ROLLOUT`` is how Google Play represents a production release that only
    reaches a fraction of users; it cannot be chosen in configuration.
    """

    ALPHA = "alpha"
    BETA = "beta"
    PRODUCTION = "production"
    ROLLOUT = "rollout"

    @property
    def api_value(self) -> str:
        return self.value

    @property
    def configurable(self) -> bool:
        return self is not TrackName.ROLLOUT

    @classmethod
    def config_values(cls) -> list[str]:
        return [t.api_value for t in cls if t.configurable]

    @classmethod
    def from_config_value(cls, name: str | None) -> TrackName | None:
        if name is None:
            return None
        wanted = name.strip().lower()
        for t in cls:
            if t.configurable and t.api_value == wanted:
                return t
        return None

    def __str__(self) -> str:
        return self.api_value


class ExpansionFileType(Enum):
    MAIN = "main"
    PATCH = "patch"

    @property
    def api_value(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


class EvictionPolicy(Enum):
    """How the eviction pivot is derived from the version codes being assigned.

    UPLOAD: pivot = lowest assigned version code; only strictly older APKs are
        removed from lower tracks, so every APK of a fresh upload stays usable.
    DIRECT: pivot = highest assigned version code + 1; moving existing APKs
        clears them, and everything older, out of the lower tracks.
    """

    UPLOAD = "upload"
    DIRECT = "direct"

    def pivot(self, version_codes: Iterable[int]) -> int:
        codes = sorted(set(version_codes))
        if not codes:
            raise ValueError("at least one version code is required")
        if self is EvictionPolicy.UPLOAD:
            return codes[0]
        return codes[-1] + 1


class ReductionPolicy(Enum):
    """What to do when a staged rollout would be lowered.

    CLAMP: keep the existing (higher) fraction and report it.
    REJECT: fail the assignment without changing anything.
    """

    CLAMP = "clamp"
    REJECT = "reject"


@dataclass(frozen=True, slots=True)
class Edit:
    id: str
    application_id: str


@dataclass(frozen=True, slots=True)
class RemoteArtifact:
    """An APK already known to Google Play for the application."""

    version_code: int
    sha1: str


@dataclass(frozen=True, slots=True)
class ApkMetadata:
    application_id: str
    version_code: int
    min_sdk_version: str


@dataclass(frozen=True, slots=True)
class LocalArtifact:
    """An APK on disk, with the metadata and hash read from it."""

    path: Path
    application_id: str
    version_code: int
    sha1: str
    min_sdk_version: str
    display_name: str = ""

    @property
    def name(self) -> str:
        return self.display_name or self.path.name


@dataclass(frozen=True, slots=True)
class Track:
    """Whole-set view of one track: the API replaces, it never patches."""

    name: str
    version_codes: tuple[int, ...] = ()
    user_fraction: float | None = None

    @property
    def is_empty(self) -> bool:
        return not self.version_codes


@dataclass(frozen=True, slots=True)
class TrackState:
    """Tracks as listed within one edit, keyed by API track name."""

    tracks: Mapping[str, Track]

    @classmethod
    def from_tracks(cls, tracks: Iterable[Track]) -> TrackState:
        return cls(tracks={t.name: t for t in tracks})

    def get(self, name: TrackName) -> Track | None:
        return self.tracks.get(name.api_value)


@dataclass(frozen=True, slots=True)
class ExpansionFileInfo:
    """Expansion file attached to one (version code, type) pair.

    A directly uploaded file has ``file_size > 0``; an inherited one has
    ``references_version > 0`` pointing at the APK that owns the real file.
    """

    file_size: int | None = None
    references_version: int | None = None

    @property
    def is_upload(self) -> bool:
        return self.file_size is not None and self.file_size > 0

    @property
    def is_reference(self) -> bool:
        return self.references_version is not None and self.references_version > 0


@dataclass(frozen=True, slots=True)
class ExpansionFileSet:
    main: Path | None = None
    patch: Path | None = None

    def get(self, file_type: ExpansionFileType) -> Path | None:
        if file_type is ExpansionFileType.MAIN:
            return self.main
        return self.patch


def format_percentage(fraction: float) -> str:
    """Render a rollout fraction as a percentage with at most one decimal.

    ``0.005`` becomes ``"0.5"``, ``0.5`` becomes ``"50"``.
    """
    pct = round(fraction * 100, 1)
    if pct == int(pct):
        return str(int(pct))
    return f"{pct:.1f}"


def join_codes(codes: Iterable[int]) -> str:
    return ", ".join(str(c) for c in codes)
