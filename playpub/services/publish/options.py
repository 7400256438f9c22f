"""Validation of user-supplied publishing options.

Problems are accumulated and reported together, so a user fixes everything
in one go instead of one error per run.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from playpub.core.result import Err, Ok, Result
from playpub.services.publish.errors import InvalidOptions
from playpub.services.publish.model import TrackName, format_percentage

# Staged rollout percentages Google Play accepts for production.
ROLLOUT_PERCENTAGES: tuple[float, ...] = (0.5, 1, 5, 10, 20, 50, 100)
DEFAULT_PERCENTAGE = 100.0

_VERSION_CODE_SEPARATOR = re.compile(r"[,\s]+")


def parse_percentage(value: str | None) -> float:
    """Parse "50", "50%" or "0.5"; blank or non-numeric means 100."""
    if value is None:
        return DEFAULT_PERCENTAGE
    text = value.replace("%", "").strip()
    if not text:
        return DEFAULT_PERCENTAGE
    try:
        return float(text)
    except ValueError:
        return DEFAULT_PERCENTAGE


def parse_version_codes(value: str | None) -> tuple[int, ...]:
    """Split on commas/whitespace; entries that are not integers are dropped."""
    if not value:
        return ()
    codes: set[int] = set()
    for part in _VERSION_CODE_SEPARATOR.split(value.strip()):
        try:
            code = int(part)
        except ValueError:
            continue
        if code >= 0:
            codes.add(code)
    return tuple(sorted(codes))


@dataclass(frozen=True, slots=True)
class TrackOptions:
    track: TrackName
    rollout_percentage: float = DEFAULT_PERCENTAGE

    @property
    def rollout_fraction(self) -> float:
        return self.rollout_percentage / 100


@dataclass(frozen=True, slots=True)
class MoveOptions:
    """Options of a direct track move.

    Exactly one source is set: ``application_id`` with ``version_codes``, or
    ``apk_pattern`` (application id and version codes are then read from the
    matching APK files).
    """

    target: TrackOptions
    application_id: str | None = None
    version_codes: tuple[int, ...] = ()
    apk_pattern: str | None = None


def _check_track(
    track_name: str | None, rollout_percentage: str | None, problems: list[str]
) -> TrackOptions | None:
    name = (track_name or "").strip()
    if not name:
        problems.append("Release track was not specified")
        return None

    track = TrackName.from_config_value(name)
    if track is None:
        problems.append(f"'{name}' is not a valid release track")
        return None

    pct = parse_percentage(rollout_percentage)
    if track is TrackName.PRODUCTION:
        if pct not in ROLLOUT_PERCENTAGES:
            problems.append(f"{format_percentage(pct / 100)}% is not a valid rollout percentage")
            return None
    elif not 0 < pct <= 100:
        problems.append(f"{format_percentage(pct / 100)}% is not a valid rollout percentage")
        return None

    return TrackOptions(track=track, rollout_percentage=pct)


def validate_upload_options(
    *,
    pattern: str | None,
    track_name: str | None,
    rollout_percentage: str | None,
) -> Result[TrackOptions, InvalidOptions]:
    problems: list[str] = []
    if not (pattern or "").strip():
        problems.append("Path or pattern to APK file was not specified")
    target = _check_track(track_name, rollout_percentage, problems)

    if problems or target is None:
        return Err(InvalidOptions(problems=tuple(problems)))
    return Ok(target)


def validate_move_options(
    *,
    track_name: str | None,
    rollout_percentage: str | None,
    application_id: str | None,
    version_codes: str | None,
    apk_pattern: str | None,
) -> Result[MoveOptions, InvalidOptions]:
    problems: list[str] = []
    app_id = (application_id or "").strip() or None
    pattern = (apk_pattern or "").strip() or None
    codes = parse_version_codes(version_codes)
    from_version_codes = app_id is not None or bool((version_codes or "").strip())

    if from_version_codes and pattern is not None:
        problems.append("Specify either an APK pattern or an application ID with version codes, not both")
    elif from_version_codes:
        if app_id is None:
            problems.append("No application ID was specified")
        if not codes:
            problems.append("No version codes were specified")
    elif pattern is None:
        problems.append("Path or pattern to APK file(s) was not specified")

    target = _check_track(track_name, rollout_percentage, problems)

    if problems or target is None:
        return Err(InvalidOptions(problems=tuple(problems)))
    if pattern is not None:
        return Ok(MoveOptions(target=target, apk_pattern=pattern))
    return Ok(MoveOptions(target=target, application_id=app_id, version_codes=codes))
