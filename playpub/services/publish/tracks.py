"""Track assignment.

Google Play replaces a track's whole version code set on every update, so an
assignment is planned as a sequence of whole-set updates:

1. beta eviction (production only)
2. clearing the staged rollout track (production only, when it has APKs)
3. alpha eviction
4. the final assignment, to ``rollout`` instead of ``production`` when the
   fraction is below 1

Planning is a pure function of the listed track state; applying the plan is
the only part that talks to the edit.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Literal

from playpub.core.result import Err, Ok, Result
from playpub.output.console import ConsoleProtocol
from playpub.services.publish.errors import (
    InvalidOptions,
    PartialAssignment,
    PublishError,
    RolloutPercentageReduction,
)
from playpub.services.publish.model import (
    EvictionPolicy,
    ReductionPolicy,
    Track,
    TrackName,
    TrackState,
    format_percentage,
    join_codes,
)
from playpub.services.publish.session import EditSession

UpdateKind = Literal["evict", "clear_rollout", "assign"]

IGNORED_ROLLOUT_MESSAGE = "Ignoring staged rollout percentage as it only applies to production releases"


@dataclass(frozen=True, slots=True)
class TrackUpdate:
    kind: UpdateKind
    track: Track


@dataclass(frozen=True, slots=True)
class TrackPlan:
    """Ordered track updates for one assignment.

    Attributes:
        target: Track as requested by the caller (``production`` even when the
            final update goes to ``rollout``).
        pivot: Version codes below this are evicted from alpha/beta.
        updates: Whole-set updates, final assignment last.
        notes: Informational lines (clamped or ignored rollout fraction).
    """

    target: TrackName
    pivot: int
    updates: tuple[TrackUpdate, ...]
    notes: tuple[str, ...] = ()

    @property
    def final(self) -> Track:
        return self.updates[-1].track

    @property
    def applied_fraction(self) -> float | None:
        return self.final.user_fraction


def _evict(state: TrackState, name: TrackName, pivot: int) -> TrackUpdate | None:
    track = state.get(name)
    if track is None or track.is_empty:
        return None
    kept = tuple(vc for vc in track.version_codes if vc >= pivot)
    if kept == track.version_codes:
        return None
    return TrackUpdate(kind="evict", track=replace(track, version_codes=kept))


def compute_track_plan(
    state: TrackState,
    version_codes: Iterable[int],
    target: TrackName,
    fraction: float,
    eviction: EvictionPolicy,
    reduction: ReductionPolicy,
) -> Result[TrackPlan, PublishError]:
    """Plan the track updates assigning ``version_codes`` to ``target``.

    ``fraction`` is the requested rollout fraction in (0, 1]; it only matters
    for ``production``. A staged rollout already in progress at a higher
    fraction is never lowered: CLAMP keeps the existing fraction, REJECT fails
    before any update is planned.
    """
    codes = tuple(sorted(set(version_codes)))
    if not codes:
        return Err(InvalidOptions(problems=("No version codes to assign",)))
    if not 0 < fraction <= 1:
        return Err(InvalidOptions(problems=(f"Invalid rollout fraction: {fraction}",)))
    if not target.configurable:
        return Err(InvalidOptions(problems=(f"'{target}' is not a release track that can be assigned",)))

    pivot = eviction.pivot(codes)
    updates: list[TrackUpdate] = []
    notes: list[str] = []
    final = Track(name=target.api_value, version_codes=codes)

    if target is TrackName.PRODUCTION:
        beta = _evict(state, TrackName.BETA, pivot)
        if beta is not None:
            updates.append(beta)

        rollout = state.get(TrackName.ROLLOUT)
        baseline: float | None = None
        if rollout is not None and not rollout.is_empty:
            updates.append(
                TrackUpdate(kind="clear_rollout", track=Track(name=rollout.name))
            )
            baseline = rollout.user_fraction

        if fraction < 1:
            applied = fraction
            if baseline is not None and baseline > fraction:
                if reduction is ReductionPolicy.REJECT:
                    return Err(
                        RolloutPercentageReduction(
                            current_fraction=baseline, requested_fraction=fraction
                        )
                    )
                notes.append(
                    f"Staged rollout percentage will remain at {format_percentage(baseline)}% "
                    f"rather than the configured {format_percentage(fraction)}% because there "
                    "were APK(s) already in a staged rollout, and Google Play makes it "
                    "impossible to reduce the rollout percentage in this case"
                )
                applied = baseline
            final = Track(
                name=TrackName.ROLLOUT.api_value, version_codes=codes, user_fraction=applied
            )
    elif fraction < 1:
        notes.append(IGNORED_ROLLOUT_MESSAGE)

    alpha = _evict(state, TrackName.ALPHA, pivot)
    if alpha is not None:
        updates.append(alpha)

    updates.append(TrackUpdate(kind="assign", track=final))
    return Ok(TrackPlan(target=target, pivot=pivot, updates=tuple(updates), notes=tuple(notes)))


def _describe(update: TrackUpdate, target: TrackName, state: TrackState) -> str:
    track = update.track
    match update.kind:
        case "evict":
            return (
                f"Removing older APK(s) from the {track.name} release track; "
                f"remaining: {join_codes(track.version_codes) or 'none'}"
            )
        case "clear_rollout":
            previous = state.get(TrackName.ROLLOUT)
            codes = previous.version_codes if previous is not None else ()
            return f"Removing existing staged rollout APK(s): {join_codes(codes)}"
        case "assign":
            if track.user_fraction is not None:
                return (
                    "Assigning APK(s) to be rolled out to "
                    f"{format_percentage(track.user_fraction)}% of production users..."
                )
            return f"Assigning APK(s) to {target} release track..."


def assign_to_track(
    session: EditSession,
    version_codes: Iterable[int],
    target: TrackName,
    fraction: float,
    *,
    eviction: EvictionPolicy,
    reduction: ReductionPolicy,
    console: ConsoleProtocol,
) -> Result[Track, PublishError]:
    """Assign version codes to a track within the open edit.

    Lists the tracks once, plans the whole-set updates and sends them in order.
    The returned track is the one Google Play reports after the final update.
    A failure after at least one update was sent is a ``PartialAssignment``:
    the edit holds the earlier updates and must not be committed.
    """
    listed = session.list_tracks()
    if isinstance(listed, Err):
        return listed
    state = TrackState.from_tracks(listed.value)

    planned = compute_track_plan(state, version_codes, target, fraction, eviction, reduction)
    if isinstance(planned, Err):
        return planned
    plan = planned.value

    for note in plan.notes:
        console.info(note)

    applied: list[str] = []
    result_track = plan.final
    for update in plan.updates:
        console.print(_describe(update, target, state))

        sent = session.update_track(update.track)
        if isinstance(sent, Err):
            if applied:
                return Err(PartialAssignment(cause=sent.error, applied_tracks=tuple(applied)))
            return sent
        applied.append(update.track.name)
        result_track = sent.value

    console.print(
        f"The {target} release track will now contain the APK(s): "
        f"{join_codes(result_track.version_codes)}"
    )
    console.newline()
    return Ok(result_track)
