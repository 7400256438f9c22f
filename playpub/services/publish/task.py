"""Publishing tasks.

Two entry points share the same core:

- :func:`upload_artifacts`: upload new APKs (and expansion files), assign them
  to a track, commit. Evicts only APKs older than the oldest new one and keeps
  an in-flight staged rollout at its higher fraction.
- :func:`move_to_track`: assign APKs already on Google Play to another track,
  commit. Evicts the moved APKs and everything older from lower tracks and
  refuses to lower an in-flight staged rollout.

Each task opens one edit, never commits a failed edit, and writes a
line-oriented account of what it does to the console.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from playpub.core.result import Err, Ok, Result
from playpub.output.console import ConsoleProtocol
from playpub.services.publish.backend import PublisherBackend
from playpub.services.publish.errors import (
    CommitTimeout,
    Interrupted,
    InvalidOptions,
    MissingVersionCodes,
    PublishError,
)
from playpub.services.publish.expansion import (
    LatestExpansionFileLookup,
    associate_expansion_files,
)
from playpub.services.publish.model import (
    EvictionPolicy,
    ExpansionFileSet,
    LocalArtifact,
    ReductionPolicy,
    Track,
    TrackName,
    format_percentage,
    join_codes,
)
from playpub.services.publish.reconcile import reconcile_commit
from playpub.services.publish.registrar import ArtifactIndex, register_artifacts
from playpub.services.publish.session import EditSession
from playpub.services.publish.tracks import assign_to_track


@dataclass(frozen=True, slots=True)
class UploadRequest:
    application_id: str
    artifacts: tuple[LocalArtifact, ...]
    track: TrackName
    rollout_fraction: float = 1.0
    expansion_files: Mapping[int, ExpansionFileSet] = field(default_factory=dict)
    inherit_expansion_files: bool = False
    credential_name: str | None = None


@dataclass(frozen=True, slots=True)
class MoveRequest:
    application_id: str
    version_codes: tuple[int, ...]
    track: TrackName
    rollout_fraction: float = 1.0
    credential_name: str | None = None


@dataclass(frozen=True, slots=True)
class PublishOutcome:
    """What a successful task left on Google Play.

    Attributes:
        application_id: Application the edit was committed for.
        track: API name of the track last written (``rollout`` for a staged
            production release).
        version_codes: Version codes of that track, as reported by Google Play.
        user_fraction: Applied rollout fraction, None outside a staged rollout.
        confirmed_by_reconciliation: True when the commit timed out and the
            changes were found afterwards.
    """

    application_id: str
    track: str
    version_codes: tuple[int, ...]
    user_fraction: float | None = None
    confirmed_by_reconciliation: bool = False


@dataclass
class _Progress:
    stage: str = "edits.insert"
    pending_commit: CommitTimeout | None = None

    def interrupted(self) -> PublishError:
        if self.pending_commit is not None:
            return self.pending_commit
        return Interrupted(stage=self.stage)


def _authenticate(
    backend: PublisherBackend,
    application_id: str,
    credential_name: str | None,
    *,
    console: ConsoleProtocol,
    cancel: threading.Event | None,
) -> Result[EditSession, PublishError]:
    console.header("Authenticating to Google Play API...")
    if credential_name:
        console.print(f"- Credential:     {credential_name}")
    console.print(f"- Application ID: {application_id}")
    console.newline()
    return EditSession.open(backend, application_id, cancel=cancel)


def _commit(
    backend: PublisherBackend,
    session: EditSession,
    assigned: Track,
    expected_version_codes: tuple[int, ...],
    *,
    track_mode: bool,
    progress: _Progress,
    console: ConsoleProtocol,
    cancel: threading.Event | None,
) -> Result[PublishOutcome, PublishError]:
    progress.stage = "edits.commit"
    console.print("Applying changes to Google Play...")
    expected_track = assigned.name if track_mode else None
    progress.pending_commit = CommitTimeout(
        application_id=session.application_id,
        expected_version_codes=tuple(sorted(set(expected_version_codes))),
        expected_track=expected_track,
        resolution="unresolved",
        detail="interrupted while applying changes",
    )
    committed = session.commit(expected_version_codes, expected_track=expected_track)

    confirmed = False
    if isinstance(committed, Err):
        error = committed.error
        if not isinstance(error, CommitTimeout):
            return committed
        reconciled = reconcile_commit(backend, error, console=console, cancel=cancel)
        if isinstance(reconciled, Err):
            if isinstance(reconciled.error, Interrupted):
                return Err(replace(error, resolution="unresolved"))
            return reconciled
        confirmed = True

    console.success("Changes were successfully applied to Google Play")
    return Ok(
        PublishOutcome(
            application_id=session.application_id,
            track=assigned.name,
            version_codes=assigned.version_codes,
            user_fraction=assigned.user_fraction,
            confirmed_by_reconciliation=confirmed,
        )
    )


def _upload(
    backend: PublisherBackend,
    request: UploadRequest,
    *,
    progress: _Progress,
    console: ConsoleProtocol,
    cancel: threading.Event | None,
) -> Result[PublishOutcome, PublishError]:
    opened = _authenticate(
        backend, request.application_id, request.credential_name, console=console, cancel=cancel
    )
    if isinstance(opened, Err):
        return opened
    session = opened.value
    index = ArtifactIndex(session)

    progress.stage = "apks.upload"
    registered = register_artifacts(
        session=session, index=index, artifacts=request.artifacts, console=console
    )
    if isinstance(registered, Err):
        return registered
    version_codes = registered.value

    if request.expansion_files or request.inherit_expansion_files:
        progress.stage = "expansionfiles"
        associated = associate_expansion_files(
            session=session,
            lookup=LatestExpansionFileLookup(session, index),
            version_codes=version_codes,
            files=request.expansion_files,
            inherit_if_missing=request.inherit_expansion_files,
            console=console,
        )
        if isinstance(associated, Err):
            return associated

    progress.stage = "tracks.update"
    assigned = assign_to_track(
        session,
        version_codes,
        request.track,
        request.rollout_fraction,
        eviction=EvictionPolicy.UPLOAD,
        reduction=ReductionPolicy.CLAMP,
        console=console,
    )
    if isinstance(assigned, Err):
        return assigned

    return _commit(
        backend,
        session,
        assigned.value,
        tuple(version_codes),
        track_mode=False,
        progress=progress,
        console=console,
        cancel=cancel,
    )


def _move(
    backend: PublisherBackend,
    request: MoveRequest,
    *,
    progress: _Progress,
    console: ConsoleProtocol,
    cancel: threading.Event | None,
) -> Result[PublishOutcome, PublishError]:
    opened = _authenticate(
        backend, request.application_id, request.credential_name, console=console, cancel=cancel
    )
    if isinstance(opened, Err):
        return opened
    session = opened.value

    wanted = tuple(sorted(set(request.version_codes)))
    console.print(
        f"Assigning {len(wanted)} APK(s) with application ID {request.application_id} "
        f"to {request.track} release track"
    )

    progress.stage = "apks.list"
    existing = ArtifactIndex(session).version_codes()
    if isinstance(existing, Err):
        return existing
    missing = tuple(vc for vc in wanted if vc not in set(existing.value))
    if missing:
        return Err(
            MissingVersionCodes(track=str(request.track), requested=wanted, missing=missing)
        )

    progress.stage = "tracks.update"
    assigned = assign_to_track(
        session,
        wanted,
        request.track,
        request.rollout_fraction,
        eviction=EvictionPolicy.DIRECT,
        reduction=ReductionPolicy.REJECT,
        console=console,
    )
    if isinstance(assigned, Err):
        return assigned

    return _commit(
        backend,
        session,
        assigned.value,
        wanted,
        track_mode=True,
        progress=progress,
        console=console,
        cancel=cancel,
    )


def upload_artifacts(
    backend: PublisherBackend,
    request: UploadRequest,
    *,
    console: ConsoleProtocol,
    cancel: threading.Event | None = None,
) -> Result[PublishOutcome, PublishError]:
    """Upload APKs to Google Play and assign them to ``request.track``.

    Args:
        backend: Google Play backend.
        request: APKs (already read and hashed), target track and options.
        console: Receives the account of what is done.
        cancel: When set, the task stops before its next remote call.

    Returns:
        The committed track state, or the first error. ``KeyboardInterrupt``
        is reported as ``Interrupted``, or as an unresolved ``CommitTimeout``
        once the commit request has been sent.
    """
    if not request.artifacts:
        return Err(InvalidOptions(problems=("No APKs to upload",)))

    progress = _Progress()
    try:
        return _upload(backend, request, progress=progress, console=console, cancel=cancel)
    except KeyboardInterrupt:
        return Err(progress.interrupted())


def move_to_track(
    backend: PublisherBackend,
    request: MoveRequest,
    *,
    console: ConsoleProtocol,
    cancel: threading.Event | None = None,
) -> Result[PublishOutcome, PublishError]:
    """Assign APKs already known to Google Play to ``request.track``.

    Every requested version code must exist for the application, otherwise
    the task fails with ``MissingVersionCodes`` before any track changes.
    """
    progress = _Progress()
    try:
        return _move(backend, request, progress=progress, console=console, cancel=cancel)
    except KeyboardInterrupt:
        return Err(progress.interrupted())


def summarize(outcome: PublishOutcome) -> str:
    if outcome.user_fraction is not None:
        return (
            f"{outcome.application_id}: {join_codes(outcome.version_codes)} rolled out to "
            f"{format_percentage(outcome.user_fraction)}% of production users"
        )
    return f"{outcome.application_id}: {outcome.track} = {join_codes(outcome.version_codes)}"
