"""Failure taxonomy for publishing tasks.

Backend calls fail with an :class:`ApiError` (transport-level facts: status,
message, timeout). :func:`classify_api_error` maps those onto the stable
:data:`PublishError` kinds that tasks return and the CLI reports.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

NO_PERMISSION_MESSAGE = (
    "The API credentials provided do not have permission to apply these changes"
)


@dataclass(frozen=True, slots=True)
class ApiError:
    """A failed call to the publisher backend.

    Attributes:
        operation: Backend operation name (e.g. ``"tracks.update"``).
        status: HTTP status, or 0 when no response was received.
        message: Transport or HTTP reason text.
        details: Human-readable message from the API error body, if any.
        timed_out: True when the request timed out without any status.
    """

    operation: str
    status: int
    message: str
    details: str | None = None
    timed_out: bool = False

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    def __str__(self) -> str:
        text = self.details or self.message
        if self.status:
            return f"{self.operation}: HTTP {self.status}: {text}"
        return f"{self.operation}: {text}"


@dataclass(frozen=True, slots=True)
class CredentialsError:
    """Local credential configuration problem; never retried."""

    message: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class AuthError:
    """Google Play rejected the credential at call time."""

    operation: str
    message: str


@dataclass(frozen=True, slots=True)
class RemoteError:
    operation: str
    message: str
    status: int = 0


@dataclass(frozen=True, slots=True)
class DuplicateArtifact:
    name: str
    sha1: str
    # None when the duplicate is another file of the same batch.
    existing_version_code: int | None = None


@dataclass(frozen=True, slots=True)
class ConsistencyError:
    """Google Play read a different version code than the local parser did."""

    name: str
    local_version_code: int
    remote_version_code: int


@dataclass(frozen=True, slots=True)
class RolloutPercentageReduction:
    current_fraction: float
    requested_fraction: float


@dataclass(frozen=True, slots=True)
class MissingMainExpansionFile:
    version_codes: tuple[int, ...]


CommitResolution = Literal["pending", "not_applied", "unresolved"]


@dataclass(frozen=True, slots=True)
class CommitTimeout:
    """The commit request timed out; the server may have applied it anyway.

    ``resolution`` is ``"pending"`` until reconciliation ran, then
    ``"not_applied"`` (the expected changes are absent) or ``"unresolved"``
    (reconciliation itself failed and the outcome is unknown).
    """

    application_id: str
    expected_version_codes: tuple[int, ...]
    expected_track: str | None = None
    resolution: CommitResolution = "pending"
    detail: str | None = None


@dataclass(frozen=True, slots=True)
class Interrupted:
    """Cancelled by the user before anything was committed."""

    stage: str


@dataclass(frozen=True, slots=True)
class MissingVersionCodes:
    track: str
    requested: tuple[int, ...]
    missing: tuple[int, ...]


@dataclass(frozen=True, slots=True)
class ArtifactParseError:
    path: Path
    reason: str


@dataclass(frozen=True, slots=True)
class PartialAssignment:
    """A track update failed after earlier updates of the same assignment.

    The edit was not committed, but the tracks listed in ``applied_tracks``
    were already changed inside it.
    """

    cause: PublishError
    applied_tracks: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class InvalidOptions:
    problems: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class NoArtifactsFound:
    pattern: str


@dataclass(frozen=True, slots=True)
class InconsistentApplicationIds:
    application_ids: tuple[str, ...]


PublishError = (
    CredentialsError
    | AuthError
    | RemoteError
    | DuplicateArtifact
    | ConsistencyError
    | RolloutPercentageReduction
    | MissingMainExpansionFile
    | CommitTimeout
    | Interrupted
    | MissingVersionCodes
    | ArtifactParseError
    | PartialAssignment
    | InvalidOptions
    | NoArtifactsFound
    | InconsistentApplicationIds
)


def classify_api_error(error: ApiError) -> PublishError:
    """Map a backend failure onto the publish error taxonomy."""
    if error.status in (401, 403):
        message = error.details
        if message is None and error.status == 401:
            message = NO_PERMISSION_MESSAGE
        return AuthError(operation=error.operation, message=message or error.message)

    if error.timed_out:
        return RemoteError(
            operation=error.operation,
            message=f"request timed out ({error.message})",
        )

    return RemoteError(
        operation=error.operation,
        message=error.details or error.message,
        status=error.status,
    )


def describe_error(error: PublishError) -> str:
    """One-line summary of an error, for log lines that are not the final report."""
    match error:
        case AuthError(operation=operation, message=message):
            return f"{operation}: {message}"
        case RemoteError(operation=operation, message=message, status=status) if status:
            return f"{operation}: HTTP {status}: {message}"
        case RemoteError(operation=operation, message=message):
            return f"{operation}: {message}"
        case CredentialsError(message=message):
            return message
        case Interrupted(stage=stage):
            return f"interrupted during {stage}"
        case PartialAssignment(cause=cause):
            return describe_error(cause)
        case _:
            return type(error).__name__


def changes_may_have_been_applied(error: PublishError) -> bool:
    """Whether Google Play may hold changes from a task that failed with ``error``.

    Nothing becomes visible before a commit, so only a commit of unknown outcome
    can have changed anything.
    """
    match error:
        case CommitTimeout(resolution=resolution):
            return resolution != "not_applied"
        case _:
            return False
