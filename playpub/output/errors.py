"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from playpub.core.config import ConfigError
from playpub.core.errors import ErrorCode
from playpub.output.console import Style
from playpub.services.publish.errors import (
    ArtifactParseError,
    AuthError,
    CommitTimeout,
    ConsistencyError,
    CredentialsError,
    DuplicateArtifact,
    InconsistentApplicationIds,
    Interrupted,
    InvalidOptions,
    MissingMainExpansionFile,
    MissingVersionCodes,
    NoArtifactsFound,
    PartialAssignment,
    PublishError,
    RemoteError,
    RolloutPercentageReduction,
    changes_may_have_been_applied,
)
from playpub.services.publish.model import format_percentage, join_codes

if TYPE_CHECKING:
    from playpub.output.console import ConsoleProtocol

__all__ = ["print_publish_error", "publish_error_exit_code", "print_config_error"]


def _print_cause(error: PublishError, console: ConsoleProtocol) -> None:
    match error:
        case CredentialsError(message=message, hint=hint):
            console.error(message)
            if hint:
                console.print(f"hint: {hint}", Style.DIM)
        case AuthError(operation=operation, message=message):
            console.error(message)
            console.print(f"during {operation}", Style.DIM)
        case RemoteError(operation=operation, message=message, status=status):
            suffix = f" (HTTP {status})" if status else ""
            console.error(f"Google Play API error during {operation}{suffix}: {message}")
        case DuplicateArtifact(name=name, sha1=sha1, existing_version_code=existing):
            if existing is not None:
                console.error(
                    f"This APK was already uploaded before, with versionCode {existing}: {name}"
                )
            else:
                console.error(f"The same APK was given more than once: {name}")
            console.print(f"SHA-1 hash: {sha1}", Style.DIM)
        case ConsistencyError(name=name, local_version_code=local, remote_version_code=remote):
            console.error(
                f"Google Play read versionCode {remote} from {name}, but the local file has {local}"
            )
        case RolloutPercentageReduction(current_fraction=current, requested_fraction=requested):
            console.error(
                f"Staged rollout percentage cannot be reduced from {format_percentage(current)}% "
                f"to the configured {format_percentage(requested)}%"
            )
        case MissingMainExpansionFile(version_codes=codes):
            console.error(
                "Patch expansion file given without a main expansion file for versionCode(s): "
                f"{join_codes(codes)}"
            )
            console.print("hint: supply the main file too, or enable expansion file inheritance", Style.DIM)
        case CommitTimeout(resolution="not_applied", detail=detail):
            console.error("Applying changes timed out, and the changes were not found on Google Play")
            if detail:
                console.print(detail, Style.DIM)
        case CommitTimeout(application_id=app_id, expected_version_codes=codes, detail=detail):
            console.error(
                "Applying changes timed out, and it could not be verified whether they were applied"
            )
            console.print(
                f"Check {app_id} in the Google Play Console for APK(s): {join_codes(codes)}",
                Style.DIM,
            )
            if detail:
                console.print(detail, Style.DIM)
        case Interrupted(stage=stage):
            console.error(f"Interrupted during {stage}")
        case MissingVersionCodes(track=track, requested=requested, missing=missing):
            console.error(
                f"Could not assign APK(s) {join_codes(requested)} to {track}, "
                f"as these APKs do not exist: {join_codes(missing)}"
            )
        case ArtifactParseError(path=path, reason=reason):
            console.error(f"File does not appear to be a valid APK: {path}")
            console.print(f"- {reason}", Style.DIM)
        case PartialAssignment(cause=cause, applied_tracks=applied):
            _print_cause(cause, console)
            console.warning(
                f"The edit already held changes to: {', '.join(applied)}; it was not committed"
            )
        case InvalidOptions(problems=problems):
            console.error("Cannot publish to Google Play:")
            for problem in problems:
                console.print(f"- {problem}")
        case NoArtifactsFound(pattern=pattern):
            console.error(f"No APK files matching the pattern '{pattern}' could be found")
        case InconsistentApplicationIds(application_ids=ids):
            console.error("Multiple APKs were found but they have inconsistent application IDs:")
            for app_id in ids:
                console.print(f"- {app_id}")


def print_publish_error(error: PublishError, console: ConsoleProtocol) -> None:
    """Print a task failure, followed by what it means for the Google Play account."""
    _print_cause(error, console)
    console.newline()
    console.print("No further changes will be attempted", Style.DIM)
    if not changes_may_have_been_applied(error):
        console.print("No changes have been applied to the Google Play account", Style.DIM)


def publish_error_exit_code(error: PublishError) -> int:
    """Get exit code for a publish error."""
    match error:
        case (
            InvalidOptions()
            | NoArtifactsFound()
            | InconsistentApplicationIds()
            | DuplicateArtifact()
            | RolloutPercentageReduction()
            | MissingMainExpansionFile()
            | MissingVersionCodes()
        ):
            return int(ErrorCode.USER_ERROR)
        case CredentialsError() | AuthError() | ArtifactParseError():
            return int(ErrorCode.ENV_ERROR)
        case RemoteError() | ConsistencyError():
            return int(ErrorCode.REMOTE_ERROR)
        case CommitTimeout(resolution="not_applied"):
            return int(ErrorCode.REMOTE_ERROR)
        case CommitTimeout() | PartialAssignment():
            return int(ErrorCode.UNVERIFIED)
        case Interrupted():
            return int(ErrorCode.INTERRUPTED)


def print_config_error(error: ConfigError, console: ConsoleProtocol) -> None:
    console.error(error.message)
    if error.path is not None:
        console.print(f"config: {error.path}", Style.DIM)
