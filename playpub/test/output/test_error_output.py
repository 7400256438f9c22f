from __future__ import annotations

from pathlib import Path

import pytest

from playpub.core.config import ConfigError
from playpub.core.errors import ErrorCode
from playpub.output.console import MockConsole, Style
from playpub.output.errors import print_config_error, print_publish_error, publish_error_exit_code
from playpub.services.publish.errors import (
    AuthError,
    CommitTimeout,
    DuplicateArtifact,
    Interrupted,
    InvalidOptions,
    MissingVersionCodes,
    PartialAssignment,
    PublishError,
    RemoteError,
    RolloutPercentageReduction,
)

NOTHING_APPLIED = "No changes have been applied to the Google Play account"


def _timeout(resolution: str) -> CommitTimeout:
    return CommitTimeout(
        application_id="com.example.app",
        expected_version_codes=(10, 11),
        resolution=resolution,  # type: ignore[arg-type]
    )


def test_regular_failure_says_nothing_was_applied() -> None:
    console = MockConsole()

    print_publish_error(DuplicateArtifact(name="app.apk", sha1="aa", existing_version_code=5), console)

    assert console.messages[0] == "error: This APK was already uploaded before, with versionCode 5: app.apk"
    assert console.find("No further changes will be attempted")
    assert console.find(NOTHING_APPLIED)


def test_unresolved_timeout_does_not_claim_nothing_applied() -> None:
    console = MockConsole()

    print_publish_error(_timeout("unresolved"), console)

    assert console.has_error()
    assert console.find("Check com.example.app in the Google Play Console for APK(s): 10, 11")
    assert not console.find(NOTHING_APPLIED)


def test_not_applied_timeout() -> None:
    console = MockConsole()

    print_publish_error(_timeout("not_applied"), console)

    assert console.find(NOTHING_APPLIED)


def test_partial_assignment_warns_about_edit() -> None:
    console = MockConsole()
    cause = RemoteError(operation="tracks.update", message="Internal Server Error", status=500)

    print_publish_error(PartialAssignment(cause=cause, applied_tracks=("beta", "rollout")), console)

    assert console.find("Google Play API error during tracks.update (HTTP 500)")
    assert console.count(Style.WARNING) == 1
    assert console.find("beta, rollout")
    assert console.find(NOTHING_APPLIED)


def test_invalid_options_lists_problems() -> None:
    console = MockConsole()

    print_publish_error(InvalidOptions(problems=("a", "b")), console)

    assert console.messages[:3] == ["error: Cannot publish to Google Play:", "- a", "- b"]


def test_rollout_reduction_message() -> None:
    console = MockConsole()

    print_publish_error(RolloutPercentageReduction(current_fraction=0.2, requested_fraction=0.05), console)

    assert console.messages[0] == (
        "error: Staged rollout percentage cannot be reduced from 20% to the configured 5%"
    )


@pytest.mark.parametrize(
    ("error", "code"),
    [
        (InvalidOptions(problems=("x",)), ErrorCode.USER_ERROR),
        (MissingVersionCodes(track="beta", requested=(1,), missing=(1,)), ErrorCode.USER_ERROR),
        (AuthError(operation="edits.insert", message="denied"), ErrorCode.ENV_ERROR),
        (RemoteError(operation="apks.list", message="x", status=500), ErrorCode.REMOTE_ERROR),
        (_timeout("not_applied"), ErrorCode.REMOTE_ERROR),
        (_timeout("unresolved"), ErrorCode.UNVERIFIED),
        (Interrupted(stage="apks.upload"), ErrorCode.INTERRUPTED),
    ],
)
def test_exit_codes(error: PublishError, code: ErrorCode) -> None:
    assert publish_error_exit_code(error) == int(code)


def test_config_error() -> None:
    console = MockConsole()

    print_config_error(ConfigError("Invalid TOML syntax", path=Path("playpub.toml")), console)

    assert console.messages == ["error: Invalid TOML syntax", "config: playpub.toml"]
