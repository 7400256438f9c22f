from __future__ import annotations

from playpub.services.publish.errors import (
    NO_PERMISSION_MESSAGE,
    ApiError,
    AuthError,
    CommitTimeout,
    DuplicateArtifact,
    Interrupted,
    PartialAssignment,
    RemoteError,
    changes_may_have_been_applied,
    classify_api_error,
    describe_error,
)


class TestClassify:
    def test_unauthorized_without_details(self) -> None:
        error = classify_api_error(ApiError(operation="edits.insert", status=401, message="Unauthorized"))
        assert error == AuthError(operation="edits.insert", message=NO_PERMISSION_MESSAGE)

    def test_forbidden_keeps_api_message(self) -> None:
        error = classify_api_error(
            ApiError(operation="tracks.update", status=403, message="Forbidden", details="no access")
        )
        assert error == AuthError(operation="tracks.update", message="no access")

    def test_timeout(self) -> None:
        error = classify_api_error(
            ApiError(operation="apks.upload", status=0, message="timed out", timed_out=True)
        )
        assert isinstance(error, RemoteError)
        assert error.status == 0
        assert "timed out" in error.message

    def test_server_error(self) -> None:
        error = classify_api_error(ApiError(operation="apks.list", status=503, message="Unavailable"))
        assert error == RemoteError(operation="apks.list", message="Unavailable", status=503)


def test_api_error_str() -> None:
    assert str(ApiError(operation="apks.list", status=500, message="x", details="boom")) == (
        "apks.list: HTTP 500: boom"
    )
    assert str(ApiError(operation="edits.commit", status=0, message="timed out")) == (
        "edits.commit: timed out"
    )


def test_describe_error() -> None:
    remote = RemoteError(operation="tracks.list", message="Unavailable", status=503)

    assert describe_error(remote) == "tracks.list: HTTP 503: Unavailable"
    assert describe_error(PartialAssignment(cause=remote, applied_tracks=("beta",))) == (
        "tracks.list: HTTP 503: Unavailable"
    )
    assert describe_error(Interrupted(stage="apks.upload")) == "interrupted during apks.upload"
    assert describe_error(DuplicateArtifact(name="a.apk", sha1="aa")) == "DuplicateArtifact"


def test_changes_may_have_been_applied() -> None:
    timeout = CommitTimeout(application_id="com.example.app", expected_version_codes=(1,))

    assert changes_may_have_been_applied(timeout)
    assert not changes_may_have_been_applied(
        CommitTimeout(application_id="a", expected_version_codes=(1,), resolution="not_applied")
    )
    assert not changes_may_have_been_applied(Interrupted(stage="tracks.update"))
    assert not changes_may_have_been_applied(RemoteError(operation="x", message="y"))
