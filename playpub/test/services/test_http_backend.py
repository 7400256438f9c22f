from __future__ import annotations

import io
import json
import urllib.error
import urllib.request
from email.message import Message
from pathlib import Path
from typing import Any

import pytest

from playpub.core.result import Err, Ok
from playpub.services.publish.http_backend import HttpPublisherBackend
from playpub.services.publish.model import ExpansionFileType, RemoteArtifact, Track

BASE = "https://play.test/v2/applications"
UPLOAD_BASE = "https://play.test/upload/v2/applications"


class _Response:
    def __init__(self, body: bytes) -> None:
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> _Response:
        return self

    def __exit__(self, *exc: object) -> None:
        return None


class _Recorder:
    def __init__(self) -> None:
        self.requests: list[urllib.request.Request] = []
        self.timeouts: list[float] = []
        self.replies: list[object] = []

    def __call__(self, req: urllib.request.Request, timeout: float, context: Any) -> _Response:
        del context
        self.requests.append(req)
        self.timeouts.append(timeout)
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, bytes):
            return _Response(reply)
        return _Response(json.dumps(reply).encode("utf-8"))


@pytest.fixture
def recorder(monkeypatch: pytest.MonkeyPatch) -> _Recorder:
    rec = _Recorder()
    monkeypatch.setattr(urllib.request, "urlopen", rec)
    return rec


def _backend() -> HttpPublisherBackend:
    return HttpPublisherBackend(
        "token-123", base_url=BASE, upload_base_url=UPLOAD_BASE, timeout=5.0, upload_timeout=50.0
    )


def _http_error(code: int, body: bytes) -> urllib.error.HTTPError:
    return urllib.error.HTTPError(f"{BASE}/x", code, "Forbidden", Message(), io.BytesIO(body))


def test_insert_edit(recorder: _Recorder) -> None:
    recorder.replies.append({"id": "e1", "expiryTimeSeconds": "1700000000"})

    result = _backend().insert_edit("com.example.app")

    assert result == Ok("e1")
    req = recorder.requests[0]
    assert req.full_url == f"{BASE}/com.example.app/edits"
    assert req.get_method() == "POST"
    assert req.get_header("Authorization") == "Bearer token-123"
    assert recorder.timeouts == [5.0]


def test_list_apks_parses_hashes(recorder: _Recorder) -> None:
    recorder.replies.append(
        {
            "kind": "androidpublisher#apksListResponse",
            "apks": [
                {"versionCode": 5, "binary": {"sha1": "ABCDEF"}},
                {"versionCode": 6},
            ],
        }
    )

    result = _backend().list_apks("com.example.app", "e1")

    assert result == Ok([RemoteArtifact(version_code=5, sha1="abcdef")])
    assert recorder.requests[0].full_url == f"{BASE}/com.example.app/edits/e1/apks"


def test_list_apks_empty_listing(recorder: _Recorder) -> None:
    recorder.replies.append({"kind": "androidpublisher#apksListResponse"})

    assert _backend().list_apks("com.example.app", "e1") == Ok([])


def test_upload_apk_uses_upload_endpoint(recorder: _Recorder, tmp_path: Path) -> None:
    apk = tmp_path / "app.apk"
    apk.write_bytes(b"PK\x03\x04")
    recorder.replies.append({"versionCode": 7, "binary": {"sha1": "cafe"}})

    result = _backend().upload_apk("com.example.app", "e1", apk)

    assert result == Ok(RemoteArtifact(version_code=7, sha1="cafe"))
    req = recorder.requests[0]
    assert req.full_url == f"{UPLOAD_BASE}/com.example.app/edits/e1/apks?uploadType=media"
    assert req.data == b"PK\x03\x04"
    assert req.get_header("Content-type") == "application/vnd.android.package-archive"
    assert recorder.timeouts == [50.0]


def test_update_track_payload(recorder: _Recorder) -> None:
    recorder.replies.append({"track": "rollout", "versionCodes": [10, 11], "userFraction": 0.5})

    result = _backend().update_track(
        "com.example.app", "e1", Track(name="rollout", version_codes=(10, 11), user_fraction=0.5)
    )

    assert result == Ok(Track(name="rollout", version_codes=(10, 11), user_fraction=0.5))
    req = recorder.requests[0]
    assert req.get_method() == "PUT"
    assert req.full_url == f"{BASE}/com.example.app/edits/e1/tracks/rollout"
    assert isinstance(req.data, bytes)
    assert json.loads(req.data) == {"track": "rollout", "versionCodes": [10, 11], "userFraction": 0.5}


def test_clearing_track_omits_fraction(recorder: _Recorder) -> None:
    recorder.replies.append({"track": "rollout"})

    result = _backend().update_track("com.example.app", "e1", Track(name="rollout"))

    assert result == Ok(Track(name="rollout"))
    req = recorder.requests[0]
    assert isinstance(req.data, bytes)
    assert json.loads(req.data) == {"track": "rollout", "versionCodes": []}


def test_list_tracks(recorder: _Recorder) -> None:
    recorder.replies.append(
        {"tracks": [{"track": "alpha", "versionCodes": [3]}, {"track": "production"}]}
    )

    result = _backend().list_tracks("com.example.app", "e1")

    assert result == Ok([Track(name="alpha", version_codes=(3,)), Track(name="production")])


def test_expansion_file_reference(recorder: _Recorder) -> None:
    recorder.replies.append({"referencesVersion": 5})

    result = _backend().set_expansion_file_reference(
        "com.example.app", "e1", 8, ExpansionFileType.PATCH, 5
    )

    assert result == Ok(None)
    req = recorder.requests[0]
    assert req.full_url == f"{BASE}/com.example.app/edits/e1/apks/8/expansionFiles/patch"
    assert isinstance(req.data, bytes)
    assert json.loads(req.data) == {"referencesVersion": 5}


def test_commit_url(recorder: _Recorder) -> None:
    recorder.replies.append(b"")

    assert _backend().commit_edit("com.example.app", "e1") == Ok(None)
    assert recorder.requests[0].full_url == f"{BASE}/com.example.app/edits/e1:commit"


def test_http_error_keeps_api_message(recorder: _Recorder) -> None:
    body = json.dumps({"error": {"code": 403, "message": "APK specifies a version code that has already been used."}})
    recorder.replies.append(_http_error(403, body.encode("utf-8")))

    result = _backend().list_tracks("com.example.app", "e1")

    assert isinstance(result, Err)
    assert result.error.status == 403
    assert result.error.details == "APK specifies a version code that has already been used."
    assert result.error.operation == "tracks.list"


def test_not_found_expansion_file(recorder: _Recorder) -> None:
    recorder.replies.append(_http_error(404, b"not json"))

    result = _backend().get_expansion_file("com.example.app", "e1", 5, ExpansionFileType.MAIN)

    assert isinstance(result, Err)
    assert result.error.is_not_found
    assert result.error.details is None


def test_timeout_has_no_status(recorder: _Recorder) -> None:
    recorder.replies.append(TimeoutError("The read operation timed out"))

    result = _backend().commit_edit("com.example.app", "e1")

    assert isinstance(result, Err)
    assert result.error.timed_out
    assert result.error.status == 0


def test_connection_error_is_not_a_timeout(recorder: _Recorder) -> None:
    recorder.replies.append(urllib.error.URLError(ConnectionRefusedError("refused")))

    result = _backend().insert_edit("com.example.app")

    assert isinstance(result, Err)
    assert not result.error.timed_out
    assert result.error.status == 0


def test_invalid_json(recorder: _Recorder) -> None:
    recorder.replies.append(b"<html>")

    result = _backend().list_tracks("com.example.app", "e1")

    assert isinstance(result, Err)
    assert "JSON parse error" in result.error.message
