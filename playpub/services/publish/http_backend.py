"""Google Play Developer API (v2 edits) over urllib.

Implements :class:`~playpub.services.publish.backend.PublisherBackend` with
plain JSON requests and ``uploadType=media`` binary uploads, authorized by an
OAuth2 bearer token obtained beforehand (see ``credentials``).
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from pathlib import Path
from urllib.parse import quote

from playpub import __version__
from playpub.core.config import (
    DEFAULT_API_BASE_URL,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_UPLOAD_BASE_URL,
    DEFAULT_UPLOAD_TIMEOUT_SECONDS,
)
from playpub.core.result import Err, Ok, Result
from playpub.core.structured import (
    StrDict,
    as_obj_list,
    as_str_dict,
    get_float,
    get_int,
    get_int_list,
    get_str,
    get_table,
)
from playpub.services.publish.errors import ApiError
from playpub.services.publish.model import (
    ExpansionFileInfo,
    ExpansionFileType,
    RemoteArtifact,
    Track,
)

__all__ = ["HttpPublisherBackend"]

_APK_CONTENT_TYPE = "application/vnd.android.package-archive"
_OBB_CONTENT_TYPE = "application/octet-stream"


def _error_details(body: bytes) -> str | None:
    """Extract ``error.message`` from a Google API error body."""
    try:
        obj: object = json.loads(body.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    data = as_str_dict(obj)
    if data is None:
        return None
    error = get_table(data, "error")
    if error is None:
        return None
    return get_str(error, "message")


def _parse_artifact(data: StrDict) -> RemoteArtifact | None:
    version_code = get_int(data, "versionCode")
    binary = get_table(data, "binary")
    sha1 = get_str(binary, "sha1") if binary is not None else None
    if version_code is None or sha1 is None:
        return None
    return RemoteArtifact(version_code=version_code, sha1=sha1.lower())


def _parse_track(data: StrDict, default_name: str | None = None) -> Track | None:
    name = get_str(data, "track") or default_name
    if name is None:
        return None
    return Track(
        name=name,
        version_codes=tuple(get_int_list(data, "versionCodes")),
        user_fraction=get_float(data, "userFraction"),
    )


class HttpPublisherBackend:
    """Real backend talking to ``androidpublisher`` over HTTPS.

    Every method returns ``Err(ApiError)`` instead of raising: HTTP errors keep
    their status and the API's error message; a socket timeout is reported
    with ``status=0`` and ``timed_out=True``.
    """

    def __init__(
        self,
        access_token: str,
        *,
        base_url: str = DEFAULT_API_BASE_URL,
        upload_base_url: str = DEFAULT_UPLOAD_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        upload_timeout: float = DEFAULT_UPLOAD_TIMEOUT_SECONDS,
        user_agent: str = f"playpub/{__version__}",
    ) -> None:
        self._token = access_token
        self.base_url = base_url.rstrip("/")
        self.upload_base_url = upload_base_url.rstrip("/")
        self.timeout = timeout
        self.upload_timeout = upload_timeout
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()

    # URLs

    def _edit_url(self, application_id: str, edit_id: str, *, upload: bool = False) -> str:
        base = self.upload_base_url if upload else self.base_url
        return f"{base}/{quote(application_id, safe='')}/edits/{quote(edit_id, safe='')}"

    def _expansion_url(
        self,
        application_id: str,
        edit_id: str,
        version_code: int,
        file_type: ExpansionFileType,
        *,
        upload: bool = False,
    ) -> str:
        edit = self._edit_url(application_id, edit_id, upload=upload)
        return f"{edit}/apks/{version_code}/expansionFiles/{file_type.api_value}"

    # Transport

    def _send(
        self,
        operation: str,
        method: str,
        url: str,
        *,
        body: bytes | None = None,
        content_type: str | None = None,
        timeout: float | None = None,
    ) -> Result[bytes, ApiError]:
        headers = {
            "Authorization": f"Bearer {self._token}",
            "User-Agent": self.user_agent,
            "Accept": "application/json",
        }
        if content_type is not None:
            headers["Content-Type"] = content_type

        try:
            req = urllib.request.Request(url, data=body, method=method, headers=headers)
            with urllib.request.urlopen(
                req,
                timeout=timeout or self.timeout,
                context=self._ssl_context,
            ) as response:
                return Ok(response.read())
        except urllib.error.HTTPError as e:
            details = _error_details(e.read() or b"")
            return Err(ApiError(operation=operation, status=e.code, message=str(e.reason), details=details))
        except urllib.error.URLError as e:
            if isinstance(e.reason, TimeoutError):
                return Err(
                    ApiError(operation=operation, status=0, message=str(e.reason), timed_out=True)
                )
            return Err(ApiError(operation=operation, status=0, message=str(e.reason)))
        except TimeoutError as e:
            return Err(
                ApiError(operation=operation, status=0, message=str(e) or "timed out", timed_out=True)
            )
        except OSError as e:
            return Err(ApiError(operation=operation, status=0, message=str(e)))

    def _json(
        self,
        operation: str,
        method: str,
        url: str,
        payload: StrDict | None = None,
    ) -> Result[StrDict, ApiError]:
        body = None
        content_type = None
        if payload is not None:
            body = json.dumps(payload).encode("utf-8")
            content_type = "application/json; charset=utf-8"

        result = self._send(operation, method, url, body=body, content_type=content_type)
        if isinstance(result, Err):
            return result
        return self._decode(operation, result.value)

    def _upload(
        self, operation: str, url: str, path: Path, content_type: str
    ) -> Result[StrDict, ApiError]:
        try:
            body = path.read_bytes()
        except OSError as e:
            return Err(ApiError(operation=operation, status=0, message=f"cannot read {path}: {e}"))

        result = self._send(
            operation,
            "POST",
            f"{url}?uploadType=media",
            body=body,
            content_type=content_type,
            timeout=self.upload_timeout,
        )
        if isinstance(result, Err):
            return result
        return self._decode(operation, result.value)

    @staticmethod
    def _decode(operation: str, raw: bytes) -> Result[StrDict, ApiError]:
        if not raw.strip():
            return Ok({})
        try:
            obj: object = json.loads(raw.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(ApiError(operation=operation, status=0, message=f"JSON parse error: {e}"))
        data = as_str_dict(obj)
        if data is None:
            return Err(ApiError(operation=operation, status=0, message="Expected JSON object"))
        return Ok(data)

    # PublisherBackend

    def insert_edit(self, application_id: str) -> Result[str, ApiError]:
        url = f"{self.base_url}/{quote(application_id, safe='')}/edits"
        result = self._json("edits.insert", "POST", url, {})
        if isinstance(result, Err):
            return result
        edit_id = get_str(result.value, "id")
        if edit_id is None:
            return Err(ApiError(operation="edits.insert", status=0, message="response has no edit id"))
        return Ok(edit_id)

    def list_apks(self, application_id: str, edit_id: str) -> Result[list[RemoteArtifact], ApiError]:
        result = self._json("apks.list", "GET", f"{self._edit_url(application_id, edit_id)}/apks")
        if isinstance(result, Err):
            return result

        artifacts: list[RemoteArtifact] = []
        for item in as_obj_list(result.value.get("apks")) or []:
            data = as_str_dict(item)
            artifact = _parse_artifact(data) if data is not None else None
            if artifact is not None:
                artifacts.append(artifact)
        return Ok(artifacts)

    def upload_apk(
        self, application_id: str, edit_id: str, path: Path
    ) -> Result[RemoteArtifact, ApiError]:
        url = f"{self._edit_url(application_id, edit_id, upload=True)}/apks"
        result = self._upload("apks.upload", url, path, _APK_CONTENT_TYPE)
        if isinstance(result, Err):
            return result
        artifact = _parse_artifact(result.value)
        if artifact is None:
            return Err(ApiError(operation="apks.upload", status=0, message="unexpected APK payload"))
        return Ok(artifact)

    def get_expansion_file(
        self,
        application_id: str,
        edit_id: str,
        version_code: int,
        file_type: ExpansionFileType,
    ) -> Result[ExpansionFileInfo, ApiError]:
        url = self._expansion_url(application_id, edit_id, version_code, file_type)
        result = self._json("expansionfiles.get", "GET", url)
        if isinstance(result, Err):
            return result
        return Ok(
            ExpansionFileInfo(
                file_size=get_int(result.value, "fileSize"),
                references_version=get_int(result.value, "referencesVersion"),
            )
        )

    def upload_expansion_file(
        self,
        application_id: str,
        edit_id: str,
        version_code: int,
        file_type: ExpansionFileType,
        path: Path,
    ) -> Result[None, ApiError]:
        url = self._expansion_url(application_id, edit_id, version_code, file_type, upload=True)
        result = self._upload("expansionfiles.upload", url, path, _OBB_CONTENT_TYPE)
        if isinstance(result, Err):
            return result
        return Ok(None)

    def set_expansion_file_reference(
        self,
        application_id: str,
        edit_id: str,
        version_code: int,
        file_type: ExpansionFileType,
        references_version: int,
    ) -> Result[None, ApiError]:
        url = self._expansion_url(application_id, edit_id, version_code, file_type)
        result = self._json(
            "expansionfiles.update", "PUT", url, {"referencesVersion": references_version}
        )
        if isinstance(result, Err):
            return result
        return Ok(None)

    def list_tracks(self, application_id: str, edit_id: str) -> Result[list[Track], ApiError]:
        result = self._json("tracks.list", "GET", f"{self._edit_url(application_id, edit_id)}/tracks")
        if isinstance(result, Err):
            return result

        tracks: list[Track] = []
        for item in as_obj_list(result.value.get("tracks")) or []:
            data = as_str_dict(item)
            track = _parse_track(data) if data is not None else None
            if track is not None:
                tracks.append(track)
        return Ok(tracks)

    def update_track(
        self, application_id: str, edit_id: str, track: Track
    ) -> Result[Track, ApiError]:
        payload: StrDict = {"track": track.name, "versionCodes": list(track.version_codes)}
        if track.user_fraction is not None:
            payload["userFraction"] = track.user_fraction

        url = f"{self._edit_url(application_id, edit_id)}/tracks/{quote(track.name, safe='')}"
        result = self._json("tracks.update", "PUT", url, payload)
        if isinstance(result, Err):
            return result
        updated = _parse_track(result.value, default_name=track.name)
        if updated is None:
            return Err(ApiError(operation="tracks.update", status=0, message="unexpected track payload"))
        return Ok(updated)

    def commit_edit(self, application_id: str, edit_id: str) -> Result[None, ApiError]:
        result = self._json("edits.commit", "POST", f"{self._edit_url(application_id, edit_id)}:commit")
        if isinstance(result, Err):
            return result
        return Ok(None)
