"""Publisher backend abstraction.

This module provides:
- PublisherBackend: Protocol for the Google Play edit operations used by the
  publishing core (injectable for tests)
- MockPublisherBackend: in-memory implementation that records every call

The real HTTP implementation lives in ``http_backend``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Protocol, runtime_checkable

from playpub.core.result import Err, Ok, Result
from playpub.services.publish.errors import ApiError
from playpub.services.publish.model import (
    ExpansionFileInfo,
    ExpansionFileType,
    RemoteArtifact,
    Track,
)

__all__ = [
    "PublisherBackend",
    "MockPublisherBackend",
    "BackendCall",
]


@runtime_checkable
class PublisherBackend(Protocol):
    """Operations of the Google Play Developer API used within an edit.

    All methods block until the server answers or the request times out.
    """

    def insert_edit(self, application_id: str) -> Result[str, ApiError]:
        """Open a new edit and return its id."""
        ...

    def list_apks(self, application_id: str, edit_id: str) -> Result[list[RemoteArtifact], ApiError]:
        ...

    def upload_apk(
        self, application_id: str, edit_id: str, path: Path
    ) -> Result[RemoteArtifact, ApiError]:
        ...

    def get_expansion_file(
        self,
        application_id: str,
        edit_id: str,
        version_code: int,
        file_type: ExpansionFileType,
    ) -> Result[ExpansionFileInfo, ApiError]:
        """Fetch expansion file info; a missing file is ``ApiError(status=404)``."""
        ...

    def upload_expansion_file(
        self,
        application_id: str,
        edit_id: str,
        version_code: int,
        file_type: ExpansionFileType,
        path: Path,
    ) -> Result[None, ApiError]:
        ...

    def set_expansion_file_reference(
        self,
        application_id: str,
        edit_id: str,
        version_code: int,
        file_type: ExpansionFileType,
        references_version: int,
    ) -> Result[None, ApiError]:
        ...

    def list_tracks(self, application_id: str, edit_id: str) -> Result[list[Track], ApiError]:
        ...

    def update_track(
        self, application_id: str, edit_id: str, track: Track
    ) -> Result[Track, ApiError]:
        """Replace the whole version code set (and fraction) of ``track.name``."""
        ...

    def commit_edit(self, application_id: str, edit_id: str) -> Result[None, ApiError]:
        """Commit the edit; ``ApiError.timed_out`` means the outcome is unknown."""
        ...


@dataclass(frozen=True, slots=True)
class BackendCall:
    operation: str
    edit_id: str | None
    args: tuple[object, ...] = ()


@dataclass
class _EditState:
    artifacts: dict[int, RemoteArtifact]
    tracks: dict[str, Track]
    expansion_files: dict[tuple[int, str], ExpansionFileInfo]


def _empty_calls() -> list[BackendCall]:
    return []


@dataclass
class MockPublisherBackend:
    """In-memory Google Play for a single application.

    Each edit works on a copy of the committed state; ``commit_edit`` publishes
    it. Failures are queued per operation with :meth:`fail` and consumed in
    order.

    Usage:
        backend = MockPublisherBackend(application_id="com.example.app")
        backend.add_artifact(5, "ab12...")
        backend.set_track("beta", [5])
        backend.expect_upload(Path("app.apk"), version_code=6, sha1="cd34...")
    """

    application_id: str = "com.example.app"
    artifacts: dict[int, RemoteArtifact] = field(default_factory=dict)
    tracks: dict[str, Track] = field(default_factory=dict)
    expansion_files: dict[tuple[int, str], ExpansionFileInfo] = field(default_factory=dict)
    calls: list[BackendCall] = field(default_factory=_empty_calls)
    # When a queued commit timeout fires, whether the server applied the edit anyway.
    apply_commit_on_timeout: bool = False
    _uploads: dict[Path, RemoteArtifact] = field(default_factory=dict)
    _failures: dict[str, list[ApiError | None]] = field(default_factory=dict)
    _edits: dict[str, _EditState] = field(default_factory=dict)
    _edit_counter: int = 0

    # Test setup helpers

    def add_artifact(self, version_code: int, sha1: str) -> None:
        self.artifacts[version_code] = RemoteArtifact(version_code=version_code, sha1=sha1)

    def set_track(
        self, name: str, version_codes: list[int], user_fraction: float | None = None
    ) -> None:
        self.tracks[name] = Track(
            name=name, version_codes=tuple(version_codes), user_fraction=user_fraction
        )

    def set_expansion_file(
        self,
        version_code: int,
        file_type: ExpansionFileType,
        *,
        file_size: int | None = None,
        references_version: int | None = None,
    ) -> None:
        self.expansion_files[(version_code, file_type.api_value)] = ExpansionFileInfo(
            file_size=file_size, references_version=references_version
        )

    def expect_upload(self, path: Path, *, version_code: int, sha1: str) -> None:
        """Declare what Google Play will report when ``path`` is uploaded."""
        self._uploads[path] = RemoteArtifact(version_code=version_code, sha1=sha1)

    def fail(self, operation: str, error: ApiError | None = None, *, after: int = 0) -> None:
        """Make a call of ``operation`` fail, once ``after`` more calls have succeeded."""
        queue = self._failures.setdefault(operation, [])
        queue.extend([None] * after)
        queue.append(
            error or ApiError(operation=operation, status=500, message="Internal Server Error")
        )

    def fail_commit_with_timeout(self, *, applied: bool) -> None:
        self.apply_commit_on_timeout = applied
        self.fail(
            "edits.commit",
            ApiError(operation="edits.commit", status=0, message="Read timed out", timed_out=True),
        )

    # Introspection helpers

    def operations(self) -> list[str]:
        return [c.operation for c in self.calls]

    def count(self, operation: str) -> int:
        return sum(1 for c in self.calls if c.operation == operation)

    def track_updates(self) -> list[Track]:
        out: list[Track] = []
        for c in self.calls:
            if c.operation == "tracks.update" and isinstance(c.args[0], Track):
                out.append(c.args[0])
        return out

    # Internals

    def _record(self, operation: str, edit_id: str | None, *args: object) -> ApiError | None:
        self.calls.append(BackendCall(operation=operation, edit_id=edit_id, args=args))
        queued = self._failures.get(operation)
        if queued:
            return queued.pop(0)
        return None

    def _edit(self, application_id: str, edit_id: str, operation: str) -> Result[_EditState, ApiError]:
        if application_id != self.application_id:
            return Err(ApiError(operation=operation, status=404, message="Package not found"))
        state = self._edits.get(edit_id)
        if state is None:
            return Err(ApiError(operation=operation, status=404, message="Edit not found"))
        return Ok(state)

    def _publish(self, edit_id: str) -> None:
        state = self._edits.pop(edit_id)
        self.artifacts = dict(state.artifacts)
        self.tracks = dict(state.tracks)
        self.expansion_files = dict(state.expansion_files)
        # A commit invalidates every other open edit, as on Google Play.
        self._edits.clear()

    # PublisherBackend

    def insert_edit(self, application_id: str) -> Result[str, ApiError]:
        failure = self._record("edits.insert", None, application_id)
        if failure is not None:
            return Err(failure)
        if application_id != self.application_id:
            return Err(ApiError(operation="edits.insert", status=404, message="Package not found"))
        self._edit_counter += 1
        edit_id = f"edit-{self._edit_counter}"
        self._edits[edit_id] = _EditState(
            artifacts=dict(self.artifacts),
            tracks=dict(self.tracks),
            expansion_files=dict(self.expansion_files),
        )
        return Ok(edit_id)

    def list_apks(self, application_id: str, edit_id: str) -> Result[list[RemoteArtifact], ApiError]:
        failure = self._record("apks.list", edit_id)
        if failure is not None:
            return Err(failure)
        state = self._edit(application_id, edit_id, "apks.list")
        if isinstance(state, Err):
            return state
        return Ok([state.value.artifacts[vc] for vc in sorted(state.value.artifacts)])

    def upload_apk(
        self, application_id: str, edit_id: str, path: Path
    ) -> Result[RemoteArtifact, ApiError]:
        failure = self._record("apks.upload", edit_id, path)
        if failure is not None:
            return Err(failure)
        state = self._edit(application_id, edit_id, "apks.upload")
        if isinstance(state, Err):
            return state
        artifact = self._uploads.get(path)
        if artifact is None:
            return Err(
                ApiError(
                    operation="apks.upload",
                    status=400,
                    message="Bad Request",
                    details="APK could not be parsed",
                )
            )
        if artifact.version_code in state.value.artifacts:
            return Err(
                ApiError(
                    operation="apks.upload",
                    status=403,
                    message="Forbidden",
                    details="APK specifies a version code that has already been used.",
                )
            )
        state.value.artifacts[artifact.version_code] = artifact
        return Ok(artifact)

    def get_expansion_file(
        self,
        application_id: str,
        edit_id: str,
        version_code: int,
        file_type: ExpansionFileType,
    ) -> Result[ExpansionFileInfo, ApiError]:
        failure = self._record("expansionfiles.get", edit_id, version_code, file_type)
        if failure is not None:
            return Err(failure)
        state = self._edit(application_id, edit_id, "expansionfiles.get")
        if isinstance(state, Err):
            return state
        info = state.value.expansion_files.get((version_code, file_type.api_value))
        if info is None:
            return Err(
                ApiError(operation="expansionfiles.get", status=404, message="Not Found")
            )
        return Ok(info)

    def upload_expansion_file(
        self,
        application_id: str,
        edit_id: str,
        version_code: int,
        file_type: ExpansionFileType,
        path: Path,
    ) -> Result[None, ApiError]:
        failure = self._record("expansionfiles.upload", edit_id, version_code, file_type, path)
        if failure is not None:
            return Err(failure)
        state = self._edit(application_id, edit_id, "expansionfiles.upload")
        if isinstance(state, Err):
            return state
        size = path.stat().st_size if path.exists() else 1
        state.value.expansion_files[(version_code, file_type.api_value)] = ExpansionFileInfo(
            file_size=max(size, 1)
        )
        return Ok(None)

    def set_expansion_file_reference(
        self,
        application_id: str,
        edit_id: str,
        version_code: int,
        file_type: ExpansionFileType,
        references_version: int,
    ) -> Result[None, ApiError]:
        failure = self._record(
            "expansionfiles.update", edit_id, version_code, file_type, references_version
        )
        if failure is not None:
            return Err(failure)
        state = self._edit(application_id, edit_id, "expansionfiles.update")
        if isinstance(state, Err):
            return state
        state.value.expansion_files[(version_code, file_type.api_value)] = ExpansionFileInfo(
            references_version=references_version
        )
        return Ok(None)

    def list_tracks(self, application_id: str, edit_id: str) -> Result[list[Track], ApiError]:
        failure = self._record("tracks.list", edit_id)
        if failure is not None:
            return Err(failure)
        state = self._edit(application_id, edit_id, "tracks.list")
        if isinstance(state, Err):
            return state
        return Ok(list(state.value.tracks.values()))

    def update_track(
        self, application_id: str, edit_id: str, track: Track
    ) -> Result[Track, ApiError]:
        failure = self._record("tracks.update", edit_id, track)
        if failure is not None:
            return Err(failure)
        state = self._edit(application_id, edit_id, "tracks.update")
        if isinstance(state, Err):
            return state
        unknown = [vc for vc in track.version_codes if vc not in state.value.artifacts]
        if unknown:
            return Err(
                ApiError(
                    operation="tracks.update",
                    status=403,
                    message="Forbidden",
                    details=f"APK not found: {unknown[0]}",
                )
            )
        stored = replace(track, version_codes=tuple(sorted(set(track.version_codes))))
        state.value.tracks[track.name] = stored
        return Ok(stored)

    def commit_edit(self, application_id: str, edit_id: str) -> Result[None, ApiError]:
        failure = self._record("edits.commit", edit_id)
        state = self._edit(application_id, edit_id, "edits.commit")
        if failure is not None:
            if failure.timed_out and self.apply_commit_on_timeout and isinstance(state, Ok):
                self._publish(edit_id)
            return Err(failure)
        if isinstance(state, Err):
            return state
        self._publish(edit_id)
        return Ok(None)
