"""The single transactional edit a publishing task works in.

Google Play accepts one open edit per application at a time, and every change
(APK upload, expansion file, track assignment) is only made visible by
committing that edit. :class:`EditSession` owns the edit handle for the whole
task: all backend calls go through it, it refuses calls once the edit has been
committed, and it checks for cancellation before each blocking request.

Abandoned edits are not deleted; Google Play expires them on its own.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from pathlib import Path

from playpub.core.result import Err, Ok, Result
from playpub.services.publish.backend import PublisherBackend
from playpub.services.publish.errors import (
    CommitTimeout,
    Interrupted,
    PublishError,
    RemoteError,
    classify_api_error,
)
from playpub.services.publish.model import (
    Edit,
    ExpansionFileInfo,
    ExpansionFileType,
    RemoteArtifact,
    Track,
)


class EditSession:
    def __init__(
        self,
        backend: PublisherBackend,
        edit: Edit,
        *,
        cancel: threading.Event | None = None,
    ) -> None:
        self._backend = backend
        self._edit = edit
        self._cancel = cancel
        self._open = True

    @classmethod
    def open(
        cls,
        backend: PublisherBackend,
        application_id: str,
        *,
        cancel: threading.Event | None = None,
    ) -> Result[EditSession, PublishError]:
        """Open a new edit for ``application_id``.

        Fails with ``AuthError`` when the credential is rejected and
        ``RemoteError`` for any other backend failure.
        """
        if cancel is not None and cancel.is_set():
            return Err(Interrupted(stage="edits.insert"))

        result = backend.insert_edit(application_id)
        if isinstance(result, Err):
            return Err(classify_api_error(result.error))
        return Ok(cls(backend, Edit(id=result.value, application_id=application_id), cancel=cancel))

    @property
    def edit(self) -> Edit:
        return self._edit

    @property
    def application_id(self) -> str:
        return self._edit.application_id

    @property
    def is_open(self) -> bool:
        return self._open

    def _guard(self, operation: str) -> PublishError | None:
        if not self._open:
            return RemoteError(operation=operation, message=f"edit {self._edit.id} is no longer open")
        if self._cancel is not None and self._cancel.is_set():
            return Interrupted(stage=operation)
        return None

    def list_artifacts(self) -> Result[list[RemoteArtifact], PublishError]:
        blocked = self._guard("apks.list")
        if blocked is not None:
            return Err(blocked)
        result = self._backend.list_apks(self.application_id, self._edit.id)
        if isinstance(result, Err):
            return Err(classify_api_error(result.error))
        return Ok(result.value)

    def upload_apk(self, path: Path) -> Result[RemoteArtifact, PublishError]:
        blocked = self._guard("apks.upload")
        if blocked is not None:
            return Err(blocked)
        result = self._backend.upload_apk(self.application_id, self._edit.id, path)
        if isinstance(result, Err):
            return Err(classify_api_error(result.error))
        return Ok(result.value)

    def get_expansion_file(
        self, version_code: int, file_type: ExpansionFileType
    ) -> Result[ExpansionFileInfo | None, PublishError]:
        """Expansion file info for one APK, or None when it has none of that type."""
        blocked = self._guard("expansionfiles.get")
        if blocked is not None:
            return Err(blocked)
        result = self._backend.get_expansion_file(
            self.application_id, self._edit.id, version_code, file_type
        )
        if isinstance(result, Err):
            if result.error.is_not_found:
                return Ok(None)
            return Err(classify_api_error(result.error))
        return Ok(result.value)

    def upload_expansion_file(
        self, version_code: int, file_type: ExpansionFileType, path: Path
    ) -> Result[None, PublishError]:
        blocked = self._guard("expansionfiles.upload")
        if blocked is not None:
            return Err(blocked)
        result = self._backend.upload_expansion_file(
            self.application_id, self._edit.id, version_code, file_type, path
        )
        if isinstance(result, Err):
            return Err(classify_api_error(result.error))
        return Ok(None)

    def set_expansion_file_reference(
        self, version_code: int, file_type: ExpansionFileType, references_version: int
    ) -> Result[None, PublishError]:
        blocked = self._guard("expansionfiles.update")
        if blocked is not None:
            return Err(blocked)
        result = self._backend.set_expansion_file_reference(
            self.application_id, self._edit.id, version_code, file_type, references_version
        )
        if isinstance(result, Err):
            return Err(classify_api_error(result.error))
        return Ok(None)

    def list_tracks(self) -> Result[list[Track], PublishError]:
        blocked = self._guard("tracks.list")
        if blocked is not None:
            return Err(blocked)
        result = self._backend.list_tracks(self.application_id, self._edit.id)
        if isinstance(result, Err):
            return Err(classify_api_error(result.error))
        return Ok(result.value)

    def update_track(self, track: Track) -> Result[Track, PublishError]:
        blocked = self._guard("tracks.update")
        if blocked is not None:
            return Err(blocked)
        result = self._backend.update_track(self.application_id, self._edit.id, track)
        if isinstance(result, Err):
            return Err(classify_api_error(result.error))
        return Ok(result.value)

    def commit(
        self,
        expected_version_codes: Iterable[int] = (),
        *,
        expected_track: str | None = None,
    ) -> Result[None, PublishError]:
        """Commit the edit.

        A request that times out without any HTTP status is not a failure: the
        server may have applied it. It is returned as ``CommitTimeout`` carrying
        what reconciliation should look for. Once a commit has been attempted
        the session is closed, whatever the outcome.
        """
        blocked = self._guard("edits.commit")
        if blocked is not None:
            return Err(blocked)

        self._open = False
        result = self._backend.commit_edit(self.application_id, self._edit.id)
        if isinstance(result, Ok):
            return Ok(None)

        error = result.error
        if error.timed_out:
            return Err(
                CommitTimeout(
                    application_id=self.application_id,
                    expected_version_codes=tuple(sorted(set(expected_version_codes))),
                    expected_track=expected_track,
                    detail=str(error),
                )
            )
        return Err(classify_api_error(error))
