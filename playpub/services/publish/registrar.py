from __future__ import annotations

from collections.abc import Sequence

from playpub.core.result import Err, Ok, Result
from playpub.output.console import ConsoleProtocol, Style
from playpub.services.publish.errors import ConsistencyError, DuplicateArtifact, PublishError
from playpub.services.publish.model import LocalArtifact, RemoteArtifact
from playpub.services.publish.session import EditSession


class ArtifactIndex:
    """APKs Google Play already knows for the application, listed once per task.

    The list is taken at the start of the task (before anything is uploaded)
    and reused by the registrar and the expansion file lookup.
    """

    def __init__(self, session: EditSession) -> None:
        self._session = session
        self._artifacts: list[RemoteArtifact] | None = None

    def artifacts(self) -> Result[list[RemoteArtifact], PublishError]:
        if self._artifacts is None:
            listed = self._session.list_artifacts()
            if isinstance(listed, Err):
                return listed
            self._artifacts = sorted(listed.value, key=lambda a: a.version_code)
        return Ok(list(self._artifacts))

    def version_codes(self) -> Result[list[int], PublishError]:
        listed = self.artifacts()
        if isinstance(listed, Err):
            return listed
        return Ok([a.version_code for a in listed.value])


def _find_duplicate(
    artifacts: Sequence[LocalArtifact], existing: Sequence[RemoteArtifact]
) -> DuplicateArtifact | None:
    by_hash = {a.sha1.lower(): a.version_code for a in existing}
    seen: set[str] = set()
    for artifact in artifacts:
        sha1 = artifact.sha1.lower()
        if sha1 in by_hash:
            return DuplicateArtifact(
                name=artifact.name, sha1=sha1, existing_version_code=by_hash[sha1]
            )
        if sha1 in seen:
            return DuplicateArtifact(name=artifact.name, sha1=sha1)
        seen.add(sha1)
    return None


def register_artifacts(
    *,
    session: EditSession,
    index: ArtifactIndex,
    artifacts: Sequence[LocalArtifact],
    console: ConsoleProtocol,
) -> Result[list[int], PublishError]:
    """Upload APKs into the open edit.

    Every candidate is checked against the hashes of existing APKs (and of the
    other candidates) before the first upload, so a duplicate fails the task
    without uploading anything. The version code Google Play reports for each
    upload must match the one read locally.

    Returns:
        The newly registered version codes, ascending.
    """
    existing = index.artifacts()
    if isinstance(existing, Err):
        return existing

    console.print(
        f"Uploading {len(artifacts)} APK(s) with application ID: {session.application_id}"
    )
    for artifact in artifacts:
        console.print(f"      APK file: {artifact.name}", Style.DIM)
        console.print(f"    SHA-1 hash: {artifact.sha1}", Style.DIM)
        console.print(f"   versionCode: {artifact.version_code}", Style.DIM)
        console.print(f" minSdkVersion: {artifact.min_sdk_version}", Style.DIM)
        console.newline()

    duplicate = _find_duplicate(artifacts, existing.value)
    if duplicate is not None:
        return Err(duplicate)

    uploaded: list[int] = []
    for artifact in artifacts:
        result = session.upload_apk(artifact.path)
        if isinstance(result, Err):
            return result
        remote = result.value
        if remote.version_code != artifact.version_code:
            return Err(
                ConsistencyError(
                    name=artifact.name,
                    local_version_code=artifact.version_code,
                    remote_version_code=remote.version_code,
                )
            )
        uploaded.append(remote.version_code)

    return Ok(sorted(uploaded))
