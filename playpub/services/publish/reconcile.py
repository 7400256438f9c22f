"""Resolution of commits whose acknowledgement was lost to a timeout.

A commit request can time out after Google Play has applied it. Instead of
reporting a failure straight away, a fresh edit is opened (read-only use: it
is never committed) and the expected changes are looked for:

- artifact mode: at least one of the expected version codes is now listed
- track mode: every expected version code is on the expected track

The fresh edit is simply abandoned afterwards.
"""

from __future__ import annotations

import threading
from dataclasses import replace

from playpub.core.result import Err, Ok, Result
from playpub.output.console import ConsoleProtocol
from playpub.services.publish.backend import PublisherBackend
from playpub.services.publish.errors import (
    CommitTimeout,
    Interrupted,
    PublishError,
    describe_error,
)
from playpub.services.publish.model import join_codes
from playpub.services.publish.session import EditSession


def _applied(session: EditSession, timeout: CommitTimeout) -> Result[bool, PublishError]:
    expected = set(timeout.expected_version_codes)
    if timeout.expected_track is not None:
        tracks = session.list_tracks()
        if isinstance(tracks, Err):
            return tracks
        for track in tracks.value:
            if track.name == timeout.expected_track:
                return Ok(bool(expected) and expected <= set(track.version_codes))
        return Ok(False)

    artifacts = session.list_artifacts()
    if isinstance(artifacts, Err):
        return artifacts
    listed = {a.version_code for a in artifacts.value}
    return Ok(bool(expected & listed))


def reconcile_commit(
    backend: PublisherBackend,
    timeout: CommitTimeout,
    *,
    console: ConsoleProtocol,
    cancel: threading.Event | None = None,
) -> Result[None, PublishError]:
    """Decide whether a timed-out commit was applied.

    Returns ``Ok(None)`` when the expected changes are visible on Google Play.
    Otherwise returns the timeout with ``resolution`` set to ``"not_applied"``
    or, when the check itself could not be completed, ``"unresolved"``.
    ``Interrupted`` is passed through unchanged.
    """
    console.warning(f"An error occurred while applying changes: {timeout.detail or 'timed out'}")
    if timeout.expected_track is not None:
        console.print(
            f"Checking whether the {timeout.expected_track} release track now contains "
            f"the APK(s): {join_codes(timeout.expected_version_codes)}"
        )
    else:
        console.print(
            "Checking whether the APK(s) were uploaded anyway: "
            f"{join_codes(timeout.expected_version_codes)}"
        )

    opened = EditSession.open(backend, timeout.application_id, cancel=cancel)
    if isinstance(opened, Err):
        if isinstance(opened.error, Interrupted):
            return opened
        console.warning(f"Could not check: {describe_error(opened.error)}")
        return Err(replace(timeout, resolution="unresolved"))

    applied = _applied(opened.value, timeout)
    if isinstance(applied, Err):
        if isinstance(applied.error, Interrupted):
            return applied
        console.warning(f"Could not check: {describe_error(applied.error)}")
        return Err(replace(timeout, resolution="unresolved"))

    if not applied.value:
        return Err(replace(timeout, resolution="not_applied"))

    console.info("The changes were applied despite the timeout")
    return Ok(None)
