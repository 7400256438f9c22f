"""Publishing APKs to Google Play release tracks."""

from playpub.services.publish.backend import MockPublisherBackend, PublisherBackend
from playpub.services.publish.errors import ApiError, PublishError
from playpub.services.publish.model import (
    EvictionPolicy,
    ExpansionFileSet,
    ExpansionFileType,
    LocalArtifact,
    ReductionPolicy,
    Track,
    TrackName,
)
from playpub.services.publish.task import (
    MoveRequest,
    PublishOutcome,
    UploadRequest,
    move_to_track,
    upload_artifacts,
)

__all__ = [
    # Backend
    "PublisherBackend",
    "MockPublisherBackend",
    "ApiError",
    "PublishError",
    # Model
    "TrackName",
    "Track",
    "ExpansionFileType",
    "ExpansionFileSet",
    "LocalArtifact",
    "EvictionPolicy",
    "ReductionPolicy",
    # Tasks
    "UploadRequest",
    "MoveRequest",
    "PublishOutcome",
    "upload_artifacts",
    "move_to_track",
]
