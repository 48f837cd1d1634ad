"""
Downscaler Service

Reacts to Cloud Storage OBJECT_FINALIZE events for user image uploads,
downscales images wider than the configured maximum, publishes them with a
long-lived signed URL and records that URL on the originating Firestore
document.
"""

from assetscale.services.downscaler.classifier import classify_event
from assetscale.services.downscaler.models import FilterDecision, RunResult, UploadEvent
from assetscale.services.downscaler.service import Collaborators, process_event

__all__ = [
    "UploadEvent",
    "RunResult",
    "FilterDecision",
    "Collaborators",
    "classify_event",
    "process_event",
]
