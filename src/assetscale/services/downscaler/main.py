"""
Downscaler Cloud Run service entry point.

FastAPI application that receives Cloud Storage OBJECT_FINALIZE events
from Eventarc and runs the downscale pipeline synchronously. A non-2xx
response makes Eventarc redeliver the event, so pipeline failures map to
500 while malformed payloads map to 400.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, HTTPException, status

from assetscale.core.config import settings
from assetscale.core.logging import setup_logging
from assetscale.services.downscaler.classifier import classify_event
from assetscale.services.downscaler.exceptions import DownscalerException, InvalidEventError
from assetscale.services.downscaler.models import UploadEvent
from assetscale.services.downscaler.service import Collaborators, build_collaborators, process_event

setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the collaborators once at startup and log the service lifecycle."""
    app.state.collaborators = build_collaborators(settings)
    logger.info(
        "Downscaler service started",
        extra={
            "environment": settings.ENV,
            "gcp_project": settings.GCP_PROJECT_ID or "unknown",
            "resize_backend": app.state.collaborators.resizer.get_backend_name(),
        },
    )
    yield
    logger.info("Downscaler service shutting down")
    app.state.collaborators = None


app = FastAPI(
    title="Downscaler Service",
    description="Downscales uploaded images and publishes signed URLs",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)


def get_collaborators() -> Collaborators:
    """Return the collaborators built at startup, or build them if startup has not run."""
    collaborators = getattr(app.state, "collaborators", None)
    if collaborators is None:
        collaborators = build_collaborators(settings)
        app.state.collaborators = collaborators
    return collaborators


@app.get("/health")
async def health_check():
    """Health check endpoint for Cloud Run."""
    return {"status": "healthy", "service": "downscaler"}


@app.post("/")
async def handle_cloud_event(request: Request):
    """
    Handle a CloudEvent from Eventarc.

    Returns:
        200: Event processed or skipped
        400: Invalid event payload or unusable object key (not redelivered)
        500: Pipeline failure (redelivered by Eventarc)
    """
    event_id = request.headers.get("ce-id", "unknown")

    try:
        payload = await request.json()
        if event_id == "unknown" and isinstance(payload, dict):
            event_id = str(payload.get("id") or payload.get("generation") or "unknown")
        event = UploadEvent.from_payload(payload)
    except (InvalidEventError, ValueError) as e:
        logger.warning(
            "Failed to parse CloudEvent request",
            extra={"event_id": event_id, "error": str(e), "error_type": type(e).__name__},
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid request: {str(e)}",
        )

    logger.info(
        "CloudEvent received",
        extra={
            "event_id": event_id,
            "event_type": request.headers.get("ce-type", "unknown"),
            "bucket": event.bucket,
            "object_name": event.name,
        },
    )

    try:
        result = await asyncio.to_thread(process_event, event, get_collaborators())
    except InvalidEventError as e:
        logger.warning(
            "Object cannot be processed",
            extra={"event_id": event_id, "error": str(e), "http_status": 400},
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid object: {str(e)}",
        )
    except DownscalerException as e:
        logger.error(
            "Downscale failed",
            extra={"event_id": event_id, "error": str(e), "http_status": 500},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Downscale failed: {str(e)}",
        )
    except Exception as e:
        logger.error(
            "Unexpected error during downscale",
            extra={"event_id": event_id, "error": str(e), "http_status": 500},
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )

    if result is None:
        return {
            "status": "skipped",
            "event_id": event_id,
            "object_name": event.name,
            "reason": classify_event(event, settings.STAGING_DIR_NAME).value,
        }

    return {"status": "success", "event_id": event_id, **result.model_dump(by_alias=True)}



if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8080"))
    uvicorn.run(app, host="0.0.0.0", port=port)
