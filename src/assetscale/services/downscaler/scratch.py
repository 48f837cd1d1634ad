"""Per-run local scratch files."""

import logging
from pathlib import Path, PurePosixPath

from assetscale.services.downscaler.exceptions import InvalidEventError

logger = logging.getLogger(__name__)


def scratch_path(root: Path, object_key: str) -> Path:
    """Local path mirroring an object key under the scratch root.

    Object names may start with "/" or contain ".." segments. Leading slashes
    are dropped and parent references are rejected, so the result always
    stays under root.

    Raises:
        InvalidEventError: If the key is empty or would leave the scratch root
    """
    relative = PurePosixPath(object_key.lstrip("/"))
    if not relative.parts or ".." in relative.parts:
        raise InvalidEventError(f"Object key cannot be mapped to a scratch file: {object_key!r}")

    path = root / relative
    if not path.resolve().is_relative_to(root.resolve()):
        raise InvalidEventError(f"Object key escapes the scratch directory: {object_key!r}")
    return path


class ScratchSpace:
    """Local paths for the downloaded original and the scaled output of one run.

    Both paths mirror their object keys under the scratch root, so concurrent
    runs on different objects never share a file and a redelivered event
    overwrites what a failed attempt left behind.

    Use as a context manager: files are removed on exit whatever the outcome.
    ``release()`` may also be called earlier and is idempotent.
    """

    def __init__(self, root: Path, original_key: str, scaled_key: str):
        self.root = root
        self.original = scratch_path(root, original_key)
        self.scaled = scratch_path(root, scaled_key)

    def prepare(self) -> "ScratchSpace":
        """Create the parent directories of both scratch files."""
        self.original.parent.mkdir(parents=True, exist_ok=True)
        self.scaled.parent.mkdir(parents=True, exist_ok=True)
        return self

    def release(self) -> None:
        """Delete both scratch files if they exist."""
        for path in (self.scaled, self.original):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(
                    "Failed to remove scratch file",
                    extra={"path": str(path), "error": str(e)},
                )
        logger.debug("Released scratch files", extra={"original": str(self.original)})

    def __enter__(self) -> "ScratchSpace":
        return self.prepare()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
