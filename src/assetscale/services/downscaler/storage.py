"""Cloud Storage operations for Downscaler service."""

import logging
from datetime import datetime
from pathlib import Path

from google.cloud import storage
from google.cloud.exceptions import Forbidden, NotFound

from assetscale.services.downscaler.base import BlobStore
from assetscale.services.downscaler.exceptions import StorageError

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"


class GCSBlobStore(BlobStore):
    """Blob store backed by Google Cloud Storage.

    Calls are made once; redelivery of the triggering event is the only retry.
    """

    def __init__(self, project_id: str | None = None, signing_service_account_email: str = ""):
        """Initialize GCS client.

        Args:
            project_id: GCP project ID. If None, uses default credentials.
            signing_service_account_email: When set, signed URLs are produced via
                the IAM signBlob API as this account instead of a local key.
        """
        self.client = storage.Client(project=project_id)
        self.signing_service_account_email = signing_service_account_email

    def download(self, bucket_name: str, object_name: str, destination: Path) -> None:
        """Download a file from Cloud Storage.

        Raises:
            StorageError: If download fails
        """
        try:
            logger.info(
                "Downloading file from GCS",
                extra={
                    "bucket": bucket_name,
                    "object_name": object_name,
                    "destination": str(destination),
                },
            )
            blob = self.client.bucket(bucket_name).blob(object_name)

            destination.parent.mkdir(parents=True, exist_ok=True)
            blob.download_to_filename(str(destination))

            logger.info(
                "File downloaded successfully",
                extra={
                    "bucket": bucket_name,
                    "object_name": object_name,
                    "size_bytes": destination.stat().st_size,
                },
            )
        except NotFound as e:
            logger.error(
                "File not found in GCS",
                extra={"bucket": bucket_name, "object_name": object_name},
            )
            raise StorageError(f"File not found: gs://{bucket_name}/{object_name}") from e
        except Forbidden as e:
            logger.error(
                "Access forbidden to GCS file",
                extra={"bucket": bucket_name, "object_name": object_name},
            )
            raise StorageError(f"Access denied: gs://{bucket_name}/{object_name}") from e
        except Exception as e:
            logger.error(
                "Failed to download file from GCS",
                extra={"bucket": bucket_name, "object_name": object_name, "error": str(e)},
            )
            raise StorageError(f"Failed to download file: {e}") from e

    def upload(
        self,
        bucket_name: str,
        object_name: str,
        source: Path,
        content_type: str | None = None,
    ) -> storage.Blob:
        """Upload a local file to Cloud Storage.

        Returns:
            The uploaded blob

        Raises:
            StorageError: If upload fails
        """
        try:
            logger.info(
                "Uploading file to GCS",
                extra={
                    "bucket": bucket_name,
                    "object_name": object_name,
                    "source": str(source),
                    "content_type": content_type,
                },
            )
            blob = self.client.bucket(bucket_name).blob(object_name)
            blob.upload_from_filename(str(source), content_type=content_type)

            logger.info(
                "File uploaded successfully",
                extra={"gcs_uri": f"gs://{bucket_name}/{object_name}"},
            )
            return blob
        except Forbidden as e:
            logger.error(
                "Access forbidden when uploading to GCS",
                extra={"bucket": bucket_name, "object_name": object_name},
            )
            raise StorageError(f"Access denied: gs://{bucket_name}/{object_name}") from e
        except Exception as e:
            logger.error(
                "Failed to upload file to GCS",
                extra={"bucket": bucket_name, "object_name": object_name, "error": str(e)},
            )
            raise StorageError(f"Failed to upload file: {e}") from e

    def delete(self, bucket_name: str, object_name: str) -> None:
        """Delete an object from Cloud Storage.

        Raises:
            StorageError: If deletion fails
        """
        try:
            self.client.bucket(bucket_name).blob(object_name).delete()
            logger.info(
                "File deleted from GCS",
                extra={"bucket": bucket_name, "object_name": object_name},
            )
        except NotFound as e:
            logger.error(
                "File to delete not found in GCS",
                extra={"bucket": bucket_name, "object_name": object_name},
            )
            raise StorageError(f"File not found: gs://{bucket_name}/{object_name}") from e
        except Exception as e:
            logger.error(
                "Failed to delete file from GCS",
                extra={"bucket": bucket_name, "object_name": object_name, "error": str(e)},
            )
            raise StorageError(f"Failed to delete file: {e}") from e

    def signed_read_url(self, handle: storage.Blob, expires_at: datetime) -> str:
        """Generate a V2 signed GET URL.

        V4 signatures are capped at seven days, so far-future expiries need V2.

        Raises:
            StorageError: If signing fails
        """
        try:
            kwargs = {}
            if self.signing_service_account_email:
                kwargs["credentials"] = self._iam_signing_credentials()

            url = handle.generate_signed_url(
                version="v2",
                expiration=expires_at,
                method="GET",
                **kwargs,
            )
            logger.info(
                "Generated signed URL",
                extra={"object_name": handle.name, "expires_at": expires_at.isoformat()},
            )
            return url
        except Exception as e:
            logger.error(
                "Failed to generate signed URL",
                extra={"object_name": getattr(handle, "name", None), "error": str(e)},
            )
            raise StorageError(f"Failed to generate signed URL: {e}") from e

    def _iam_signing_credentials(self):
        """Build credentials that sign through the IAM signBlob API.

        The runtime service account needs roles/iam.serviceAccountTokenCreator
        on the signing account.
        """
        from google.auth import compute_engine, iam
        from google.auth.transport import requests as auth_requests
        from google.oauth2 import service_account

        credentials = compute_engine.Credentials()
        auth_request = auth_requests.Request()
        credentials.refresh(auth_request)

        signer = iam.Signer(
            request=auth_request,
            credentials=credentials,
            service_account_email=self.signing_service_account_email,
        )
        return service_account.Credentials(
            signer=signer,
            service_account_email=self.signing_service_account_email,
            token_uri=TOKEN_URI,
        )
