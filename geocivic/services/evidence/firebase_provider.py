import logging
from typing import Optional

from geocivic.services.errors import StorageUnavailable
from .base import EvidenceStore, unique_object_name

logger = logging.getLogger(__name__)


class FirebaseEvidenceStore(EvidenceStore):
    """
    Evidence uploaded to the Firebase Storage bucket.

    - Used when EVIDENCE_PROVIDER=firebase AND FIREBASE_STORAGE_BUCKET is set.
    - References are gs://<bucket>/<path> URIs.
    """

    def __init__(self, bucket, prefix: str = "evidence"):
        self.bucket = bucket
        self.prefix = prefix.strip("/")

    def store(self, data: bytes, filename: Optional[str] = None, content_type: Optional[str] = None) -> str:
        path = f"{self.prefix}/{unique_object_name(filename)}"
        try:
            blob = self.bucket.blob(path)
            blob.upload_from_string(data, content_type=content_type or "application/octet-stream")
        except Exception as e:
            logger.error(f"Firebase Storage upload failed for {path}: {e}", exc_info=True)
            raise StorageUnavailable(f"Evidence upload failed: {e}")

        logger.info(f"Evidence stored in bucket {self.bucket.name}: {path}")
        return f"gs://{self.bucket.name}/{path}"
