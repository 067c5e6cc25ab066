import logging
import os
from typing import Optional

from geocivic.services.errors import StorageUnavailable
from .base import EvidenceStore, unique_object_name

logger = logging.getLogger(__name__)


class LocalEvidenceStore(EvidenceStore):
    """
    Evidence written to a directory on local disk.

    - Default provider; needs no cloud credentials.
    - References are served paths of the form /uploads/<object name>.
    """

    def __init__(self, upload_dir: str, url_prefix: str = "/uploads"):
        self.upload_dir = upload_dir
        self.url_prefix = url_prefix.rstrip("/")

    def store(self, data: bytes, filename: Optional[str] = None, content_type: Optional[str] = None) -> str:
        name = unique_object_name(filename)
        try:
            os.makedirs(self.upload_dir, exist_ok=True)
            with open(os.path.join(self.upload_dir, name), "wb") as f:
                f.write(data)
        except OSError as e:
            logger.error(f"Failed to write evidence {name} to {self.upload_dir}: {e}")
            raise StorageUnavailable(f"Evidence upload failed: {e}")

        logger.info(f"Evidence stored locally: {name} ({len(data)} bytes)")
        return f"{self.url_prefix}/{name}"
