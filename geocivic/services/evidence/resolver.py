import logging
from typing import Optional

from geocivic.core.settings import settings
from .base import EvidenceStore
from .local_provider import LocalEvidenceStore

logger = logging.getLogger(__name__)

_store_instance: Optional[EvidenceStore] = None


def get_evidence_store() -> EvidenceStore:
    """
    Resolve the active evidence store based on settings.

    Rules:
    - Default: local disk under EVIDENCE_UPLOAD_DIR.
    - If EVIDENCE_PROVIDER='firebase' AND FIREBASE_STORAGE_BUCKET is set:
      - Try Firebase Storage; if initialization fails, fall back to local disk.
    """
    global _store_instance
    if _store_instance is not None:
        return _store_instance

    provider_name = (settings.EVIDENCE_PROVIDER or "local").lower()

    if provider_name == "firebase" and settings.FIREBASE_STORAGE_BUCKET:
        try:
            from geocivic.config.firebase import get_storage_bucket
            from .firebase_provider import FirebaseEvidenceStore

            _store_instance = FirebaseEvidenceStore(get_storage_bucket())
            logger.info("Evidence store initialized: firebase")
            return _store_instance
        except Exception as e:
            logger.warning(f"Failed to initialize FirebaseEvidenceStore: {e}. Falling back to local disk.")

    _store_instance = LocalEvidenceStore(settings.EVIDENCE_UPLOAD_DIR)
    logger.info(f"Evidence store initialized: local ({settings.EVIDENCE_UPLOAD_DIR})")
    return _store_instance
