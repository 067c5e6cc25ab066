"""
Evidence storage providers.

The lifecycle only depends on EvidenceStore.store(); which backend is used
is decided by settings.EVIDENCE_PROVIDER (see resolver.py).
"""

from .base import EvidenceStore
from .resolver import get_evidence_store

__all__ = ["EvidenceStore", "get_evidence_store"]
