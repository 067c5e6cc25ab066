from abc import ABC, abstractmethod
from typing import Optional
import os
import re
import uuid


class EvidenceStore(ABC):
    """
    Abstract photo evidence store.

    Contract:
    - Input: raw image bytes plus the client's filename and content type
    - Output: a reference string that can later be used to retrieve the image
    - Raises StorageUnavailable when the backend cannot accept the upload
    """

    @abstractmethod
    def store(self, data: bytes, filename: Optional[str] = None, content_type: Optional[str] = None) -> str:
        raise NotImplementedError


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def unique_object_name(filename: Optional[str]) -> str:
    """uuid-prefixed, path-free object name for an uploaded file."""
    base = os.path.basename(filename or "") or "evidence.jpg"
    return f"{uuid.uuid4().hex}_{_UNSAFE_CHARS.sub('_', base)}"
