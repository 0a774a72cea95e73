"""
HTTP document store: the same load()/save() contract as DocumentStore,
talking to a running taskpilot_server over /api/data.
"""
import logging
from typing import Any, Dict

import requests

from .normalizer import normalize
from .schema import Document
from .store import StoreError
from .validation import ValidationError

logger = logging.getLogger(__name__)


class ApiDocumentStore:
    """Remote store backed by GET/POST /api/data."""

    def __init__(self, base_url: str, timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    @property
    def url(self) -> str:
        return f"{self.base_url}/api/data"

    def load(self) -> Document:
        try:
            r = self.session.get(self.url, timeout=self.timeout)
        except requests.RequestException as e:
            raise StoreError(f"Failed to load document from {self.url}: {e}") from e
        if not r.ok:
            raise StoreError(f"Failed to load document: {r.status_code} {r.text}")
        try:
            payload = r.json()
        except ValueError as e:
            raise StoreError(f"Server returned invalid JSON: {e}") from e
        return normalize(payload)

    def save(self, partial: Dict[str, Any]) -> None:
        if not isinstance(partial, dict):
            raise ValidationError("Document update must be a JSON object")
        try:
            r = self.session.post(self.url, json=partial, timeout=self.timeout)
        except requests.RequestException as e:
            raise StoreError(f"Failed to save document to {self.url}: {e}") from e
        if not r.ok:
            raise StoreError(f"Failed to save document: {r.status_code} {r.text}")
        logger.debug(f"Saved keys {sorted(partial)} to {self.url}")
