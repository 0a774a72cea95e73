"""
TaskPilot document storage backend (single JSON file).

The whole document is read and rewritten on every save. Saves merge
per top-level key: keys missing from the partial payload keep their
stored value.
"""
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from . import seed
from .normalizer import normalize
from .schema import DOCUMENT_KEYS, Document
from .validation import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "taskpilot.dev.db"


class StoreError(Exception):
    """Raised when the document cannot be read or written."""
    pass


class DocumentStore:
    """File-backed store for the TaskPilot document."""

    def __init__(self, path: Optional[str] = None):
        if path is None:
            path = os.environ.get("TASKPILOT_DB", DEFAULT_DB_PATH)
        self.path = Path(path).expanduser().resolve()
        # Read-merge-write must not interleave between server threads
        self._lock = threading.Lock()

    def _read_raw(self) -> Optional[Any]:
        """Parsed file contents, or None if the file does not exist yet."""
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StoreError(f"Failed to read {self.path}: {e}") from e
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise StoreError(f"Corrupt document in {self.path}: {e}") from e

    def _write(self, document: Document) -> None:
        """Replace the file in one step so readers never see half a document."""
        payload = json.dumps(document.to_dict(), indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".taskpilot-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StoreError(f"Failed to write {self.path}: {e}") from e

    def _current(self) -> Document:
        raw = self._read_raw()
        if raw is None:
            return normalize(seed.initial_data())
        return normalize(raw)

    def load(self) -> Document:
        """Return the stored document, seeding the file on first access."""
        with self._lock:
            raw = self._read_raw()
            if raw is not None:
                return normalize(raw)
            document = normalize(seed.initial_data())
            self._write(document)
            logger.info(f"Seeded new document at {self.path}")
            return document

    def save(self, partial: Dict[str, Any]) -> None:
        """Merge the given top-level keys over the stored document and write it."""
        if not isinstance(partial, dict):
            raise ValidationError("Document update must be a JSON object")
        with self._lock:
            merged = self._current().to_dict()
            for key in DOCUMENT_KEYS:
                if key in partial:
                    merged[key] = partial[key]
            self._write(normalize(merged))
        logger.debug(f"Saved keys {sorted(k for k in partial if k in DOCUMENT_KEYS)} to {self.path}")
