import copy
import logging
from typing import Any, Dict, Mapping

from ..game.errors import AlreadyExists, NotFound
from .base import Document, SessionStore, apply_patch

logger = logging.getLogger(__name__)


class InMemorySessionStore(SessionStore):
    """Process-local store; the base lock serializes every patch and notification."""

    def __init__(self):
        super().__init__()
        self._documents: Dict[str, Document] = {}

    def read(self, code: str) -> Document:
        with self._lock:
            doc = self._documents.get(code)
            if doc is None:
                raise NotFound(session_code=code)
            return copy.deepcopy(doc)

    def exists(self, code: str) -> bool:
        with self._lock:
            return code in self._documents

    def codes(self):
        with self._lock:
            return list(self._documents)

    def write_new(self, code: str, document: Document) -> None:
        with self._lock:
            if code in self._documents:
                raise AlreadyExists(session_code=code)
            self._documents[code] = copy.deepcopy(document)
            logger.debug(f"[store-create] session={code}")
            self._notify(code, self._documents[code])

    def patch(self, code: str, fields: Mapping[str, Any]) -> None:
        with self._lock:
            doc = self._documents.get(code)
            if doc is None:
                raise NotFound(session_code=code)
            apply_patch(doc, fields)
            self._notify(code, doc)

    def delete_document(self, code: str) -> None:
        with self._lock:
            if self._documents.pop(code, None) is not None:
                logger.debug(f"[store-delete] session={code}")
            self._notify(code, None)
