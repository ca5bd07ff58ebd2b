"""Session Store boundary.

A store keeps one JSON-compatible document per session code. Writes are
field patches keyed by ``/``-separated paths and are applied atomically one
patch at a time; there are no cross-patch transactions. After each commit
every subscriber of that code gets the new snapshot (or ``None`` once the
document is gone), in commit order.
"""

import copy
import logging
import queue
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..game.errors import NotFound

logger = logging.getLogger(__name__)

Document = Dict[str, Any]
Listener = Callable[[Optional[Document]], None]

PATH_SEP = '/'


def split_path(path: str) -> List[str]:
    parts = [p for p in str(path).split(PATH_SEP) if p]
    if not parts:
        raise ValueError(f"Empty field path: {path!r}")
    return parts


def _prune(doc: Document, parts: List[str]) -> None:
    # Drop parent mappings emptied by a delete, deepest first.
    for depth in range(len(parts) - 1, 0, -1):
        node = doc
        for key in parts[:depth - 1]:
            node = node.get(key)
            if not isinstance(node, dict):
                return
        child = node.get(parts[depth - 1])
        if isinstance(child, dict) and not child:
            del node[parts[depth - 1]]
        else:
            return


def apply_patch(doc: Document, patch: Mapping[str, Any]) -> Document:
    """Apply a multi-path patch in place. ``None`` deletes the path."""
    for path, value in patch.items():
        parts = split_path(path)
        node = doc
        if value is None:
            for key in parts[:-1]:
                node = node.get(key) if isinstance(node, dict) else None
                if node is None:
                    break
            if isinstance(node, dict):
                node.pop(parts[-1], None)
                _prune(doc, parts)
            continue
        for key in parts[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        node[parts[-1]] = copy.deepcopy(value)
    return doc


class SessionStream:
    """Lazy, unbounded sequence of snapshots for one session code.

    Iterating blocks until the next snapshot arrives. ``close()`` releases
    the underlying watch and ends iteration; watch again to restart.
    """

    _CLOSED = object()

    def __init__(self, store: 'SessionStore', code: str):
        self.code = code
        self._queue: 'queue.Queue' = queue.Queue()
        self._closed = False
        self._unsubscribe = store.subscribe(code, self._queue.put)

    def __iter__(self):
        return self

    def __next__(self) -> Optional[Document]:
        if self._closed and self._queue.empty():
            raise StopIteration
        item = self._queue.get()
        if item is self._CLOSED:
            raise StopIteration
        return item

    def get(self, timeout: Optional[float] = None) -> Optional[Document]:
        """Next snapshot, or raise ``queue.Empty`` after ``timeout`` seconds."""
        item = self._queue.get(timeout=timeout)
        if item is self._CLOSED:
            raise StopIteration
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._unsubscribe()
        self._queue.put(self._CLOSED)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class SessionStore:
    """Abstract store.

    Subclasses implement read/write_new/patch/delete_document and call
    ``_notify`` while holding ``self._lock`` after each commit.
    """

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = {}
        self._lock = threading.RLock()

    # --- primitives -----------------------------------------------------
    def read(self, code: str) -> Document:
        raise NotImplementedError

    def exists(self, code: str) -> bool:
        try:
            self.read(code)
        except NotFound:
            return False
        return True

    def codes(self) -> List[str]:
        raise NotImplementedError

    def write_new(self, code: str, document: Document) -> None:
        raise NotImplementedError

    def patch(self, code: str, fields: Mapping[str, Any]) -> None:
        raise NotImplementedError

    def delete_document(self, code: str) -> None:
        raise NotImplementedError

    # --- derived operations ---------------------------------------------
    def write_field(self, code: str, path: str, value: Any) -> None:
        self.patch(code, {path: value})

    def delete_field(self, code: str, path: str) -> None:
        self.patch(code, {path: None})

    # --- change notification --------------------------------------------
    def subscribe(self, code: str, on_change: Listener) -> Callable[[], None]:
        """Register ``on_change`` and deliver the current value immediately."""
        with self._lock:
            self._listeners.setdefault(code, []).append(on_change)
            try:
                current = self.read(code)
            except NotFound:
                current = None
            on_change(current)

        def unsubscribe():
            with self._lock:
                listeners = self._listeners.get(code, [])
                if on_change in listeners:
                    listeners.remove(on_change)
                if not listeners:
                    self._listeners.pop(code, None)

        return unsubscribe

    def watch(self, code: str) -> SessionStream:
        return SessionStream(self, code)

    def _notify(self, code: str, document: Optional[Document]) -> None:
        with self._lock:
            listeners = list(self._listeners.get(code, []))
            for listener in listeners:
                try:
                    listener(copy.deepcopy(document))
                except Exception:
                    logger.exception(f"[store-notify] session={code} listener failed")
