"""Session Store implementations behind one boundary (see ``base``)."""

from .base import SessionStore, SessionStream, apply_patch
from .memory import InMemorySessionStore


def build_store(kind: str) -> SessionStore:
    if kind == 'memory':
        return InMemorySessionStore()
    if kind == 'sql':
        from .sql import SqlSessionStore
        return SqlSessionStore()
    raise ValueError(f"Unknown SESSION_STORE: {kind!r}")


__all__ = ['InMemorySessionStore', 'SessionStore', 'SessionStream', 'apply_patch', 'build_store']
