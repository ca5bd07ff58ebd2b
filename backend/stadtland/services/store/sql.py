import logging
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from stadtland import db
from stadtland.models import SessionRecord
from ..game.errors import AlreadyExists, NotFound, StoreUnavailable
from .base import Document, SessionStore, apply_patch

logger = logging.getLogger(__name__)


class SqlSessionStore(SessionStore):
    """Session documents persisted through Flask-SQLAlchemy.

    Must be used inside an application context. Each patch is one
    read-modify-commit on a single row; a failed commit is rolled back and
    surfaced as StoreUnavailable without retry.
    """

    def _record(self, code: str):
        return SessionRecord.query.filter_by(code=code).first()

    def _fail(self, op: str, code: str, exc: Exception):
        db.session.rollback()
        logger.error(f"[store-error] op={op} session={code} error={exc}")
        return StoreUnavailable(f'Session store failed during {op}', session_code=code, operation=op)

    def read(self, code: str) -> Document:
        try:
            record = self._record(code)
        except SQLAlchemyError as exc:
            raise self._fail('read', code, exc) from exc
        if record is None:
            raise NotFound(session_code=code)
        return record.load()

    def codes(self):
        try:
            return [r.code for r in SessionRecord.query.order_by(SessionRecord.id).all()]
        except SQLAlchemyError as exc:
            raise self._fail('list', '*', exc) from exc

    def write_new(self, code: str, document: Document) -> None:
        with self._lock:
            try:
                if self._record(code) is not None:
                    raise AlreadyExists(session_code=code)
                record = SessionRecord(code=code)
                record.dump(document)
                db.session.add(record)
                db.session.commit()
            except IntegrityError as exc:
                db.session.rollback()
                raise AlreadyExists(session_code=code) from exc
            except SQLAlchemyError as exc:
                raise self._fail('write_new', code, exc) from exc
            self._notify(code, document)

    def patch(self, code: str, fields: Mapping[str, Any]) -> None:
        with self._lock:
            try:
                record = self._record(code)
                if record is None:
                    raise NotFound(session_code=code)
                doc = apply_patch(record.load(), fields)
                record.dump(doc)
                db.session.add(record)
                db.session.commit()
            except SQLAlchemyError as exc:
                raise self._fail('patch', code, exc) from exc
            self._notify(code, doc)

    def delete_document(self, code: str) -> None:
        with self._lock:
            try:
                record = self._record(code)
                if record is not None:
                    db.session.delete(record)
                    db.session.commit()
            except SQLAlchemyError as exc:
                raise self._fail('delete', code, exc) from exc
            self._notify(code, None)
