"""Durable storage for cooking session snapshots.

A key-value table keyed by session id: get, put (upsert), delete and
"recent, newest first". Storage errors surface as SessionPersistenceError.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import CookingSessionRecord
from ..schemas import CookingSession

logger = logging.getLogger("fryplan.store")


class SessionPersistenceError(Exception):
    """Reading or writing a cooking session failed; safe to retry."""


class SqlSessionStore:
    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    @contextmanager
    def _db(self, action: str):
        db = self._session_factory()
        try:
            yield db
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Cooking session {action} failed: {e}")
            raise SessionPersistenceError(f"Failed to {action} cooking session") from e
        finally:
            db.close()

    def get(self, session_id: str) -> Optional[CookingSession]:
        with self._db("load") as db:
            record = db.get(CookingSessionRecord, session_id)
            if record is None:
                return None
            return CookingSession.model_validate(record.snapshot)

    def put(self, session: CookingSession) -> None:
        snapshot = session.model_dump(mode="json")
        with self._db("save") as db:
            record = db.get(CookingSessionRecord, session.id)
            if record is None:
                record = CookingSessionRecord(id=session.id)
                db.add(record)
            record.status = session.status
            record.created_at = session.created_at
            record.updated_at = session.updated_at
            record.snapshot = snapshot
            db.commit()

    def delete(self, session_id: str) -> None:
        with self._db("delete") as db:
            record = db.get(CookingSessionRecord, session_id)
            if record is not None:
                db.delete(record)
                db.commit()

    def list_recent(self, limit: int = 10) -> list[CookingSession]:
        with self._db("list") as db:
            records = db.scalars(
                select(CookingSessionRecord)
                .order_by(CookingSessionRecord.created_at.desc())
                .limit(limit)
            ).all()
            return [CookingSession.model_validate(r.snapshot) for r in records]
