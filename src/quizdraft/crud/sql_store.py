from __future__ import annotations

import copy
import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from quizdraft.crud.store import DocumentStore, Record, check_record, deep_merge
from quizdraft.crud.tables import QuizRow
from quizdraft.errors import PersistenceError


logger = logging.getLogger(__name__)


class SQLDocumentStore(DocumentStore):
    """Quiz records in the `quizzes` table; one short session per operation.

    Work runs inline on the event loop: SQLite connections are bound to the
    thread that opened them.
    """

    def __init__(self, engine):
        self.engine = engine

    async def get(self, doc_id: str) -> Record | None:
        try:
            with Session(self.engine) as session:
                row = session.get(QuizRow, doc_id)
                return copy.deepcopy(row.record) if row else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read quiz {doc_id}") from e

    async def set(self, doc_id: str, record: Record, merge: bool = True) -> None:
        check_record(record)
        try:
            with Session(self.engine) as session:
                row = session.get(QuizRow, doc_id)
                if row is None:
                    row = QuizRow(id=doc_id)
                elif merge:
                    record = deep_merge(row.record or {}, record)
                row.record = copy.deepcopy(record)
                row.owner_id = record.get("owner_id") or ""
                row.is_published = bool(record.get("is_published"))
                row.updated_at = datetime.now()
                session.add(row)
                session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to write quiz {doc_id}") from e
        logger.debug("Wrote quiz %s (merge=%s)", doc_id, merge)

    async def query(self, owner_id: str, is_published: bool | None = None) -> list[Record]:
        stmt = select(QuizRow).where(QuizRow.owner_id == owner_id)
        if is_published is not None:
            stmt = stmt.where(QuizRow.is_published == is_published)
        try:
            with Session(self.engine) as session:
                rows = session.exec(stmt.order_by(QuizRow.created_at)).all()
                return [copy.deepcopy(r.record) for r in rows]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to query quizzes for {owner_id}") from e
