"""Uniform select/insert/update access to the relational tables.

Every method is a coroutine so callers treat each data call as a
suspension point. The session is synchronous, so each operation runs in
the threadpool and the event loop keeps serving other requests while a
query is in flight. A per-store lock keeps the session to one thread at
a time.
"""

import logging
import threading
from contextlib import asynccontextmanager
from typing import Any, Callable

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from schoolportal.core.errors import DataStoreError
from schoolportal.models.message import Message
from schoolportal.models.profile import Profile
from schoolportal.models.registration import LearnerRegistration, StaffRegistration
from schoolportal.models.school_class import SchoolClass
from schoolportal.models.user import AuthSession, User
from schoolportal.models.user_role import RoleAssignment

logger = logging.getLogger(__name__)

TABLES = {
    'users': User,
    'auth_sessions': AuthSession,
    'profiles': Profile,
    'user_roles': RoleAssignment,
    'learner_registrations': LearnerRegistration,
    'staff_registrations': StaffRegistration,
    'classes': SchoolClass,
    'messages': Message,
}


def _model_for(table: str):
    try:
        return TABLES[table]
    except KeyError:
        raise ValueError(f'Unknown table: {table}') from None


class DataStore:
    def __init__(self, db: Session):
        self.db = db
        self._transaction_depth = 0
        self._lock = threading.Lock()

    async def _run(self, operation: Callable, *args: Any):
        def locked():
            with self._lock:
                return operation(*args)

        return await run_in_threadpool(locked)

    async def select(self, table: str, *, order_by: str | None = None, descending: bool = False, **filters: Any) -> list:
        model = _model_for(table)

        def run() -> list:
            # Rows always reflect the database, not the session's cached copies
            query = self.db.query(model).populate_existing()
            for column_name, value in filters.items():
                query = query.filter(getattr(model, column_name) == value)
            if order_by:
                column = getattr(model, order_by)
                query = query.order_by(column.desc() if descending else column.asc())
            return query.all()

        try:
            return await self._run(run)
        except SQLAlchemyError as exc:
            logger.exception('select on %s failed', table)
            raise DataStoreError() from exc

    async def select_one(self, table: str, **filters: Any):
        rows = await self.select(table, **filters)
        return rows[0] if rows else None

    async def insert(self, table: str, **values: Any):
        model = _model_for(table)
        row = model(**values)

        def run() -> None:
            self.db.add(row)
            self.db.flush()
            self._commit()

        try:
            await self._run(run)
        except SQLAlchemyError as exc:
            await self._run(self._rollback)
            logger.exception('insert into %s failed', table)
            raise DataStoreError() from exc
        return row

    async def update(self, table: str, filters: dict[str, Any], patch: dict[str, Any]) -> int:
        model = _model_for(table)

        def run() -> int:
            query = self.db.query(model)
            for column_name, value in filters.items():
                query = query.filter(getattr(model, column_name) == value)
            changed = query.update(patch, synchronize_session='fetch')
            self._commit()
            return changed

        try:
            return await self._run(run)
        except SQLAlchemyError as exc:
            await self._run(self._rollback)
            logger.exception('update on %s failed', table)
            raise DataStoreError() from exc

    @asynccontextmanager
    async def transaction(self):
        """Group writes into one commit; any exception rolls all of them back."""
        self._transaction_depth += 1
        try:
            yield self
        except BaseException:
            self._transaction_depth -= 1
            if self._transaction_depth == 0:
                await self._run(self.db.rollback)
            raise
        self._transaction_depth -= 1
        await self._run(self._commit)

    def _commit(self) -> None:
        if self._transaction_depth:
            return
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise DataStoreError() from exc

    def _rollback(self) -> None:
        if not self._transaction_depth:
            self.db.rollback()
