"""
Row change notifications for the relational backend.

Every ORM session bound to the watched database, whichever store opened it,
records the rows it flushes. Once the transaction commits, one ChangeEvent
per row is delivered to the subscribers of that row's table. Rolled back
work is never announced.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

SESSION_EVENTS = ("after_flush", "after_commit", "after_rollback")


@dataclass(frozen=True)
class ChangeEvent:
    kind: str  # insert | update | delete
    schema: str
    table: str


ChangeCallback = Callable[[ChangeEvent], None]


def _database_key(engine: Engine) -> str:
    return engine.url.render_as_string(hide_password=True)


class ChangeFeed:
    def __init__(self, engine: Engine, schema: str = "public"):
        self.database = _database_key(engine)
        self.schema = schema
        self._subscribers: Dict[str, List[ChangeCallback]] = {}
        self._lock = threading.Lock()
        self._info_key = ("coworking.changes", id(self))
        self._listening = False
        self._handlers = {
            "after_flush": self._after_flush,
            "after_commit": self._after_commit,
            "after_rollback": self._after_rollback,
        }

    def start(self):
        if self._listening:
            return
        for name in SESSION_EVENTS:
            event.listen(Session, name, self._handlers[name])
        self._listening = True
        logger.debug(f"Listening for row changes on {self.database}")

    def close(self):
        if not self._listening:
            return
        for name in SESSION_EVENTS:
            if event.contains(Session, name, self._handlers[name]):
                event.remove(Session, name, self._handlers[name])
        self._listening = False
        with self._lock:
            self._subscribers.clear()

    def subscribe(self, table: str, callback: ChangeCallback) -> Callable[[], None]:
        with self._lock:
            self._subscribers.setdefault(table, []).append(callback)
        self.start()

        def unsubscribe():
            with self._lock:
                callbacks = self._subscribers.get(table, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    def _watches(self, session: Session) -> bool:
        bind = session.bind
        return bind is not None and _database_key(bind) == self.database

    def _after_flush(self, session: Session, _flush_context):
        if not self._watches(session):
            return
        pending: List[Tuple[str, str]] = session.info.setdefault(self._info_key, [])
        for obj in session.new:
            pending.append(("insert", obj.__tablename__))
        for obj in session.dirty:
            if session.is_modified(obj):
                pending.append(("update", obj.__tablename__))
        for obj in session.deleted:
            pending.append(("delete", obj.__tablename__))

    def _after_commit(self, session: Session):
        pending = session.info.pop(self._info_key, None)
        if not pending:
            return
        for kind, table in pending:
            self._dispatch(ChangeEvent(kind=kind, schema=self.schema, table=table))

    def _after_rollback(self, session: Session):
        session.info.pop(self._info_key, None)

    def _dispatch(self, change: ChangeEvent):
        with self._lock:
            callbacks = list(self._subscribers.get(change.table, []))
        for callback in callbacks:
            try:
                callback(change)
            except Exception:  # pylint: disable=broad-except
                # a failing subscriber must not break the committing session
                logger.exception(f"Change subscriber failed for {change.table}")
