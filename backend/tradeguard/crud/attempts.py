# backend/tradeguard/crud/attempts.py
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import case, delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from tradeguard.models.failed_attempt import FailedAttempt
from tradeguard.security.rate_limit import AttemptState


def _to_state(row: FailedAttempt) -> AttemptState:
    return AttemptState(
        failed_count=row.failed_count,
        last_attempt=datetime.fromtimestamp(row.last_attempt, tz=timezone.utc),
    )


class DatabaseAttemptStore:
    """
    AttemptStore on the ``failed_attempts`` table, shared by every instance
    pointed at the same database. Each call runs in its own short session.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def get(self, key: str) -> AttemptState | None:
        with self._session_factory() as db:
            row = db.get(FailedAttempt, key)
            return _to_state(row) if row is not None else None

    def _bump(self, key: str, now: datetime, expired_before: datetime, max_attempts: int | None = None):
        # SET expressions see the pre-update row, so this is a single atomic step
        expired_ts = expired_before.timestamp()
        stmt = (
            update(FailedAttempt)
            .where(FailedAttempt.key == key)
            .values(
                failed_count=case(
                    (FailedAttempt.last_attempt <= expired_ts, 1),
                    else_=FailedAttempt.failed_count + 1,
                ),
                last_attempt=now.timestamp(),
            )
            .execution_options(synchronize_session=False)
        )
        if max_attempts is not None:
            stmt = stmt.where(
                or_(FailedAttempt.last_attempt <= expired_ts, FailedAttempt.failed_count < max_attempts)
            )
        return stmt

    def _read(self, db: Session, key: str) -> AttemptState:
        row = db.execute(select(FailedAttempt).where(FailedAttempt.key == key)).scalar_one()
        return _to_state(row)

    def increment(self, key: str, now: datetime, expired_before: datetime) -> AttemptState:
        stmt = self._bump(key, now, expired_before)

        with self._session_factory() as db:
            if db.execute(stmt).rowcount == 0:
                db.add(FailedAttempt(key=key, failed_count=1, last_attempt=now.timestamp()))
                try:
                    db.flush()
                except IntegrityError:
                    # another request inserted the row first
                    db.rollback()
                    db.execute(stmt)
            state = self._read(db, key)
            db.commit()
            return state

    def try_consume(
        self, key: str, now: datetime, expired_before: datetime, max_attempts: int
    ) -> AttemptState | None:
        stmt = self._bump(key, now, expired_before, max_attempts)

        with self._session_factory() as db:
            if db.execute(stmt).rowcount == 0:
                if db.get(FailedAttempt, key) is not None:
                    # budget spent within the window
                    db.rollback()
                    return None
                db.add(FailedAttempt(key=key, failed_count=1, last_attempt=now.timestamp()))
                try:
                    db.flush()
                except IntegrityError:
                    db.rollback()
                    if db.execute(stmt).rowcount == 0:
                        db.rollback()
                        return None
            state = self._read(db, key)
            db.commit()
            return state

    def delete(self, key: str) -> None:
        with self._session_factory() as db:
            db.execute(delete(FailedAttempt).where(FailedAttempt.key == key))
            db.commit()

    def delete_if_stale(self, key: str, expired_before: datetime) -> None:
        with self._session_factory() as db:
            db.execute(
                delete(FailedAttempt).where(
                    FailedAttempt.key == key,
                    FailedAttempt.last_attempt <= expired_before.timestamp(),
                )
            )
            db.commit()
