"""Durable storage for finished sprint results.

Writes run in their own app context because they are issued from
background tasks, after the final standings are already on the wire.
"""

from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from tapsprint import db
from tapsprint.models import SprintResult
from .errors import PersistenceWriteFailure


class SprintResultStore:
    def __init__(self, app, attempts: int = 2):
        self.app = app
        self.attempts = max(1, int(attempts))

    def write_result(self, session_id: str, user_id: Optional[int], tap_count: int,
                     display_name: Optional[str] = None, rank: Optional[int] = None) -> int:
        """Insert one result row, retrying a bounded number of times.

        Raises PersistenceWriteFailure when every attempt failed.
        """
        last_error = None
        for attempt in range(1, self.attempts + 1):
            with self.app.app_context():
                try:
                    row = SprintResult(
                        session_id=session_id,
                        user_id=user_id,
                        display_name=display_name,
                        tap_count=tap_count,
                        rank=rank,
                    )
                    db.session.add(row)
                    db.session.commit()
                    return row.id
                except SQLAlchemyError as exc:
                    db.session.rollback()
                    last_error = exc
                    self.app.logger.warning(
                        f"[result-retry] session={session_id} user={user_id} attempt={attempt}/{self.attempts} error={exc}"
                    )
        raise PersistenceWriteFailure(f'Failed to save result for session {session_id}') from last_error

    def read_results(self, session_id: str) -> List[dict]:
        with self.app.app_context():
            rows = (
                SprintResult.query.filter_by(session_id=session_id)
                .order_by(SprintResult.tap_count.desc(), SprintResult.rank.asc(), SprintResult.id.asc())
                .all()
            )
            return [r.to_dict() for r in rows]
