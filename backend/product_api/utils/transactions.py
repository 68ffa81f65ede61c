from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session


@contextmanager
def unit_of_work(session: Session) -> Iterator[Session]:
    """
    Commit the session when the block exits cleanly, roll back otherwise.
    Usage:
        with unit_of_work(db):
            ... DB work ...
    """
    try:
        yield session
        session.commit()
    except BaseException:
        session.rollback()
        raise
