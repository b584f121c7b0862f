from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session


@contextmanager
def smart_transaction(session: Session) -> Iterator[Session]:
    """
    Run a block of cart/order writes atomically.

    Opens a SAVEPOINT when the session already has a transaction (e.g. a route
    that read the cart first), otherwise a regular transaction that commits on
    exit. Rolls back on any exception raised inside the block.

        with smart_transaction(db):
            repo.add_line(cart, ...)
    """
    cm = session.begin_nested() if session.in_transaction() else session.begin()
    with cm:
        yield session
