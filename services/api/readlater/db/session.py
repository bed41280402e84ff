from __future__ import annotations

from typing import Callable, TypeVar

from readlater.core.config import settings
from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker

T = TypeVar("T")

engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
)

# Rows handed back by run_in_transaction outlive their session.
SessionLocal = sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
)


def set_current_user(db: Session, user_id: str) -> None:
    """Expose the acting user to row-level security policies for this transaction."""
    if db.get_bind().dialect.name != "postgresql":
        return
    db.execute(
        text("SELECT set_config('readlater.current_user_id', :user_id, true)"),
        {"user_id": user_id},
    )


def run_in_transaction(
    work: Callable[[Session], T],
    *,
    user_id: str | None = None,
    session_factory: Callable[[], Session] | None = None,
) -> T:
    """Run ``work`` inside one transaction scoped to ``user_id``.

    Commits when ``work`` returns and rolls back when it raises; the error
    propagates unchanged.
    """
    factory = session_factory or SessionLocal
    with factory() as db:
        with db.begin():
            if user_id is not None:
                set_current_user(db, user_id)
            result = work(db)
        return result
