"""
database.py — SQLAlchemy model and session management for stored settings.
"""
from pathlib import Path

from sqlalchemy import create_engine, Column, String, Text, DateTime
from sqlalchemy.orm import declarative_base, sessionmaker
from datetime import datetime, timezone
from config import DB_URL

Base = declarative_base()


class Setting(Base):
    """One persisted preference, stored as text like browser storage."""
    __tablename__ = "settings"

    key        = Column(String, primary_key=True)
    value      = Column(Text, nullable=False)
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


engine  = None
Session = sessionmaker()


def init_db(url: str = DB_URL):
    """Bind the session factory to *url* and create missing tables."""
    global engine

    if url.startswith("sqlite:///") and url != "sqlite:///:memory:":
        Path(url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, echo=False)
    Session.configure(bind=engine)
    Base.metadata.create_all(engine)
    return engine


def get_session():
    if engine is None:
        init_db()
    return Session()


# ---------------------------------------------------------------------------
# Key/value helpers
# ---------------------------------------------------------------------------

def read_settings() -> dict[str, str]:
    session = get_session()
    try:
        return {row.key: row.value for row in session.query(Setting).all()}
    finally:
        session.close()


def write_settings(values: dict[str, str]) -> None:
    """Upsert several keys in a single session."""
    session = get_session()
    try:
        for key, value in values.items():
            row = session.get(Setting, key)
            if row:
                row.value = value
            else:
                session.add(Setting(key=key, value=value))
        session.commit()
    finally:
        session.close()


def clear_settings() -> None:
    session = get_session()
    try:
        session.query(Setting).delete()
        session.commit()
    finally:
        session.close()
