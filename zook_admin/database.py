"""
Database engine initialisation, schema creation, and connectivity checks.
"""

import sys

from sqlalchemy import create_engine, text

from zook_admin.config import get_env
from zook_admin.schema import metadata


def init_engine(db_uri: str = None):
    """Create a SQLAlchemy engine and verify the connection."""
    db_uri = db_uri or get_env("DB_URI")
    engine = create_engine(db_uri, echo=False, future=True)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        print("ERROR: could not connect to DB:", e, file=sys.stderr)
        sys.exit(1)
    print("[init] Connected to DB.")
    return engine


def create_schema(engine) -> None:
    """Create every table that does not exist yet."""
    metadata.create_all(engine)
    print(f"[init] Schema ready ({len(metadata.tables)} tables).")


def ping(engine) -> bool:
    """Return True when the database answers a trivial query."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        print(f"[WARN] Database ping failed: {e}", file=sys.stderr)
        return False
