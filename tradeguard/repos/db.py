"""SQLite setup for the ledger.

Creates the schema on first boot and hands out row-factory connections.
"""

import pathlib
import sqlite3


_MIGRATION_DIR = pathlib.Path(__file__).resolve().parent.parent.parent / "db" / "migrations"


def init_db(db_path: str) -> None:
    """Create the ledger tables unless they already exist.

    Also creates the parent directory of a file-backed database.

    Args:
        db_path: Path to the SQLite database file.
    """
    if db_path != ":memory:":
        pathlib.Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    try:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name='trades'"
        )
        if cur.fetchone() is None:
            schema = _MIGRATION_DIR / "001_initial_schema.sql"
            conn.executescript(schema.read_text(encoding="utf-8"))
    finally:
        conn.close()


def get_connection(db_path: str) -> sqlite3.Connection:
    """Open a connection whose rows support access by column name.

    The caller closes it.  Used as a context manager it commits on success
    and rolls back on error, which is how multi-table writes stay atomic.
    """
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn
