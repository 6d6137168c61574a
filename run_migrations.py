"""Simple migration runner for SQLite using provided SQL files in migrations/"""
from pathlib import Path
import logging
import sqlite3

from app.config import settings

BASE = Path(__file__).parent
MIGRATIONS = sorted((BASE / "migrations").glob("*.sql"))
logger = logging.getLogger("app.migrations")


def sqlite_path(url: str) -> Path:
    """Return the file path of a `sqlite:///` URL."""
    prefix = "sqlite:///"
    if not url.startswith(prefix) or url == prefix + ":memory:":
        raise RuntimeError(f"migrations only support file-backed SQLite, got {url}")
    return Path(url[len(prefix):])


def run(db_path: Path = None) -> None:
    """Execute SQL migration files against the SQLite database.

    The function applies every `migrations/*.sql` file in lexical
    order. The files are idempotent, so running this twice is safe.
    """
    db_path = db_path or sqlite_path(settings.DATABASE_URL)
    logger.info("Using database: %s", db_path)
    conn = sqlite3.connect(db_path)
    try:
        cur = conn.cursor()
        for m in MIGRATIONS:
            logger.info("Applying: %s", m.name)
            cur.executescript(m.read_text(encoding="utf-8"))
        conn.commit()
    finally:
        conn.close()
    logger.info("Migrations applied.")


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    run()
