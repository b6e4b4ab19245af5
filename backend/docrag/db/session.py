# backend/docrag/db/session.py
from __future__ import annotations
import logging
import time
from urllib.parse import urlsplit, urlunsplit

from psycopg_pool import ConnectionPool
from docrag.config import settings

logger = logging.getLogger("docrag.db")


def mask_dsn(dsn: str) -> str:
    """Replace the password of a postgresql:// DSN with asterisks for logging."""
    parts = urlsplit(dsn)
    if not parts.password:
        return dsn
    netloc = parts.netloc.replace(f":{parts.password}@", ":*****@", 1)
    return urlunsplit(parts._replace(netloc=netloc))


class DatabasePool:
    """Process-wide psycopg3 connection pool, opened by the app lifespan
    when the pgvector backend is selected."""
    pool: ConnectionPool | None = None

    @classmethod
    def init(cls, dsn: str | None = None) -> ConnectionPool:
        if cls.pool:
            logger.info("Database pool already initialized.")
            return cls.pool

        dsn = dsn or settings.database_url
        logger.info(f"🔗 Opening pgvector pool at {mask_dsn(dsn)} "
                    f"(size {settings.db_pool_min_size}-{settings.db_pool_max_size})")
        cls.pool = ConnectionPool(
            conninfo=dsn,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            num_workers=2,
            timeout=30,
            open=True,
        )
        return cls.pool

    @classmethod
    def close(cls) -> None:
        if cls.pool is None:
            return
        cls.pool.close()
        cls.pool = None
        logger.info("🧹 Database pool closed.")


def ping_db() -> tuple[bool, str]:
    """Round-trip a trivial query through the pool; never raises."""
    if DatabasePool.pool is None:
        return False, "Pool not initialized"
    started = time.perf_counter()
    try:
        with DatabasePool.pool.connection() as conn:
            conn.execute("SELECT 1;").fetchone()
    except Exception as e:
        logger.warning(f"⚠️ Database ping failed: {e}")
        return False, str(e)
    elapsed_ms = (time.perf_counter() - started) * 1000
    return True, f"{settings.db_host}:{settings.db_port}/{settings.db_name} responded in {elapsed_ms:.1f} ms"
