# manages connection to db, provides helper methods internal to db package
import asyncio
import os
from contextlib import asynccontextmanager
from pathlib import Path
from sqlite3 import Row

import aiosqlite

from gamerental import config
from gamerental.utils.logger import get_logger

_logger = get_logger(__name__)

DB_PATH = config.DB_PATH
SCHEMA_SCRIPT = Path(__file__).with_name("schema.sql")
SEED_SCRIPT = Path(__file__).with_name("seed.sql")
LOAD_SEED_DATA = config.LOAD_SEED_DATA

_initialized = False
_init_lock = asyncio.Lock()


async def _init_db(conn: aiosqlite.Connection) -> None:
    scripts = [SCHEMA_SCRIPT]
    if LOAD_SEED_DATA:
        scripts.append(SEED_SCRIPT)
    for script in scripts:
        if not script.exists() or script.stat().st_size == 0:
            continue
        _logger.info(f"Initializing database with script {script.name}...")
        await conn.executescript(script.read_text(encoding="utf-8"))
    await conn.commit()


async def _table_exists(conn: aiosqlite.Connection, table_name: str) -> bool:
    cur = await conn.execute(
        """
        SELECT name
        FROM sqlite_master
        WHERE type = 'table'
          AND name = ?;
        """,
        (table_name,),
    )
    row = await cur.fetchone()
    await cur.close()
    return row is not None


@asynccontextmanager
async def connect() -> aiosqlite.Connection:
    """Async context manager yielding an aiosqlite connection with FK enabled.

    Ensures the database is initialized (tables and seed data) on first use.
    """
    global _initialized
    parent = os.path.dirname(os.path.abspath(DB_PATH))
    os.makedirs(parent, exist_ok=True)

    conn = await aiosqlite.connect(DB_PATH)
    conn.row_factory = Row
    try:
        await conn.execute("PRAGMA foreign_keys = ON;")

        if not _initialized:
            async with _init_lock:
                if not _initialized:
                    if not await _table_exists(conn, "Users"):
                        _logger.info(f"Initializing database at {DB_PATH}...")
                        await _init_db(conn)
                    _initialized = True

        yield conn
    finally:
        await conn.close()


@asynccontextmanager
async def transaction() -> aiosqlite.Connection:
    """Yield a connection inside one write transaction.

    BEGIN IMMEDIATE takes the database write lock up front, so reads made in the
    block (e.g. the current max id) cannot be invalidated by another writer
    before COMMIT. Any exception rolls every statement in the block back.
    """
    async with connect() as conn:
        await conn.execute("BEGIN IMMEDIATE;")
        try:
            yield conn
        except BaseException:
            await conn.rollback()
            raise
        else:
            await conn.commit()


async def check_connection() -> None:
    """Open the database once, creating it if needed. Raises if it is unusable."""
    async with connect() as conn:
        cur = await conn.execute("SELECT COUNT(*) FROM Users;")
        (users,) = await cur.fetchone()
        await cur.close()
    _logger.info(f"Connected to {DB_PATH} ({users} users)")
