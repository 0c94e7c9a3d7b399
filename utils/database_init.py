import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Iterable, Optional

import aiosqlite

LOGGER = logging.getLogger(__name__)

DEFAULT_SUGGESTED_PROMPTS = (
    "a red fox sitting in a snowy forest at dawn, watercolor",
    "an isometric icon of a tiny lighthouse on a rock, soft pastel colors",
    "a retro robot watering plants on a balcony, 1970s sci-fi poster",
    "a cup of coffee with latte art shaped like a planet, studio photo",
    "a paper origami whale swimming through clouds",
    "a cozy cabin interior lit by a fireplace, oil painting",
)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS IMAGE (
        id TEXT PRIMARY KEY,
        owner_id TEXT NOT NULL,
        prompt TEXT NOT NULL,
        url TEXT NOT NULL,
        blob_key TEXT NOT NULL,
        hidden INTEGER NOT NULL DEFAULT 0,
        created_at INTEGER NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_image_owner ON IMAGE(owner_id, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_image_public ON IMAGE(hidden, created_at)",
    """
    CREATE TABLE IF NOT EXISTS CREDIT_BALANCE (
        user_id TEXT PRIMARY KEY,
        credits INTEGER NOT NULL DEFAULT 0 CHECK (credits >= 0),
        updated_at INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS PAYMENT_EVENT (
        event_id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        credits INTEGER NOT NULL,
        created_at INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS SUGGESTED_PROMPT (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        text TEXT NOT NULL UNIQUE
    )
    """,
)


class AsyncDatabaseInitializer:
    """
    Manage the async SQLite database stored at `<db_dir>/app.db`.

    - `db_dir` must be a directory (it is created when missing). A
      RuntimeError is raised if it points to a file or cannot be created.
    - On the first call to `ensure_database()` for a given instance:
        * When `reset=True`, any existing database file is deleted.
        * The IMAGE, CREDIT_BALANCE, PAYMENT_EVENT and SUGGESTED_PROMPT
          tables are created if missing.
        * SUGGESTED_PROMPT is seeded when empty.
    - Subsequent calls to `ensure_database()` on the same instance are no-ops,
      so it is safe for `connection()` to call it.
    """

    def __init__(
        self,
        db_dir: Path | str,
        *,
        reset: bool = False,
        seed_prompts: Optional[Iterable[str]] = None,
    ) -> None:
        db_dir = Path(db_dir).expanduser()

        if db_dir.exists() and not db_dir.is_dir():
            raise RuntimeError(
                f"DATABASE_DIR points to a file, not a directory ({db_dir}). "
                "Please set DATABASE_DIR to a directory path."
            )

        try:
            db_dir.mkdir(parents=True, exist_ok=True)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to create or access database directory at {db_dir}"
            ) from exc

        self.db_dir = db_dir
        self.db_path = self.db_dir / "app.db"
        self.reset = reset
        self.seed_prompts = tuple(DEFAULT_SUGGESTED_PROMPTS if seed_prompts is None else seed_prompts)

        # Internal flag to make schema creation one-time per instance.
        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def ensure_database(self) -> None:
        """
        Ensure the SQLite database exists at `self.db_path` with the full schema.

        Subsequent calls on the same instance are no-ops.
        """
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return

            if self.reset and self.db_path.exists():
                try:
                    self.db_path.unlink()
                except Exception as exc:
                    raise RuntimeError(
                        f"Failed to delete existing database at {self.db_path}"
                    ) from exc

            max_attempts = 3
            for attempt in range(1, max_attempts + 1):
                try:
                    async with aiosqlite.connect(self.db_path) as db:
                        await db.execute("PRAGMA journal_mode=WAL;")
                        for statement in _SCHEMA:
                            await db.execute(statement)

                        cur = await db.execute("SELECT COUNT(*) FROM SUGGESTED_PROMPT")
                        row = await cur.fetchone()
                        if not row or row[0] == 0:
                            await db.executemany(
                                "INSERT OR IGNORE INTO SUGGESTED_PROMPT (text) VALUES (?)",
                                [(text,) for text in self.seed_prompts],
                            )

                        await db.commit()
                    break
                except FileNotFoundError:
                    # On some platforms a transient missing file error may occur; retry a few times.
                    if attempt >= max_attempts:
                        raise
                    await asyncio.sleep(0.1 * attempt)

            LOGGER.info("Database ready at %s", self.db_path)
            self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Async context manager yielding an `aiosqlite.Connection`.

        The schema is created on first use via `ensure_database()`.
        """
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path)
        try:
            yield conn
        finally:
            await conn.close()
