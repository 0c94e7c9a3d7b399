"""Async access to the SUGGESTED_PROMPT table."""

from __future__ import annotations

from typing import Optional, Tuple

from utils.database_init import AsyncDatabaseInitializer


class SuggestedPromptDAL:
    """Read example prompts offered to users who need inspiration."""

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def get_random(self) -> Optional[Tuple[int, str]]:
        """Return `(id, text)` of a random suggested prompt, or None when the table is empty."""
        async with self._db.connection() as conn:
            cur = await conn.execute("SELECT id, text FROM SUGGESTED_PROMPT ORDER BY RANDOM() LIMIT 1")
            row = await cur.fetchone()
            return (row[0], row[1]) if row else None

    async def add(self, text: str) -> None:
        """Insert a suggestion; duplicates are ignored."""
        text = (text or "").strip()
        if not text:
            raise ValueError("Suggested prompt text must not be empty.")
        async with self._db.connection() as conn:
            await conn.execute("INSERT OR IGNORE INTO SUGGESTED_PROMPT (text) VALUES (?)", (text,))
            await conn.commit()
