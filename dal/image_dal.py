"""Async Data Access Layer for the IMAGE table.

Provides ImageDAL class with async CRUD and listing operations compatible
with `utils.database_init.AsyncDatabaseInitializer`.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import replace
from typing import List, Optional, Sequence

from models.image_record import ImageRecord
from utils.database_init import AsyncDatabaseInitializer


class ImageDAL:
    """Data access layer for IMAGE records.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    _COLUMNS = (
        "id",
        "owner_id",
        "prompt",
        "url",
        "blob_key",
        "hidden",
        "created_at",
    )
    _COLUMN_LIST = ", ".join(_COLUMNS)
    # rowid breaks ties between rows created within the same millisecond.
    _NEWEST_FIRST = "ORDER BY created_at DESC, rowid DESC"

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def create_image(self, record: ImageRecord) -> ImageRecord:
        """Insert a new IMAGE row and return the stored record.

        Args:
            record: ImageRecord to insert. `id` and `created_at` are generated
                when missing.

        Returns:
            A copy of `record` with `id` and `created_at` populated.
        """
        stored = replace(
            record,
            id=record.id or uuid.uuid4().hex,
            created_at=record.created_at or int(time.time() * 1000),
        )

        async with self._db.connection() as conn:
            await conn.execute(
                f"INSERT INTO IMAGE ({self._COLUMN_LIST}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    stored.id,
                    stored.owner_id,
                    stored.prompt,
                    stored.url,
                    stored.blob_key,
                    int(stored.hidden),
                    stored.created_at,
                ),
            )
            await conn.commit()
        return stored

    async def get_image_by_id(self, image_id: str) -> Optional[ImageRecord]:
        """Return ImageRecord for `image_id`, or None if not found."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM IMAGE WHERE id = ?",
                (image_id,),
            )
            row = await cur.fetchone()
            return self._row_to_record(row) if row else None

    async def list_public(self, limit: int = 100) -> List[ImageRecord]:
        """List visible images, newest first.

        Args:
            limit: Maximum number of rows to return.
        """
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM IMAGE WHERE hidden = 0 {self._NEWEST_FIRST} LIMIT ?",
                (limit,),
            )
            rows = await cur.fetchall()
            return [self._row_to_record(r) for r in rows]

    async def list_by_owner(self, owner_id: str) -> List[ImageRecord]:
        """List every image of `owner_id`, hidden or not, newest first."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM IMAGE WHERE owner_id = ? {self._NEWEST_FIRST}",
                (owner_id,),
            )
            rows = await cur.fetchall()
            return [self._row_to_record(r) for r in rows]

    async def get_latest_by_owner(self, owner_id: str) -> Optional[ImageRecord]:
        """Return the most recently generated image of `owner_id`, if any."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM IMAGE WHERE owner_id = ? {self._NEWEST_FIRST} LIMIT 1",
                (owner_id,),
            )
            row = await cur.fetchone()
            return self._row_to_record(row) if row else None

    async def set_hidden(self, image_id: str, hidden: bool) -> Optional[ImageRecord]:
        """Set the `hidden` flag. Returns the updated record, or None if missing."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "UPDATE IMAGE SET hidden = ? WHERE id = ?",
                (int(hidden), image_id),
            )
            await conn.commit()
            if cur.rowcount == 0:
                return None
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM IMAGE WHERE id = ?",
                (image_id,),
            )
            row = await cur.fetchone()
            return self._row_to_record(row) if row else None

    async def delete_image(self, image_id: str) -> bool:
        """Delete IMAGE row by id. Returns True if a row was deleted."""
        async with self._db.connection() as conn:
            await conn.execute("DELETE FROM IMAGE WHERE id = ?", (image_id,))
            await conn.commit()
            cur = await conn.execute("SELECT changes()")
            changed = await cur.fetchone()
            return bool(changed and changed[0] > 0)

    @staticmethod
    def _row_to_record(row: Sequence[object]) -> ImageRecord:
        """Convert a DB row tuple into an ImageRecord."""
        return ImageRecord(
            id=row[0],
            owner_id=row[1],
            prompt=row[2],
            url=row[3],
            blob_key=row[4],
            hidden=bool(row[5]),
            created_at=row[6],
        )
