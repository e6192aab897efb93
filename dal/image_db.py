"""Async store for image record rows and their binary media.

Provides the `ImageStore` protocol that `models.image_record.ImageRecord`
talks to, and `ImageDB`, its SQLite implementation built on the
connections handed out by `utils.database_init.AsyncDatabaseInitializer`.
"""

from __future__ import annotations

import json
import logging
import time
from typing import List, Optional, Protocol, Sequence

from models.list_record import ListRecord
from utils.database_init import AsyncDatabaseInitializer

LOGGER = logging.getLogger(__name__)


class RecordNotFoundError(LookupError):
    """Raised when no IMAGE_RECORD row exists for an id."""


class MediaNotFoundError(LookupError):
    """Raised when no MEDIA row exists for an id."""


class ImageStore(Protocol):
    """Persistent store consumed by image records."""

    async def retrieve_record(self, record_id: int) -> ListRecord: ...

    async def retrieve_media(self, media_id: int) -> bytes: ...

    async def store_media(self, payload: bytes, media_id: Optional[int] = None) -> int: ...

    async def store_record(self, row: ListRecord) -> int: ...

    async def all(self) -> List[ListRecord]: ...


class ImageDB:
    """SQLite-backed `ImageStore`.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    _COLUMNS = (
        "id",
        "guid",
        "original_id",
        "edited_id",
        "thumbnail_id",
        "transform",
    )
    _COLUMN_LIST = ", ".join(_COLUMNS)

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def retrieve_record(self, record_id: int) -> ListRecord:
        """Return the row for `record_id`.

        Raises:
            RecordNotFoundError: If no such row exists.
        """
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM IMAGE_RECORD WHERE id = ?",
                (record_id,),
            )
            row = await cur.fetchone()
        if row is None:
            raise RecordNotFoundError(f"Image record {record_id} not found")
        return self._row_to_record(row)

    async def retrieve_media(self, media_id: int) -> bytes:
        """Return the payload stored under `media_id`.

        Raises:
            MediaNotFoundError: If no such media exists.
        """
        async with self._db.connection() as conn:
            cur = await conn.execute("SELECT data FROM MEDIA WHERE id = ?", (media_id,))
            row = await cur.fetchone()
        if row is None:
            raise MediaNotFoundError(f"Media {media_id} not found")
        return bytes(row[0])

    async def store_media(self, payload: bytes, media_id: Optional[int] = None) -> int:
        """Insert `payload`, or overwrite `media_id` in place, and return its id.

        Args:
            payload: Raw media bytes.
            media_id: Existing MEDIA id to update. A new row is inserted if None.

        Raises:
            MediaNotFoundError: If `media_id` is given but does not exist.
        """
        now = int(time.time())
        data = bytes(payload)

        async with self._db.connection() as conn:
            if media_id is None:
                cur = await conn.execute(
                    "INSERT INTO MEDIA (data, size, created_at, updated_at) VALUES (?, ?, ?, ?)",
                    (data, len(data), now, now),
                )
                await conn.commit()
                LOGGER.debug("Inserted media %s (%d bytes)", cur.lastrowid, len(data))
                return cur.lastrowid

            cur = await conn.execute(
                "UPDATE MEDIA SET data = ?, size = ?, updated_at = ? WHERE id = ?",
                (data, len(data), now, media_id),
            )
            await conn.commit()
            if cur.rowcount == 0:
                raise MediaNotFoundError(f"Media {media_id} not found")
            LOGGER.debug("Updated media %s (%d bytes)", media_id, len(data))
            return media_id

    async def store_record(self, row: ListRecord) -> int:
        """Insert `row` when it has no id, otherwise update it in place.

        Returns:
            The integer primary key of the stored row.

        Raises:
            RecordNotFoundError: If `row.id` is set but does not exist.
        """
        now = int(time.time())
        transform = json.dumps(row.transform or {}, sort_keys=True)

        async with self._db.connection() as conn:
            if row.id is None:
                cur = await conn.execute(
                    "INSERT INTO IMAGE_RECORD (guid, original_id, edited_id, thumbnail_id, transform, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (row.guid, row.original_id, row.edited_id, row.thumbnail_id, transform, now, now),
                )
                await conn.commit()
                LOGGER.info("Created image record %s (guid=%s)", cur.lastrowid, row.guid)
                return cur.lastrowid

            cur = await conn.execute(
                "UPDATE IMAGE_RECORD SET guid = ?, original_id = ?, edited_id = ?, thumbnail_id = ?, "
                "transform = ?, updated_at = ? WHERE id = ?",
                (row.guid, row.original_id, row.edited_id, row.thumbnail_id, transform, now, row.id),
            )
            await conn.commit()
            if cur.rowcount == 0:
                raise RecordNotFoundError(f"Image record {row.id} not found")
            LOGGER.debug("Updated image record %s", row.id)
            return row.id

    async def all(self) -> List[ListRecord]:
        """Return every IMAGE_RECORD row ordered by id."""
        async with self._db.connection() as conn:
            cur = await conn.execute(f"SELECT {self._COLUMN_LIST} FROM IMAGE_RECORD ORDER BY id ASC")
            rows = await cur.fetchall()
        return [self._row_to_record(r) for r in rows]

    async def delete_record(self, record_id: int) -> bool:
        """Delete a record and the media it references. Returns True if deleted."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "SELECT original_id, edited_id, thumbnail_id FROM IMAGE_RECORD WHERE id = ?",
                (record_id,),
            )
            row = await cur.fetchone()
            if row is None:
                return False

            await conn.execute("DELETE FROM IMAGE_RECORD WHERE id = ?", (record_id,))
            media_ids = [(media_id,) for media_id in row if media_id is not None]
            if media_ids:
                await conn.executemany("DELETE FROM MEDIA WHERE id = ?", media_ids)
            await conn.commit()

        LOGGER.info("Deleted image record %s and %d media rows", record_id, len(media_ids))
        return True

    @staticmethod
    def _row_to_record(row: Sequence[object]) -> ListRecord:
        """Convert a DB row tuple into a ListRecord."""
        return ListRecord(
            id=row[0],
            guid=row[1],
            original_id=row[2],
            edited_id=row[3],
            thumbnail_id=row[4],
            transform=json.loads(row[5]) if row[5] else {},
        )
