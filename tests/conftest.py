"""Shared fixtures: in-memory fake store, temporary SQLite store, HTTP client.

Invariants:
    - Every test gets a fresh store; nothing is shared between tests
    - FakeImageStore records every call so tests can count fetches and writes
    - The HTTP client talks to the app in-process through ASGITransport

Design Decisions:
    - The app lifespan is not run by ASGITransport, so the client fixture
      attaches the temporary ImageDB to app.state itself
"""

import asyncio
from typing import Dict, List, Optional, Set, Tuple

import pytest
from httpx import ASGITransport, AsyncClient

from dal.image_db import ImageDB, MediaNotFoundError, RecordNotFoundError
from models.list_record import ListRecord
from utils.database_init import AsyncDatabaseInitializer


class StoreUnavailableError(ConnectionError):
    """Raised by FakeImageStore for ids configured to fail."""


class FakeImageStore:
    """Dict-backed ImageStore that logs every call."""

    def __init__(self) -> None:
        self.records: Dict[int, ListRecord] = {}
        self.media: Dict[int, bytes] = {}
        self.calls: List[Tuple] = []
        self.failing_media: Set[int] = set()
        self.fail_media_writes = False
        self.fail_record_writes = False
        # when set, reads or media writes wait on the event before completing
        self.read_gate: Optional[asyncio.Event] = None
        self.write_gate: Optional[asyncio.Event] = None
        self._next_record_id = 1
        self._next_media_id = 1

    def calls_to(self, name: str) -> List[Tuple]:
        return [call for call in self.calls if call[0] == name]

    def add_media(self, media_id: int, payload: bytes) -> None:
        self.media[media_id] = payload
        self._next_media_id = max(self._next_media_id, media_id + 1)

    def add_record(self, row: ListRecord) -> None:
        self.records[row.id] = row
        self._next_record_id = max(self._next_record_id, row.id + 1)

    async def retrieve_record(self, record_id: int) -> ListRecord:
        self.calls.append(("retrieve_record", record_id))
        if record_id not in self.records:
            raise RecordNotFoundError(f"Image record {record_id} not found")
        return self.records[record_id]

    async def retrieve_media(self, media_id: int) -> bytes:
        self.calls.append(("retrieve_media", media_id))
        if self.read_gate is not None:
            await self.read_gate.wait()
        if media_id in self.failing_media:
            raise StoreUnavailableError(f"Media {media_id} unavailable")
        if media_id not in self.media:
            raise MediaNotFoundError(f"Media {media_id} not found")
        return self.media[media_id]

    async def store_media(self, payload: bytes, media_id: Optional[int] = None) -> int:
        self.calls.append(("store_media", payload, media_id))
        if self.write_gate is not None:
            await self.write_gate.wait()
        if self.fail_media_writes:
            raise StoreUnavailableError("Media writes unavailable")
        if media_id is None:
            media_id = self._next_media_id
            self._next_media_id += 1
        self.media[media_id] = payload
        return media_id

    async def store_record(self, row: ListRecord) -> int:
        self.calls.append(("store_record", row))
        if self.fail_record_writes:
            raise StoreUnavailableError("Record writes unavailable")
        record_id = row.id
        if record_id is None:
            record_id = self._next_record_id
            self._next_record_id += 1
        self.records[record_id] = ListRecord(
            id=record_id,
            guid=row.guid,
            original_id=row.original_id,
            edited_id=row.edited_id,
            thumbnail_id=row.thumbnail_id,
            transform=dict(row.transform),
        )
        return record_id

    async def all(self) -> List[ListRecord]:
        self.calls.append(("all",))
        return list(self.records.values())


@pytest.fixture
def store():
    return FakeImageStore()


@pytest.fixture
def db_initializer(tmp_path):
    return AsyncDatabaseInitializer(db_dir=tmp_path / "db")


@pytest.fixture
def image_db(db_initializer):
    return ImageDB(db_initializer)


@pytest.fixture
async def client(image_db):
    from main import create_app

    app = create_app()
    app.state.image_db = image_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
