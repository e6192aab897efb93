"""Image record with three lazily loaded, independently persisted tiers.

Each record tracks an *original*, an *edited* and a *thumbnail* payload.
A tier is only fetched from the store the first time it is read, is
marked changed when assigned, and is written back on `ImageRecord.save`
only when it actually needs to be. Reading a tier that has no payload
falls back to the next coarser tier: thumbnail -> edited -> original.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional

from models.filter_transform import FilterTransform
from models.list_record import ListRecord

if TYPE_CHECKING:
    from dal.image_db import ImageStore


class ImageState(enum.Enum):
    NOT_LOADED = "not_loaded"
    LOADED = "loaded"
    CHANGED = "changed"


class Tier(str, enum.Enum):
    ORIGINAL = "original"
    EDITED = "edited"
    THUMBNAIL = "thumbnail"


# Each tier resolves to the one after it when it has no payload.
FALLBACK_ORDER = (Tier.THUMBNAIL, Tier.EDITED, Tier.ORIGINAL)


@dataclass
class TierSlot:
    """Lifecycle state and cached payload of a single tier."""

    media_id: Optional[int] = None
    state: ImageState = ImageState.CHANGED
    cache: Optional[bytes] = None


class ImageRecord:
    """A single logical image and its original/edited/thumbnail tiers.

    Args:
        store: Store used to fetch and persist media and metadata rows.
        guid: Globally-unique identifier. A new one is generated if omitted.
    """

    def __init__(self, store: "ImageStore", guid: Optional[str] = None) -> None:
        self._store = store
        self.id: Optional[int] = None
        self.guid = guid if guid is not None else uuid.uuid4().hex
        self.transform: Optional[FilterTransform] = None
        self._tiers: Dict[Tier, TierSlot] = {tier: TierSlot() for tier in Tier}

    # -- collection loader -------------------------------------------------

    @classmethod
    def from_row(cls, store: "ImageStore", row: ListRecord) -> "ImageRecord":
        """Rebuild a record from a stored row. No tier is loaded yet."""
        result = cls(store, guid=row.guid)
        result.id = row.id
        result._tiers = {
            Tier.ORIGINAL: TierSlot(media_id=row.original_id, state=ImageState.NOT_LOADED),
            Tier.EDITED: TierSlot(media_id=row.edited_id, state=ImageState.NOT_LOADED),
            Tier.THUMBNAIL: TierSlot(media_id=row.thumbnail_id, state=ImageState.NOT_LOADED),
        }
        result.transform = FilterTransform.from_dict(row.transform)
        return result

    @classmethod
    async def from_database(cls, store: "ImageStore", record_id: int) -> "ImageRecord":
        row = await store.retrieve_record(record_id)
        return cls.from_row(store, row)

    @classmethod
    async def get_all(cls, store: "ImageStore") -> List["ImageRecord"]:
        """Return every stored record in the order the store yields them."""
        rows = await store.all()
        return [cls.from_row(store, row) for row in rows]

    # -- tier state tracker ------------------------------------------------

    def state(self, tier: Tier) -> ImageState:
        return self._tiers[tier].state

    def media_id(self, tier: Tier) -> Optional[int]:
        return self._tiers[tier].media_id

    @property
    def original_id(self) -> Optional[int]:
        return self._tiers[Tier.ORIGINAL].media_id

    @property
    def edited_id(self) -> Optional[int]:
        return self._tiers[Tier.EDITED].media_id

    @property
    def thumbnail_id(self) -> Optional[int]:
        return self._tiers[Tier.THUMBNAIL].media_id

    async def _load(self, tier: Tier) -> Optional[bytes]:
        """Fetch the tier payload once if it is persisted but not yet read.

        The slot is only mutated after the fetch returns, so a failed or
        abandoned fetch leaves the tier `NOT_LOADED`, and a tier set while
        the fetch was pending keeps its new payload.
        """
        slot = self._tiers[tier]
        if slot.media_id is not None and slot.state is ImageState.NOT_LOADED:
            payload = await self._store.retrieve_media(slot.media_id)
            # a set() while the fetch was pending wins over the stored payload
            if self._tiers[tier] is slot and slot.state is ImageState.NOT_LOADED:
                slot.cache = payload
                slot.state = ImageState.LOADED
        return self._tiers[tier].cache

    async def get(self, tier: Tier) -> Optional[bytes]:
        """Return the payload for `tier`, falling back to coarser tiers.

        Coarser tiers are only loaded when every finer tier on the way
        resolved to nothing. Returns None if no tier has a payload.
        """
        for candidate in FALLBACK_ORDER[FALLBACK_ORDER.index(tier):]:
            payload = await self._load(candidate)
            if payload is not None:
                return payload
        return None

    async def get_original(self) -> Optional[bytes]:
        return await self.get(Tier.ORIGINAL)

    async def get_edited(self) -> Optional[bytes]:
        return await self.get(Tier.EDITED)

    async def get_thumbnail(self) -> Optional[bytes]:
        return await self.get(Tier.THUMBNAIL)

    def set(self, tier: Tier, payload: bytes, invalidate_derived: bool = False) -> None:
        """Replace the cached payload of `tier` and mark it changed.

        Finer tiers derived from `tier` are left as they are unless
        `invalidate_derived` is True, in which case they are emptied and
        detached from their stored media so they resolve to `tier` again.
        """
        slot = self._tiers[tier]
        slot.cache = payload
        slot.state = ImageState.CHANGED

        if invalidate_derived:
            # the detached MEDIA rows are orphaned; delete_record no longer reaches them
            for derived in FALLBACK_ORDER[:FALLBACK_ORDER.index(tier)]:
                self._tiers[derived] = TierSlot()

    def set_original(self, payload: bytes, invalidate_derived: bool = False) -> None:
        self.set(Tier.ORIGINAL, payload, invalidate_derived)

    def set_edited(self, payload: bytes, invalidate_derived: bool = False) -> None:
        self.set(Tier.EDITED, payload, invalidate_derived)

    def set_thumbnail(self, payload: bytes) -> None:
        self.set(Tier.THUMBNAIL, payload)

    # -- persistence coordinator -------------------------------------------

    def to_row(self) -> ListRecord:
        """Snapshot the record as a metadata row."""
        return ListRecord(
            id=self.id,
            guid=self.guid,
            original_id=self.original_id,
            edited_id=self.edited_id,
            thumbnail_id=self.thumbnail_id,
            transform=self.transform.to_dict() if self.transform is not None else {},
        )

    async def save(self) -> None:
        """Write changed tiers, then the metadata row.

        A tier is written only when it is `CHANGED` and has a payload; it
        is `LOADED` afterwards, so saving again without a new `set` does
        not rewrite it. A failing write aborts the rest of the save; tiers
        written before the failure keep their new media ids.
        """
        for tier in Tier:
            slot = self._tiers[tier]
            if slot.state is ImageState.CHANGED and slot.cache is not None:
                payload = slot.cache
                slot.media_id = await self._store.store_media(payload, slot.media_id)
                # a set() while the write was pending stays changed
                if slot.cache is payload:
                    slot.state = ImageState.LOADED

        self.id = await self._store.store_record(self.to_row())

    def __repr__(self) -> str:
        tiers = ", ".join(f"{tier.value}={slot.state.value}" for tier, slot in self._tiers.items())
        return f"ImageRecord(id={self.id!r}, guid={self.guid!r}, {tiers})"
