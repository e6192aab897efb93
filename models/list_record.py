from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class ListRecord:
    """Stored metadata row for one image record in the IMAGE_RECORD table.

    Attributes:
        id: Primary key (None until the row is first inserted).
        guid: Stable globally-unique identifier of the record.
        original_id: MEDIA id of the original payload, if persisted.
        edited_id: MEDIA id of the edited payload, if persisted.
        thumbnail_id: MEDIA id of the thumbnail payload, if persisted.
        transform: Plain mapping of filter parameters (empty when unset).
    """

    id: Optional[int]
    guid: str
    original_id: Optional[int] = None
    edited_id: Optional[int] = None
    thumbnail_id: Optional[int] = None
    transform: Dict[str, float] = field(default_factory=dict)
