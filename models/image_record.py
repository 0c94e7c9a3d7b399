from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class ImageRecord:
    """In-memory representation of a row in the IMAGE table.

    Attributes:
        id: UUID hex primary key (None for records not yet inserted).
        owner_id: Identifier of the user who generated the image.
        prompt: Prompt text the image was generated from.
        url: Public URL of the stored blob.
        blob_key: Key of the blob inside the object store.
        hidden: Whether the image is excluded from the public listing.
        created_at: Unix timestamp (milliseconds) when the row was inserted.
    """

    id: Optional[str]
    owner_id: str
    prompt: str
    url: str
    blob_key: str
    hidden: bool = False
    created_at: Optional[int] = None

    def to_public_dict(self) -> Dict[str, Any]:
        """Serializable view returned to clients (the blob key stays internal)."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "prompt": self.prompt,
            "url": self.url,
            "hidden": self.hidden,
            "created_at": self.created_at,
        }
