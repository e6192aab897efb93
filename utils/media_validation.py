"""Validation helpers for uploaded media and tier names."""

from fastapi import HTTPException, UploadFile

from models.image_record import Tier


def parse_tier(name: str) -> Tier:
    """Return the `Tier` named `name` or raise a 404 for unknown tiers."""
    try:
        return Tier(name.lower())
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown image tier: {name}")


async def read_media_bytes(upload: UploadFile) -> bytes:
    """Read an uploaded media file, ensuring the upload is not empty."""
    payload = await upload.read()
    if not payload:
        raise HTTPException(status_code=400, detail="Uploaded media file is empty.")
    return payload
