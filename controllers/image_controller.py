import logging
from typing import Any, Dict, List

from fastapi import HTTPException, Request, UploadFile
from fastapi.responses import Response

from dal.image_db import ImageDB, MediaNotFoundError, RecordNotFoundError
from models.filter_transform import FilterTransform
from models.image_record import ImageRecord, Tier
from utils.media_validation import parse_tier, read_media_bytes

LOGGER = logging.getLogger(__name__)


def _image_db(request: Request) -> ImageDB:
    return request.app.state.image_db


def _summary(record: ImageRecord) -> Dict[str, Any]:
    """Serialize the metadata and tier states of a record for API responses."""
    row = record.to_row()
    return {
        "id": row.id,
        "guid": row.guid,
        "original_id": row.original_id,
        "edited_id": row.edited_id,
        "thumbnail_id": row.thumbnail_id,
        "transform": row.transform,
        "tiers": {tier.value: record.state(tier).value for tier in Tier},
    }


async def _load_record(request: Request, image_id: int) -> ImageRecord:
    try:
        return await ImageRecord.from_database(_image_db(request), int(image_id))
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail="Image not found")


async def create_image(request: Request, file: UploadFile) -> Dict[str, Any]:
    """Create a new image record whose original tier is the uploaded file.

    Args:
        request: FastAPI Request object (used to access app.state.image_db).
        file: Uploaded original media.

    Returns:
        The summary of the saved record, including its new id.
    """
    payload = await read_media_bytes(file)

    record = ImageRecord(_image_db(request))
    record.set_original(payload)
    await record.save()

    LOGGER.info("Stored original for image %s (%d bytes)", record.id, len(payload))
    return _summary(record)


async def list_images(request: Request) -> List[Dict[str, Any]]:
    records = await ImageRecord.get_all(_image_db(request))
    return [_summary(record) for record in records]


async def get_image(request: Request, image_id: int) -> Dict[str, Any]:
    record = await _load_record(request, image_id)
    return _summary(record)


async def get_tier(request: Request, image_id: int, tier_name: str) -> Response:
    """Controller to fetch the resolved bytes of one tier of a stored image.

    Missing edited or thumbnail tiers fall back to the next coarser tier.

    Raises:
        HTTPException(404) if the image, tier or any resolvable media is missing.
    """
    tier = parse_tier(tier_name)
    record = await _load_record(request, image_id)

    try:
        payload = await record.get(tier)
    except MediaNotFoundError as exc:
        LOGGER.error("Image %s references missing media: %s", image_id, exc)
        raise HTTPException(status_code=404, detail="Media not found")

    if payload is None:
        raise HTTPException(status_code=404, detail=f"No {tier.value} media available for this image")

    return Response(content=payload, media_type="application/octet-stream")


async def set_tier(
    request: Request,
    image_id: int,
    tier_name: str,
    file: UploadFile,
    invalidate_derived: bool = False,
) -> Dict[str, Any]:
    """Replace one tier of a stored image with the uploaded file and save it.

    Args:
        request: FastAPI Request object.
        image_id: Integer id of the image record.
        tier_name: One of ``original``, ``edited`` or ``thumbnail``.
        file: Uploaded media for the tier.
        invalidate_derived: Also drop the finer tiers derived from this one.
    """
    tier = parse_tier(tier_name)
    payload = await read_media_bytes(file)
    record = await _load_record(request, image_id)

    record.set(tier, payload, invalidate_derived=invalidate_derived)
    await record.save()

    LOGGER.info("Updated %s tier of image %s (%d bytes)", tier.value, record.id, len(payload))
    return _summary(record)


async def update_transform(request: Request, image_id: int, parameters: Dict[str, float]) -> Dict[str, Any]:
    """Replace the filter transform of a stored image and save it.

    Raises:
        HTTPException(422) if the parameters are not a valid transform.
    """
    try:
        transform = FilterTransform.from_dict(parameters)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    record = await _load_record(request, image_id)
    record.transform = transform
    await record.save()
    return _summary(record)


async def merge_transform(request: Request, image_id: int, parameters: Dict[str, float]) -> Dict[str, Any]:
    """Merge `parameters` over the current filter transform of a stored image and save it.

    Raises:
        HTTPException(422) if the parameters are not a valid transform.
    """
    try:
        FilterTransform.from_dict(parameters)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    record = await _load_record(request, image_id)
    base = record.transform if record.transform is not None else FilterTransform()
    record.transform = base.with_values(**parameters)
    await record.save()
    return _summary(record)


async def delete_image(request: Request, image_id: int) -> Response:
    deleted = await _image_db(request).delete_record(int(image_id))
    if not deleted:
        raise HTTPException(status_code=404, detail="Image not found")
    return Response(status_code=204)
