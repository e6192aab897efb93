from typing import Dict, Union

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from pydantic import BaseModel, StrictFloat, StrictInt

from controllers.image_controller import (
	create_image,
	delete_image,
	get_image,
	get_tier,
	list_images,
	merge_transform,
	set_tier,
	update_transform,
)

router = APIRouter(prefix="/images")


class TransformPayload(BaseModel):
	parameters: Dict[str, Union[StrictFloat, StrictInt]] = {}


@router.post("")
async def post_image(request: Request, file: UploadFile = File(...)):
	"""Create an image record from an uploaded original."""
	try:
		return await create_image(request, file)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("")
async def get_images(request: Request):
	"""List every stored image record."""
	try:
		return await list_images(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/{image_id}")
async def get_image_route(request: Request, image_id: int):
	try:
		return await get_image(request, image_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.delete("/{image_id}")
async def delete_image_route(request: Request, image_id: int):
	try:
		return await delete_image(request, image_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.put("/{image_id}/transform")
async def put_transform(request: Request, image_id: int, payload: TransformPayload):
	"""Replace the filter transform of an image record."""
	try:
		return await update_transform(request, image_id, payload.parameters)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.patch("/{image_id}/transform")
async def patch_transform(request: Request, image_id: int, payload: TransformPayload):
	"""Merge parameters into the filter transform of an image record."""
	try:
		return await merge_transform(request, image_id, payload.parameters)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/{image_id}/{tier}")
async def get_image_tier(request: Request, image_id: int, tier: str):
	"""Return the bytes of the requested tier, falling back to coarser tiers."""
	try:
		return await get_tier(request, image_id, tier)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.put("/{image_id}/{tier}")
async def put_image_tier(
	request: Request,
	image_id: int,
	tier: str,
	file: UploadFile = File(...),
	invalidate_derived: bool = False,
):
	"""Replace one tier of an image record with the uploaded file."""
	try:
		return await set_tier(request, image_id, tier, file, invalidate_derived)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
