"""FastAPI routes for generating, listing and managing images."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from controllers.image_controller import (
    create_image,
    delete_image,
    get_latest_image,
    list_public_images,
    list_user_images,
    set_visibility,
)
from models.schemas import CreateImagePayload, ImageListOut, ImageOut
from routes.dependencies import current_user, get_image_library, get_orchestrator
from services.generation_service import GenerationOrchestrator
from services.image_library import ImageLibrary

router = APIRouter(prefix="/api/images", tags=["images"])


def _internal_error(exc: Exception) -> HTTPException:
    logging.exception("Unhandled error in image route: %s", exc)
    return HTTPException(status_code=500, detail="Internal server error")


@router.get("", response_model=ImageListOut, summary="Latest public images")
async def get_all(
    limit: Optional[int] = Query(None, ge=1),
    library: ImageLibrary = Depends(get_image_library),
):
    """Return the most recent visible images of all users."""
    try:
        return await list_public_images(library, limit)
    except HTTPException:
        raise
    except Exception as exc:
        raise _internal_error(exc) from exc


@router.post("", response_model=ImageOut, summary="Generate an image from a prompt")
async def post_image(
    payload: CreateImagePayload,
    user_id: str = Depends(current_user),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """Spend one credit to generate, store and record an image."""
    try:
        return await create_image(orchestrator, user_id, payload.prompt)
    except HTTPException:
        raise
    except Exception as exc:
        raise _internal_error(exc) from exc


@router.get("/mine", response_model=ImageListOut)
async def get_all_user(user_id: str = Depends(current_user), library: ImageLibrary = Depends(get_image_library)):
    """Return every image of the caller, newest first."""
    try:
        return await list_user_images(library, user_id)
    except HTTPException:
        raise
    except Exception as exc:
        raise _internal_error(exc) from exc


@router.get("/latest", response_model=ImageOut)
async def get_latest(user_id: str = Depends(current_user), library: ImageLibrary = Depends(get_image_library)):
    """Return the caller's most recently generated image."""
    try:
        return await get_latest_image(library, user_id)
    except HTTPException:
        raise
    except Exception as exc:
        raise _internal_error(exc) from exc


@router.post("/{image_id}/hide", response_model=ImageOut)
async def hide(image_id: str, user_id: str = Depends(current_user), library: ImageLibrary = Depends(get_image_library)):
    """Remove one of the caller's images from the public listing."""
    try:
        return await set_visibility(library, user_id, image_id, hidden=True)
    except HTTPException:
        raise
    except Exception as exc:
        raise _internal_error(exc) from exc


@router.post("/{image_id}/show", response_model=ImageOut)
async def show(image_id: str, user_id: str = Depends(current_user), library: ImageLibrary = Depends(get_image_library)):
    """Put one of the caller's images back into the public listing."""
    try:
        return await set_visibility(library, user_id, image_id, hidden=False)
    except HTTPException:
        raise
    except Exception as exc:
        raise _internal_error(exc) from exc


@router.delete("/{image_id}")
async def delete(image_id: str, user_id: str = Depends(current_user), library: ImageLibrary = Depends(get_image_library)):
    """Delete one of the caller's images and its blob."""
    try:
        return await delete_image(library, user_id, image_id)
    except HTTPException:
        raise
    except Exception as exc:
        raise _internal_error(exc) from exc
