from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from controllers.http_errors import to_http
from models.image_record import ImageRecord
from services.errors import AppError
from services.generation_service import GenerationOrchestrator
from services.image_library import ImageLibrary


def _serialize(records: List[ImageRecord]) -> Dict[str, Any]:
    return {"images": [r.to_public_dict() for r in records]}


async def create_image(orchestrator: GenerationOrchestrator, user_id: str, prompt: Optional[str]) -> Dict[str, Any]:
    """Generate an image for the caller and return the new record.

    Args:
        orchestrator: Generation workflow wired with the shared clients.
        user_id: Authenticated caller.
        prompt: Prompt text as submitted.

    Raises:
        HTTPException: 400 for an empty prompt, 402 without credits,
            502 when the provider, download or upload fails.
    """
    try:
        record = await orchestrator.generate(user_id, prompt)
    except AppError as exc:
        raise to_http(exc) from exc
    return record.to_public_dict()


async def list_public_images(library: ImageLibrary, limit: Optional[int] = None) -> Dict[str, Any]:
    """Visible images of all users, newest first."""
    try:
        records = await library.list_public(limit)
    except AppError as exc:
        raise to_http(exc) from exc
    return _serialize(records)


async def list_user_images(library: ImageLibrary, user_id: str) -> Dict[str, Any]:
    """Every image of the caller, hidden ones included."""
    return _serialize(await library.list_for_owner(user_id))


async def get_latest_image(library: ImageLibrary, user_id: str) -> Dict[str, Any]:
    """The caller's most recent image.

    Raises:
        HTTPException(404) if the caller has not generated anything yet.
    """
    record = await library.latest_for_owner(user_id)
    if record is None:
        raise HTTPException(status_code=404, detail="No images generated yet")
    return record.to_public_dict()


async def set_visibility(library: ImageLibrary, user_id: str, image_id: str, hidden: bool) -> Dict[str, Any]:
    """Hide or show one of the caller's images."""
    try:
        record = await library.set_hidden(user_id, image_id, hidden)
    except AppError as exc:
        raise to_http(exc) from exc
    return record.to_public_dict()


async def delete_image(library: ImageLibrary, user_id: str, image_id: str) -> Dict[str, Any]:
    """Delete one of the caller's images and its stored blob."""
    try:
        await library.delete(user_id, image_id)
    except AppError as exc:
        raise to_http(exc) from exc
    return {"id": image_id, "deleted": True}
