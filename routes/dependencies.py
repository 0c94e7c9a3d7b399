"""FastAPI dependencies resolving shared clients and the caller's identity.

Shared clients live on `app.state` (set up by the lifespan in `main.py`);
these helpers hand them to route handlers as explicit parameters.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request

from dal.credit_dal import CreditDAL
from dal.image_dal import ImageDAL
from dal.prompt_dal import SuggestedPromptDAL
from services.blob_store import BlobStore
from services.generation_service import GenerationOrchestrator
from services.image_downloader import ImageDownloader
from services.image_library import ImageLibrary
from services.openai.image_generator import ImageGenerator
from services.payments.checkout import CheckoutService
from utils.settings import Settings


def _require_state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=500, detail=f"{name} not initialized.")
    return value


def get_settings(request: Request) -> Settings:
    return _require_state(request, "settings")


def get_blob_store(request: Request) -> BlobStore:
    return _require_state(request, "blob_store")


def get_image_dal(request: Request) -> ImageDAL:
    return ImageDAL(_require_state(request, "db_initializer"))


def get_credit_dal(request: Request) -> CreditDAL:
    return CreditDAL(_require_state(request, "db_initializer"))


def get_prompt_dal(request: Request) -> SuggestedPromptDAL:
    return SuggestedPromptDAL(_require_state(request, "db_initializer"))


def get_image_generator(request: Request) -> ImageGenerator:
    settings = get_settings(request)
    return ImageGenerator(
        _require_state(request, "openai_client"),
        model=settings.openai_image_model,
        size=settings.openai_image_size,
    )


def get_image_downloader(request: Request) -> ImageDownloader:
    return ImageDownloader(_require_state(request, "http_client"))


def get_checkout_service(request: Request) -> Optional[CheckoutService]:
    return getattr(request.app.state, "checkout_service", None)


def get_orchestrator(
    credits: CreditDAL = Depends(get_credit_dal),
    images: ImageDAL = Depends(get_image_dal),
    generator: ImageGenerator = Depends(get_image_generator),
    downloader: ImageDownloader = Depends(get_image_downloader),
    blob_store: BlobStore = Depends(get_blob_store),
) -> GenerationOrchestrator:
    return GenerationOrchestrator(
        credits=credits,
        images=images,
        generator=generator,
        downloader=downloader,
        blob_store=blob_store,
    )


def get_image_library(
    request: Request,
    images: ImageDAL = Depends(get_image_dal),
    blob_store: BlobStore = Depends(get_blob_store),
) -> ImageLibrary:
    return ImageLibrary(images, blob_store, public_limit=get_settings(request).public_image_limit)


def optional_user(request: Request) -> Optional[str]:
    """Return the user id the auth proxy put in the identity header, if any."""
    header = get_settings(request).auth_user_header
    user_id = (request.headers.get(header) or "").strip()
    return user_id or None


def current_user(user_id: Optional[str] = Depends(optional_user)) -> str:
    """Require a signed-in caller."""
    if user_id is None:
        raise HTTPException(status_code=401, detail="You must be signed in to do that.")
    return user_id
