import inspect
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import boto3
import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse
from openai import AsyncOpenAI

from routes.checkout_route import router as checkout_router
from routes.credit_route import router as credit_router
from routes.image_route import router as image_router
from routes.prompt_route import router as prompt_router
from services.blob_store import BlobStore, LocalBlobStore, S3BlobStore
from services.payments.checkout import CheckoutService
from utils.database_init import AsyncDatabaseInitializer
from utils.settings import Settings

load_dotenv()  # Load environment variables from .env file if present


def build_blob_store(settings: Settings) -> BlobStore:
    """S3 when a bucket is configured, otherwise a local directory."""
    if settings.s3_bucket:
        client = boto3.client("s3", region_name=settings.aws_region)
        return S3BlobStore(settings.s3_bucket, client, settings.s3_storage_domain)
    return LocalBlobStore(settings.local_blob_dir, f"{settings.public_base_url}/blobs")


def build_checkout_service(settings: Settings) -> Optional[CheckoutService]:
    """Stripe checkout, or None when payments are not configured."""
    if not (settings.stripe_secret_key and settings.stripe_credit_price):
        logging.warning("Stripe is not configured; credit purchases are disabled")
        return None
    return CheckoutService(
        settings.stripe_secret_key,
        settings.stripe_credit_price,
        settings.host,
        webhook_secret=settings.stripe_webhook_secret,
        credits_per_purchase=settings.credits_per_purchase,
    )


async def _close_quietly(client) -> None:
    """Close a client exposing `aclose`/`close`, sync or async."""
    aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
    if aclose is None:
        return
    try:
        result = aclose()
        if inspect.isawaitable(result):
            await result
    except Exception as exc:
        logging.warning("Error while closing %s: %s", type(client).__name__, exc)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Args:
        settings: Explicit configuration; read from the environment at startup when omitted.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Initialize the shared resources and attach them to `app.state`:
          - settings and the SQLite database
          - the OpenAI async client and the httpx client for downloads
          - the blob store and the optional Stripe checkout service
        """
        resolved = settings or Settings()
        logging.basicConfig(level=resolved.log_level)
        app.state.settings = resolved

        db_initializer = AsyncDatabaseInitializer(resolved.database_dir, reset=resolved.database_reset)
        await db_initializer.ensure_database()
        app.state.db_initializer = db_initializer

        try:
            openai_client = AsyncOpenAI(api_key=resolved.openai_api_key)
        except Exception as exc:
            raise RuntimeError("Failed to initialize OpenAI Async client") from exc
        app.state.openai_client = openai_client

        app.state.http_client = httpx.AsyncClient(timeout=float(resolved.download_timeout_seconds))
        app.state.blob_store = build_blob_store(resolved)
        app.state.checkout_service = build_checkout_service(resolved)

        try:
            yield
        finally:
            await _close_quietly(app.state.http_client)
            await _close_quietly(app.state.openai_client)

    app = FastAPI(title="Image Credits", lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check reporting which shared resources are available.
        """
        state = request.app.state
        return {
            "ok": True,
            "db_initialized": hasattr(state, "db_initializer"),
            "openai_available": getattr(state, "openai_client", None) is not None,
            "payments_enabled": getattr(state, "checkout_service", None) is not None,
        }

    @app.get("/blobs/{key}", include_in_schema=False)
    async def serve_blob(request: Request, key: str):
        """
        Serve blobs written by the local blob store.
        """
        store = getattr(request.app.state, "blob_store", None)
        if not isinstance(store, LocalBlobStore):
            raise HTTPException(status_code=404, detail="Not found")
        path = store.base_dir / Path(key).name
        if not path.is_file():
            raise HTTPException(status_code=404, detail="Not found")
        return FileResponse(path)

    # Register application routers
    app.include_router(image_router)
    app.include_router(credit_router)
    app.include_router(checkout_router)
    app.include_router(prompt_router)

    return app


app = create_app()
