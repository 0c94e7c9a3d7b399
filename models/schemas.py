"""Pydantic request and response bodies for the HTTP API."""

from typing import List, Optional

from pydantic import BaseModel


class CreateImagePayload(BaseModel):
    prompt: Optional[str] = None


class ImageOut(BaseModel):
    id: str
    owner_id: str
    prompt: str
    url: str
    hidden: bool
    created_at: int


class ImageListOut(BaseModel):
    images: List[ImageOut] = []


class CreditsOut(BaseModel):
    credits: int


class CheckoutOut(BaseModel):
    url: str


class SuggestedPromptOut(BaseModel):
    id: Optional[int] = None
    text: Optional[str] = None
