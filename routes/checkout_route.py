"""FastAPI routes for buying credits."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from controllers.checkout_controller import create_checkout, handle_webhook
from dal.credit_dal import CreditDAL
from models.schemas import CheckoutOut
from routes.dependencies import current_user, get_checkout_service, get_credit_dal
from services.payments.checkout import CheckoutService

router = APIRouter(prefix="/api/checkout", tags=["checkout"])


@router.post("", response_model=CheckoutOut)
async def post_checkout(
	user_id: str = Depends(current_user),
	checkout: Optional[CheckoutService] = Depends(get_checkout_service),
):
	try:
		return await create_checkout(checkout, user_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/webhook", include_in_schema=False)
async def post_webhook(
	request: Request,
	stripe_signature: str = Header("", alias="Stripe-Signature"),
	checkout: Optional[CheckoutService] = Depends(get_checkout_service),
	credits: CreditDAL = Depends(get_credit_dal),
):
	"""Receive payment confirmations from Stripe."""
	payload = await request.body()
	try:
		return await handle_webhook(checkout, credits, payload, stripe_signature)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
