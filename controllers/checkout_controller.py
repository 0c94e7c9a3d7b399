"""Credit purchases through the payment provider."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException

from controllers.http_errors import to_http
from dal.credit_dal import CreditDAL
from services.errors import AppError
from services.payments.checkout import CheckoutService


def _require_checkout(checkout: Optional[CheckoutService]) -> CheckoutService:
	if checkout is None:
		raise HTTPException(status_code=503, detail="Payments are not configured.")
	return checkout


async def create_checkout(checkout: Optional[CheckoutService], user_id: str) -> Dict[str, Any]:
	"""Start a checkout for one credit pack and return the redirect URL."""
	service = _require_checkout(checkout)
	try:
		url = await service.create_checkout(user_id)
	except AppError as exc:
		raise to_http(exc) from exc
	return {"url": url}


async def handle_webhook(
	checkout: Optional[CheckoutService],
	credits: CreditDAL,
	payload: bytes,
	signature: str,
) -> Dict[str, Any]:
	"""Credit the ledger for a verified, paid checkout.

	Deliveries of the same checkout are applied once; other event types are
	acknowledged without effect.
	"""
	service = _require_checkout(checkout)
	try:
		confirmation = service.parse_webhook(payload, signature)
	except AppError as exc:
		raise to_http(exc) from exc

	if confirmation is None:
		return {"received": True, "credited": False}

	credited = await credits.apply_payment(confirmation.event_id, confirmation.user_id, confirmation.credits)
	if credited:
		logging.info("Credited %d credits to user %s", confirmation.credits, confirmation.user_id)
	return {"received": True, "credited": credited}
