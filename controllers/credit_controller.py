"""Credit balance lookups."""

from typing import Any, Dict

from dal.credit_dal import CreditDAL


async def get_credits(credits: CreditDAL, user_id: str) -> Dict[str, Any]:
    """Return the caller's current credit balance."""
    return {"credits": await credits.get_balance(user_id)}
