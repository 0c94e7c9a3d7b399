from fastapi import APIRouter, Depends, HTTPException

from controllers.credit_controller import get_credits
from dal.credit_dal import CreditDAL
from models.schemas import CreditsOut
from routes.dependencies import current_user, get_credit_dal

router = APIRouter(prefix="/api/credits", tags=["credits"])


@router.get("", response_model=CreditsOut)
async def get_balance(user_id: str = Depends(current_user), credits: CreditDAL = Depends(get_credit_dal)):
    """Return the caller's credit balance."""
    try:
        return await get_credits(credits, user_id)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))
