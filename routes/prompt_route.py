from fastapi import APIRouter, Depends, HTTPException

from controllers.prompt_controller import get_random_prompt
from dal.prompt_dal import SuggestedPromptDAL
from models.schemas import SuggestedPromptOut
from routes.dependencies import get_prompt_dal

router = APIRouter(prefix="/api/prompts", tags=["prompts"])


@router.get("/random", response_model=SuggestedPromptOut)
async def random_prompt(prompts: SuggestedPromptDAL = Depends(get_prompt_dal)):
    """Return a random example prompt."""
    try:
        return await get_random_prompt(prompts)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))
