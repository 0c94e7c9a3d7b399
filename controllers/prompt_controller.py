from typing import Any, Dict

from dal.prompt_dal import SuggestedPromptDAL


async def get_random_prompt(prompts: SuggestedPromptDAL) -> Dict[str, Any]:
    """Return a random suggested prompt, or nulls when none are stored."""
    row = await prompts.get_random()
    if row is None:
        return {"id": None, "text": None}
    return {"id": row[0], "text": row[1]}
