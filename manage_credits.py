"""Inspect or grant user credits from the command line.

Reads `DATABASE_DIR` (and `.env`) through the same settings as the application.

Run:
    python manage_credits.py show <user_id>
    python manage_credits.py grant <user_id> <amount>
    python manage_credits.py add-prompt "<prompt text>"
"""
import argparse
import asyncio
from typing import List, Optional

from pydantic import ValidationError

from dal.credit_dal import CreditDAL
from dal.prompt_dal import SuggestedPromptDAL
from utils.database_init import AsyncDatabaseInitializer
from utils.settings import DatabaseSettings


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    sub = parser.add_subparsers(dest="command", required=True)

    show = sub.add_parser("show", help="Print a user's balance")
    show.add_argument("user_id")

    grant = sub.add_parser("grant", help="Add credits to a user's balance")
    grant.add_argument("user_id")
    grant.add_argument("amount", type=int)

    add_prompt = sub.add_parser("add-prompt", help="Add a suggested prompt")
    add_prompt.add_argument("text")
    return parser


async def main(argv: Optional[List[str]] = None) -> None:
    """Run one ledger command against the configured database."""
    args = _build_parser().parse_args(argv)

    try:
        settings = DatabaseSettings()
    except ValidationError as exc:
        raise SystemExit(f"DATABASE_DIR is missing or invalid: {exc}") from exc
    initializer = AsyncDatabaseInitializer(settings.database_dir)

    if args.command == "show":
        balance = await CreditDAL(initializer).get_balance(args.user_id)
        print(f"{args.user_id}: {balance} credits")
    elif args.command == "grant":
        balance = await CreditDAL(initializer).credit(args.user_id, args.amount)
        print(f"{args.user_id}: {balance} credits")
    elif args.command == "add-prompt":
        await SuggestedPromptDAL(initializer).add(args.text)
        print("Suggested prompt added")


if __name__ == "__main__":
    asyncio.run(main())
