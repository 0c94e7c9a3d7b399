"""Async Data Access Layer for the credit ledger.

The CREDIT_BALANCE row of a user is created on first credit; reads of an
unknown user return a zero balance.
"""

from __future__ import annotations

import time
from typing import Optional

import aiosqlite

from models.credit_balance import CreditBalance
from services.errors import InsufficientCredits
from utils.database_init import AsyncDatabaseInitializer

_UPSERT_CREDITS = """
    INSERT INTO CREDIT_BALANCE (user_id, credits, updated_at) VALUES (?, ?, ?)
    ON CONFLICT(user_id) DO UPDATE SET
        credits = credits + excluded.credits,
        updated_at = excluded.updated_at
"""


class CreditDAL:
    """Per-user credit balances with atomic mutations."""

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def get_balance(self, user_id: str) -> int:
        """Return the balance of `user_id` (0 when the user has no row)."""
        record = await self.get_record(user_id)
        return record.credits

    async def get_record(self, user_id: str) -> CreditBalance:
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "SELECT user_id, credits, updated_at FROM CREDIT_BALANCE WHERE user_id = ?",
                (user_id,),
            )
            row = await cur.fetchone()
        if row is None:
            return CreditBalance(user_id=user_id)
        return CreditBalance(user_id=row[0], credits=row[1], updated_at=row[2])

    async def try_decrement(self, user_id: str) -> Optional[int]:
        """Spend one credit if the balance is positive.

        The positivity check and the decrement are a single conditional
        UPDATE, so concurrent callers can never drive the balance below zero.

        Returns:
            The new balance, or None when there was no credit to spend.
        """
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "UPDATE CREDIT_BALANCE SET credits = credits - 1, updated_at = ? "
                "WHERE user_id = ? AND credits > 0",
                (int(time.time()), user_id),
            )
            if cur.rowcount == 0:
                await conn.rollback()
                return None
            balance = await self._read_credits(conn, user_id)
            await conn.commit()
            return balance

    async def decrement(self, user_id: str) -> int:
        """Spend one credit or raise InsufficientCredits."""
        balance = await self.try_decrement(user_id)
        if balance is None:
            raise InsufficientCredits()
        return balance

    async def credit(self, user_id: str, amount: int) -> int:
        """Add `amount` credits to `user_id` and return the new balance.

        Raises:
            ValueError: If `amount` is not a positive integer.
        """
        self._check_amount(amount)
        async with self._db.connection() as conn:
            await conn.execute(_UPSERT_CREDITS, (user_id, amount, int(time.time())))
            balance = await self._read_credits(conn, user_id)
            await conn.commit()
            return balance

    async def apply_payment(self, event_id: str, user_id: str, amount: int) -> bool:
        """Credit a confirmed payment exactly once.

        Args:
            event_id: Provider identifier of the payment (checkout session id).
            user_id: User to credit.
            amount: Credits bought.

        Returns:
            True when the credits were added, False if `event_id` was already applied.
        """
        if not event_id:
            raise ValueError("event_id is required to apply a payment.")
        self._check_amount(amount)
        now = int(time.time())
        async with self._db.connection() as conn:
            cur = await conn.execute(
                "INSERT OR IGNORE INTO PAYMENT_EVENT (event_id, user_id, credits, created_at) VALUES (?, ?, ?, ?)",
                (event_id, user_id, amount, now),
            )
            if cur.rowcount == 0:
                await conn.rollback()
                return False
            await conn.execute(_UPSERT_CREDITS, (user_id, amount, now))
            await conn.commit()
            return True

    @staticmethod
    def _check_amount(amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValueError("Credit amount must be a positive integer.")

    @staticmethod
    async def _read_credits(conn: aiosqlite.Connection, user_id: str) -> int:
        cur = await conn.execute("SELECT credits FROM CREDIT_BALANCE WHERE user_id = ?", (user_id,))
        row = await cur.fetchone()
        return int(row[0]) if row else 0
