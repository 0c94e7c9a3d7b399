"""Ledger domain models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class CreditBalance:
    """Current credit balance for one user."""

    user_id: str
    credits: int = 0
    updated_at: Optional[int] = None


@dataclass
class PaymentConfirmation:
    """A paid checkout reported by the payment provider."""

    event_id: str
    user_id: str
    credits: int
