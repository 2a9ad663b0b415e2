# src/meriter_core/services/wallets.py
"""Wallet ledger: per-community merit balances."""

from __future__ import annotations

from sqlalchemy.orm import Session

from meriter_core.core.errors import InsufficientBalanceError
from meriter_core.models import Wallet


class WalletService:
    """Read, debit and credit wallet balances. Writes are flushed, not committed."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_wallet(self, user_id: int, community_id: int) -> Wallet | None:
        return (
            self.db.query(Wallet)
            .filter(Wallet.user_id == user_id, Wallet.community_id == community_id)
            .first()
        )

    def get_or_create(self, user_id: int, community_id: int) -> Wallet:
        """Return the user's wallet in the community, creating an empty one if needed."""
        wallet = self.get_wallet(user_id, community_id)
        if wallet is None:
            wallet = Wallet(user_id=user_id, community_id=community_id, balance=0)
            self.db.add(wallet)
            self.db.flush()
        return wallet

    def balance(self, user_id: int, community_id: int) -> int:
        wallet = self.get_wallet(user_id, community_id)
        return wallet.balance if wallet else 0

    def debit(self, user_id: int, community_id: int, amount: int) -> Wallet:
        """Remove ``amount`` from the balance.

        Raises:
            ValueError: If ``amount`` is negative.
            InsufficientBalanceError: If the balance does not cover ``amount``.
        """
        if amount < 0:
            raise ValueError("Debit amount must not be negative")
        wallet = self.get_or_create(user_id, community_id)
        if wallet.balance < amount:
            raise InsufficientBalanceError(
                f"Wallet balance {wallet.balance} is less than {amount}"
            )
        wallet.balance -= amount
        self.db.flush()
        return wallet

    def credit(self, user_id: int, community_id: int, amount: int) -> Wallet:
        if amount < 0:
            raise ValueError("Credit amount must not be negative")
        wallet = self.get_or_create(user_id, community_id)
        wallet.balance += amount
        self.db.flush()
        return wallet
