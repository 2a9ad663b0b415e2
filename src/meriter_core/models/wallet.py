# src/meriter_core/models/wallet.py
"""Per-community merit balances."""

from sqlalchemy import CheckConstraint, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from meriter_core.db.session import Base


class Wallet(Base):
    """Persistent balance a user holds in one community."""

    __tablename__ = "wallet"
    __table_args__ = (
        UniqueConstraint("user_id", "community_id", name="uq_wallet_user_community"),
        CheckConstraint("balance >= 0", name="ck_wallet_balance"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
    )
    community_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("community.id", ondelete="CASCADE"),
        nullable=False,
    )
    balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
