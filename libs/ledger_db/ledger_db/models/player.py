"""The game's player row. Owned by the game server; this service only credits balances and reads stats."""

from __future__ import annotations

from sqlalchemy import BigInteger, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_db.db import EXTERNAL_TABLE, Base


class Player(Base):
    __tablename__ = "players"
    __table_args__ = {"info": {EXTERNAL_TABLE: True}}

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    dao_coins: Mapped[int] = mapped_column(BigInteger(), nullable=False, default=0)
    dao_coins_spent: Mapped[int] = mapped_column(BigInteger(), nullable=False, default=0)

    realm: Mapped[str | None] = mapped_column(String(100), nullable=True)
    stage: Mapped[int | None] = mapped_column(Integer(), nullable=True)
    qi: Mapped[int] = mapped_column(BigInteger(), nullable=False, default=0)
    prestige: Mapped[int] = mapped_column(Integer(), nullable=False, default=0)
    spirit_stones: Mapped[int] = mapped_column(BigInteger(), nullable=False, default=0)
