"""
Ruten Shoplist — Card Model

Canonical card metadata used to resolve a shopping list entry
("<card id>+<rarity>") into name, number and the full set of rarities the
card was printed in. The rarity list drives listing disambiguation.
"""

from __future__ import annotations

from sqlalchemy import JSON, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from rutenshop.models.base import Base


class Card(Base):
    """
    One printing of a card.

    The same base id can appear on several rows (reprints in different
    packs), so rows are keyed by a surrogate integer.
    """

    __tablename__ = "cards"

    row_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(
        String, nullable=False, index=True, comment="Card base id (e.g., '12345')"
    )
    name: Mapped[str] = mapped_column(
        String, nullable=False, comment="Card name as printed"
    )
    number: Mapped[str | None] = mapped_column(
        String, nullable=True, comment="Set number (e.g., 'QCCU-JP001')"
    )
    rarity: Mapped[list[str]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=list,
        comment="Rarity codes (e.g., ['UR', 'SR'])",
    )

    def __repr__(self) -> str:
        return f"<Card id={self.id!r} name={self.name!r} rarity={self.rarity!r}>"
