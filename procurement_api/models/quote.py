import uuid
from datetime import datetime
from typing import List, Optional
from decimal import Decimal

from sqlalchemy import (
    String,
    Numeric,
    DateTime,
    Text,
    ForeignKey,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procurement_api.database import Base


class Quote(Base):
    __tablename__ = "quotes"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    rfq_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("brfqs.id"), nullable=False
    )
    supplier_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("suppliers.id"), nullable=False
    )
    supplier_quote_no: Mapped[str] = mapped_column(String(100), default="")
    valid_for: Mapped[str] = mapped_column(String(100), default="")
    currency: Mapped[str] = mapped_column(String(20), default="")
    shipping: Mapped[str] = mapped_column(String(100), default="")
    comments: Mapped[str] = mapped_column(Text, default="")
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )

    items: Mapped[List["QuoteItem"]] = relationship(
        back_populates="quote",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("rfq_id", "supplier_id", name="uq_quote_rfq_supplier"),
        Index("idx_quotes_rfq", "rfq_id"),
    )


class QuoteItem(Base):
    __tablename__ = "quote_items"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    quote_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False
    )
    supplier_part_no: Mapped[str] = mapped_column(String(100), default="")
    delivery_days: Mapped[str] = mapped_column(String(50), default="")
    unit_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 4))
    qty: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 4))
    uom: Mapped[str] = mapped_column(String(20), default="")
    cost: Mapped[Decimal] = mapped_column(Numeric(16, 4), default=0)

    quote: Mapped["Quote"] = relationship(back_populates="items")
