import uuid
from datetime import datetime
from typing import Optional
from decimal import Decimal

from sqlalchemy import String, Boolean, Numeric, DateTime, Text, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from procurement_api.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Award(Base):
    __tablename__ = "awards"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    brfq_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("brfqs.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), default="pending")
    justification: Mapped[Optional[str]] = mapped_column(Text)
    estimated_value: Mapped[Optional[Decimal]] = mapped_column(Numeric(16, 2))
    split_award: Mapped[bool] = mapped_column(Boolean, default=False)
    created_by: Mapped[str] = mapped_column(String(255), default="system")
    approved_by: Mapped[Optional[str]] = mapped_column(String(255))
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )

    __table_args__ = (
        Index("idx_awards_brfq", "brfq_id"),
    )


class AwardWinner(Base):
    __tablename__ = "award_winners"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    award_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("awards.id", ondelete="CASCADE"), nullable=False
    )
    supplier_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("suppliers.id"), nullable=False
    )
    amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(16, 2))


class AwardApprovalHistory(Base):
    __tablename__ = "award_approval_history"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    award_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("awards.id", ondelete="CASCADE"), nullable=False
    )
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    by_user: Mapped[str] = mapped_column(String(255), nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
