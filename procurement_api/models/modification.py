import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, Text, Boolean, ForeignKey, JSON, Index, CheckConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from procurement_api.database import Base


class ModificationRequest(Base):
    __tablename__ = "modification_requests"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    brfq_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("brfqs.id", ondelete="CASCADE"), nullable=False
    )
    requested_by: Mapped[str] = mapped_column(String(255), default="unknown")
    field: Mapped[str] = mapped_column(String(100), default="general")
    reason: Mapped[str] = mapped_column(Text, default="Modification requested")
    # {field: {"from": ..., "to": ...}}
    summary: Mapped[Optional[dict]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), default=dict
    )
    status: Mapped[str] = mapped_column(String(20), default="pending")
    # BRFQ state when the request was raised, restored on rejection
    previous_status: Mapped[Optional[str]] = mapped_column(String(30))
    previous_published: Mapped[Optional[bool]] = mapped_column(Boolean)
    processed_by: Mapped[Optional[str]] = mapped_column(String(255))
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    requested_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending','approved','rejected')",
            name="chk_modification_status",
        ),
        Index("idx_modifications_brfq", "brfq_id"),
        Index("idx_modifications_status", "status"),
    )


class ModificationApprovalHistory(Base):
    __tablename__ = "modification_approval_history"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    modification_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("modification_requests.id", ondelete="CASCADE"),
        nullable=False,
    )
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    acted_by: Mapped[str] = mapped_column(String(255), nullable=False)
    acted_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    note: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        Index("idx_mod_history_modification", "modification_id"),
    )
