import uuid
from datetime import datetime
from typing import Optional
from decimal import Decimal

from sqlalchemy import (
    String,
    Boolean,
    Integer,
    Numeric,
    DateTime,
    Text,
    ForeignKey,
    Table,
    Column,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from procurement_api.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


brfq_suppliers = Table(
    "brfq_suppliers",
    Base.metadata,
    Column(
        "brfq_id",
        String(36),
        ForeignKey("brfqs.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "supplier_id",
        String(36),
        ForeignKey("suppliers.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Brfq(Base):
    __tablename__ = "brfqs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    rfq_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    category_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("categories.id")
    )
    status: Mapped[str] = mapped_column(String(30), default="draft")
    approval_status: Mapped[Optional[str]] = mapped_column(String(30), default="none")
    published: Mapped[bool] = mapped_column(Boolean, default=False)
    publish_on_approval: Mapped[bool] = mapped_column(Boolean, default=False)
    approved_by: Mapped[Optional[str]] = mapped_column(String(255))
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    approval_note: Mapped[Optional[str]] = mapped_column(Text)

    close_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    requester: Mapped[Optional[str]] = mapped_column(String(255))
    requester_email: Mapped[Optional[str]] = mapped_column(String(255))
    currency: Mapped[Optional[str]] = mapped_column(String(20))
    incoterms: Mapped[Optional[str]] = mapped_column(String(50))
    carrier: Mapped[Optional[str]] = mapped_column(String(100))
    urgency: Mapped[Optional[str]] = mapped_column(String(50))
    shipping_type: Mapped[Optional[str]] = mapped_column(String(100))
    payment_process: Mapped[Optional[str]] = mapped_column(String(100))
    shipping_address: Mapped[Optional[str]] = mapped_column(Text)
    notes_to_supplier: Mapped[Optional[str]] = mapped_column(Text)
    target_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2))

    created_by: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        Index("idx_brfqs_status", "status"),
        Index("idx_brfqs_approval_status", "approval_status"),
    )


class RequestItem(Base):
    __tablename__ = "request_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    brfq_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("brfqs.id", ondelete="CASCADE"), nullable=False
    )
    internal_part_no: Mapped[Optional[str]] = mapped_column(String(100))
    manufacturer: Mapped[Optional[str]] = mapped_column(String(200))
    mfg_part_no: Mapped[Optional[str]] = mapped_column(String(100))
    description: Mapped[str] = mapped_column(Text, nullable=False)
    uom: Mapped[str] = mapped_column(String(20), default="EA")
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("idx_request_items_brfq", "brfq_id"),
    )


class ScopeOfWorkItem(Base):
    __tablename__ = "scope_of_work_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    brfq_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("brfqs.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    position: Mapped[int] = mapped_column(Integer, default=0)


class BrfqApprovalStep(Base):
    __tablename__ = "brfq_approval_steps"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    brfq_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("brfqs.id", ondelete="CASCADE"), nullable=False
    )
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    acted_by: Mapped[str] = mapped_column(String(255), nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text)
    acted_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )

    __table_args__ = (
        Index("idx_brfq_steps_brfq", "brfq_id"),
    )


class PauseAction(Base):
    __tablename__ = "pause_actions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    brfq_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("brfqs.id", ondelete="CASCADE"), nullable=False
    )
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    performed_by: Mapped[str] = mapped_column(String(255), nullable=False)
    previous_status: Mapped[Optional[str]] = mapped_column(String(30))
    reason: Mapped[Optional[str]] = mapped_column(Text)
    notify_suppliers: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )

    __table_args__ = (
        Index("idx_pause_actions_brfq", "brfq_id"),
    )
