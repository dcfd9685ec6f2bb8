"""Single-name lookup tables managed from the administration screens."""

import uuid
from datetime import datetime

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from procurement_api.database import Base


class _NamedLookup:
    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )


class Currency(_NamedLookup, Base):
    __tablename__ = "currencies"


class Incoterm(_NamedLookup, Base):
    __tablename__ = "incoterms"


class Carrier(_NamedLookup, Base):
    __tablename__ = "carriers"


class Uom(_NamedLookup, Base):
    __tablename__ = "uoms"


class Urgency(_NamedLookup, Base):
    __tablename__ = "urgencies"


class ShippingType(_NamedLookup, Base):
    __tablename__ = "shipping_types"


class PaymentProcess(_NamedLookup, Base):
    __tablename__ = "payment_processes"


class Category(_NamedLookup, Base):
    __tablename__ = "categories"
