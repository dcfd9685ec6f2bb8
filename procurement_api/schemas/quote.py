from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from procurement_api.schemas.common import CamelModel


class QuoteItemCreate(CamelModel):
    supplier_part_no: Optional[str] = None
    # Buyer-side line reference, used when no supplier part number is given
    item_ref: Optional[str] = None
    delivery_days: Optional[str] = None
    unit_price: Optional[Decimal] = None
    qty: Optional[Decimal] = None
    uom: Optional[str] = None
    cost: Decimal = Decimal("0")


class QuoteSubmission(CamelModel):
    token: str = Field(..., min_length=1)
    supplier_quote_no: str = ""
    valid_for: str = ""
    currency: str = ""
    shipping: str = ""
    comments: str = ""
    items: List[QuoteItemCreate] = Field(default_factory=list)


class QuoteItemResponse(CamelModel):
    id: str
    supplier_part_no: str
    delivery_days: str
    unit_price: Optional[float] = None
    qty: Optional[float] = None
    uom: str
    cost: float


class QuoteResponse(CamelModel):
    id: str
    rfq_id: str
    supplier_id: str
    supplier_quote_no: str
    valid_for: str
    currency: str
    shipping: str
    comments: str
    submitted_at: str
    items: List[QuoteItemResponse] = []


class QuoteCreatedResponse(CamelModel):
    message: str
    quote: QuoteResponse


class QuoteTokenPayload(CamelModel):
    rfq_id: str
    supplier_id: str
