from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field

from procurement_api.schemas.common import CamelModel


class RequestItemCreate(CamelModel):
    internal_part_no: Optional[str] = None
    manufacturer: Optional[str] = None
    mfg_part_no: Optional[str] = None
    description: str = Field(..., min_length=1)
    uom: str = "EA"
    quantity: int = Field(..., ge=0)


class ScopeOfWorkCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = None


class BrfqCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=300)
    category_id: Optional[str] = None
    close_date: Optional[datetime] = None
    requester: Optional[str] = None
    requester_email: Optional[str] = None
    currency: Optional[str] = None
    incoterms: Optional[str] = None
    carrier: Optional[str] = None
    urgency: Optional[str] = None
    shipping_type: Optional[str] = None
    payment_process: Optional[str] = None
    shipping_address: Optional[str] = None
    notes_to_supplier: Optional[str] = None
    target_price: Optional[Decimal] = None
    publish_on_approval: bool = False
    supplier_ids: List[str] = Field(default_factory=list)
    items: List[RequestItemCreate] = Field(default_factory=list)
    scope_of_work: List[ScopeOfWorkCreate] = Field(default_factory=list)


class RequestItemResponse(CamelModel):
    id: str
    internal_part_no: Optional[str] = None
    manufacturer: Optional[str] = None
    mfg_part_no: Optional[str] = None
    description: str
    uom: str
    quantity: int


class ScopeOfWorkResponse(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    position: int


class BrfqResponse(CamelModel):
    id: str
    rfq_id: str
    title: str
    category_id: Optional[str] = None
    status: str
    approval_status: Optional[str] = None
    published: bool
    publish_on_approval: bool
    approved_by: Optional[str] = None
    approved_at: Optional[str] = None
    approval_note: Optional[str] = None
    close_date: Optional[str] = None
    requester: Optional[str] = None
    currency: Optional[str] = None
    incoterms: Optional[str] = None
    carrier: Optional[str] = None
    urgency: Optional[str] = None
    shipping_type: Optional[str] = None
    payment_process: Optional[str] = None
    notes_to_supplier: Optional[str] = None
    target_price: Optional[float] = None
    supplier_ids: List[str] = []
    items: List[RequestItemResponse] = []
    scope_of_work: List[ScopeOfWorkResponse] = []
    created_at: str
    updated_at: str


class BrfqDecisionRequest(CamelModel):
    note: Optional[str] = Field(None, max_length=2000)
    approver: Optional[str] = None
    publish_override: Optional[bool] = None


class EmailResult(CamelModel):
    supplier_id: str
    email: Optional[str] = None
    queued: bool
    error: Optional[str] = None


class BrfqApprovalResponse(CamelModel):
    success: bool = True
    message: str
    brfq: BrfqResponse
    email_results: List[EmailResult] = []


class ModificationRequestCreate(CamelModel):
    requested_by: Optional[str] = None
    requested_fields: List[str] = Field(default_factory=list)
    summary: Dict[str, Any] = Field(default_factory=dict)
    note: Optional[str] = None


class ModificationActionRequest(CamelModel):
    acted_by: Optional[str] = None
    note: Optional[str] = None
    notify_suppliers: bool = True


class ModificationResponse(CamelModel):
    id: str
    brfq_id: str
    requested_by: str
    field: str
    reason: str
    summary: Optional[Dict[str, Any]] = None
    status: str
    processed_by: Optional[str] = None
    processed_at: Optional[str] = None
    requested_at: str


class ModificationHistoryResponse(CamelModel):
    id: str
    modification_id: str
    action: str
    acted_by: str
    acted_at: str
    note: Optional[str] = None


class PauseRequest(CamelModel):
    requested_by: Optional[str] = None
    reason_text: Optional[str] = None
    notify_suppliers: bool = True


class ResumeRequest(CamelModel):
    performed_by: Optional[str] = None
    notify_suppliers: bool = True


class BrfqActionResponse(CamelModel):
    success: bool = True
    message: str
    brfq: BrfqResponse


class ModificationActionResponse(CamelModel):
    success: bool = True
    message: str
    data: Dict[str, Any]
