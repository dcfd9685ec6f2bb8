from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from procurement_api.schemas.common import CamelModel


class WinnerInput(CamelModel):
    supplier_id: str = Field(..., min_length=1)
    amount: Optional[Decimal] = None


class AwardInitiateRequest(CamelModel):
    brfq_id: Optional[str] = None
    supplier_ids: List[str] = Field(default_factory=list)
    justification: Optional[str] = None
    estimated_value: Optional[Decimal] = None
    split_award: bool = False
    winners: List[WinnerInput] = Field(default_factory=list)


class AwardApproveRequest(CamelModel):
    approver: Optional[str] = None
    winners: List[WinnerInput] = Field(default_factory=list)
    note: Optional[str] = None


class AwardInitiateResponse(CamelModel):
    approved: bool
    message: str
    award_id: str
    warnings: List[str] = []


class AwardWinnerResponse(CamelModel):
    id: str
    supplier_id: str
    amount: Optional[float] = None


class AwardHistoryResponse(CamelModel):
    id: str
    action: str
    by_user: str
    note: Optional[str] = None
    created_at: str


class AwardResponse(CamelModel):
    id: str
    brfq_id: str
    status: str
    justification: Optional[str] = None
    estimated_value: Optional[float] = None
    split_award: bool
    approved_by: Optional[str] = None
    approved_at: Optional[str] = None
    created_at: str
    winners: List[AwardWinnerResponse] = []
    approvals: List[AwardHistoryResponse] = []
