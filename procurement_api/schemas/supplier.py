from typing import Optional
from pydantic import EmailStr, Field

from procurement_api.schemas.common import CamelModel


class SupplierCreate(CamelModel):
    company_name: str = Field(..., min_length=2, max_length=200)
    registration_email: EmailStr
    supplier_type: Optional[str] = Field(None, max_length=50)
    contact_name: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, pattern=r"^\+?[0-9 ()-]{4,30}$")
    country: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)


class SupplierResponse(CamelModel):
    id: str
    company_name: str
    registration_email: str
    supplier_type: Optional[str] = None
    status: str
    contact_name: Optional[str] = None
    phone: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    created_at: str
    updated_at: str
