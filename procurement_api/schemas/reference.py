from typing import Optional

from procurement_api.schemas.common import CamelModel


class LookupCreate(CamelModel):
    item_name: Optional[str] = None


class LookupResponse(CamelModel):
    id: str
    name: str
    created_at: str
