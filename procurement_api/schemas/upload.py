from typing import Dict, Optional

from procurement_api.schemas.common import CamelModel


class PresignRequest(CamelModel):
    filename: Optional[str] = None
    content_type: Optional[str] = None


class PresignResponse(CamelModel):
    url: str
    fields: Dict[str, str]
    key: str
    public_url: str
