"""Import every model so Base.metadata and Alembic see all tables."""

from procurement_api.database import Base  # noqa: F401

from procurement_api.models.reference import (  # noqa: F401
    Currency,
    Incoterm,
    Carrier,
    Uom,
    Urgency,
    ShippingType,
    PaymentProcess,
    Category,
)
from procurement_api.models.supplier import Supplier  # noqa: F401
from procurement_api.models.user import User  # noqa: F401
from procurement_api.models.brfq import (  # noqa: F401
    Brfq,
    RequestItem,
    ScopeOfWorkItem,
    BrfqApprovalStep,
    PauseAction,
    brfq_suppliers,
)
from procurement_api.models.quote import Quote, QuoteItem  # noqa: F401
from procurement_api.models.modification import (  # noqa: F401
    ModificationRequest,
    ModificationApprovalHistory,
)
from procurement_api.models.award import Award, AwardWinner, AwardApprovalHistory  # noqa: F401
from procurement_api.models.audit_log import AuditLog  # noqa: F401
