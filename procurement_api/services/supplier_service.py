"""
Supplier registration and approval.

Approving a supplier activates it and makes sure exactly one SUPPLIER login
exists for it. Both writes go through the caller's session so they commit
together; the welcome email with the temporary password is returned to the
caller for background dispatch after the flush succeeds.
"""

from dataclasses import dataclass
from datetime import datetime
import secrets
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from procurement_api.models.supplier import SUPPLIER_ACTIVE, SUPPLIER_PENDING, Supplier
from procurement_api.models.user import User
from procurement_api.schemas.supplier import SupplierCreate, SupplierResponse
from procurement_api.services.audit_service import create_audit_log
from procurement_api.services.auth_service import generate_temporary_password, hash_password

logger = structlog.get_logger()

USERNAME_ATTEMPTS = 10


@dataclass
class SupplierApproval:
    supplier: Supplier
    user: Optional[User] = None
    # Plain text only when a login was created during this call
    temp_password: Optional[str] = None


def to_response(s: Supplier) -> SupplierResponse:
    return SupplierResponse(
        id=str(s.id),
        company_name=s.company_name,
        registration_email=s.registration_email,
        supplier_type=s.supplier_type,
        status=s.status,
        contact_name=s.contact_name,
        phone=s.phone,
        country=s.country,
        city=s.city,
        created_at=s.created_at.isoformat() if s.created_at else "",
        updated_at=s.updated_at.isoformat() if s.updated_at else "",
    )


async def get_supplier_or_404(db: AsyncSession, supplier_id: str) -> Supplier:
    result = await db.execute(select(Supplier).where(Supplier.id == supplier_id))
    supplier = result.scalar_one_or_none()
    if not supplier:
        raise HTTPException(status_code=404, detail="Supplier not found")
    return supplier


async def register_supplier(db: AsyncSession, body: SupplierCreate) -> Supplier:
    email = str(body.registration_email).lower()
    existing = await db.execute(
        select(Supplier.id).where(Supplier.registration_email == email)
    )
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A supplier with this registration email already exists",
        )

    supplier = Supplier(
        company_name=body.company_name,
        registration_email=email,
        supplier_type=body.supplier_type,
        status=SUPPLIER_PENDING,
        contact_name=body.contact_name,
        phone=body.phone,
        country=body.country,
        city=body.city,
    )
    db.add(supplier)
    await db.flush()
    logger.info("supplier_registered", supplier_id=supplier.id)
    return supplier


def username_candidate(email: str) -> str:
    local = (email or "supplier").split("@", 1)[0] or "supplier"
    return f"{local}_{secrets.randbelow(9000) + 1000}"


async def _unique_username(db: AsyncSession, email: str) -> str:
    for _ in range(USERNAME_ATTEMPTS):
        candidate = username_candidate(email)
        taken = await db.execute(select(User.id).where(User.username == candidate))
        if taken.scalar_one_or_none() is None:
            return candidate
    # Fall back to a longer random suffix
    local = (email or "supplier").split("@", 1)[0] or "supplier"
    return f"{local}_{secrets.token_hex(4)}"


async def approve_supplier(
    db: AsyncSession, supplier_id: str, actor: Optional[str] = None
) -> SupplierApproval:
    """
    Activate a supplier and ensure it has a login.

    Idempotent: re-approving an active supplier leaves its existing user alone
    and never issues a new password.
    """
    supplier = await get_supplier_or_404(db, supplier_id)

    before = {"status": supplier.status}
    supplier.status = SUPPLIER_ACTIVE
    supplier.updated_at = datetime.utcnow()

    existing = await db.execute(select(User).where(User.supplier_id == supplier.id))
    user = existing.scalar_one_or_none()

    approval = SupplierApproval(supplier=supplier, user=user)
    if user is None:
        temp_password = generate_temporary_password()
        user = User(
            username=await _unique_username(db, supplier.registration_email),
            email=supplier.registration_email,
            password_hash=hash_password(temp_password),
            type="SUPPLIER",
            supplier_id=supplier.id,
            is_active=True,
        )
        db.add(user)
        approval.user = user
        approval.temp_password = temp_password

    await db.flush()

    await create_audit_log(
        db,
        actor=actor,
        action="SUPPLIER_APPROVED",
        entity_type="SUPPLIER",
        entity_id=supplier.id,
        before_state=before,
        after_state={"status": supplier.status},
    )
    logger.info(
        "supplier_approved",
        supplier_id=supplier.id,
        user_created=approval.temp_password is not None,
    )
    return approval
