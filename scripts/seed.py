"""
Seed script: creates the staff logins and the lookup values behind the BRFQ form.
Run from the project root: python -m scripts.seed

Passwords come from SEED_PASSWORD when set, otherwise one random password is
generated and printed once.
"""
import asyncio
import sys
import os

# Ensure the project root is on sys.path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select
from procurement_api.database import AsyncSessionLocal, engine
import procurement_api.models  # noqa: F401
from procurement_api.models.reference import (
    Carrier,
    Category,
    Currency,
    Incoterm,
    PaymentProcess,
    ShippingType,
    Uom,
    Urgency,
)
from procurement_api.models.user import User
from procurement_api.services.auth_service import generate_temporary_password, hash_password

# ---------- Fixed ids ----------

USER_ADMIN_ID = "a0000000-0000-0000-0000-000000000001"
USER_BUYER_ID = "a0000000-0000-0000-0000-000000000002"
USER_APPROVER_ID = "a0000000-0000-0000-0000-000000000003"

STAFF = [
    (USER_ADMIN_ID, "admin", "admin@procurement.example.com", "ADMIN"),
    (USER_BUYER_ID, "buyer", "buyer@procurement.example.com", "BUYER"),
    (USER_APPROVER_ID, "approver", "approver@procurement.example.com", "APPROVER"),
]

LOOKUPS = {
    Currency: ["USD", "EUR", "GBP", "INR", "AED"],
    Incoterm: ["EXW", "FCA", "FOB", "CIF", "DAP", "DDP"],
    Carrier: ["DHL", "FedEx", "UPS", "Aramex"],
    Uom: ["EA", "BOX", "KG", "M", "L", "SET"],
    Urgency: ["Low", "Normal", "High", "Critical"],
    ShippingType: ["Air", "Sea", "Road", "Courier"],
    PaymentProcess: ["Net 30", "Net 60", "Advance", "Letter of Credit"],
    Category: ["Electrical", "Mechanical", "IT Hardware", "Services"],
}


async def seed():
    async with AsyncSessionLocal() as db:
        result = await db.execute(select(User).where(User.id == USER_ADMIN_ID))
        if result.scalar_one_or_none():
            print("Seed data already exists. Skipping.")
            return

        password = os.getenv("SEED_PASSWORD") or generate_temporary_password()
        hashed_pw = hash_password(password)

        # --- Staff users ---
        for user_id, username, email, user_type in STAFF:
            db.add(
                User(
                    id=user_id,
                    username=username,
                    email=email,
                    password_hash=hashed_pw,
                    type=user_type,
                    is_active=True,
                )
            )

        # --- Lookup values ---
        for model, names in LOOKUPS.items():
            for name in names:
                db.add(model(name=name))

        await db.commit()

        print("Seed complete.")
        print(f"  Users: {', '.join(u[2] for u in STAFF)}")
        print(f"  Lookup values: {sum(len(v) for v in LOOKUPS.values())}")
        if not os.getenv("SEED_PASSWORD"):
            print(f"  Generated password for all seeded users: {password}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
