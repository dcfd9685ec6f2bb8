"""Supplier registration and approval through /api/suppliers and /api/supplier."""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select

from procurement_api.models.supplier import Supplier
from procurement_api.models.user import User


def _supplier(supplier_id: str = "sup-9", email: str = "sales@acme.com") -> Supplier:
    return Supplier(
        id=supplier_id,
        company_name="Acme Industrial",
        registration_email=email,
        status="pending",
    )


async def _supplier_users(session_factory, supplier_id: str):
    async with session_factory() as s:
        return (
            await s.execute(select(User).where(User.supplier_id == supplier_id))
        ).scalars().all()


@pytest.mark.asyncio
async def test_approve_supplier_activates_and_creates_login(
    client, admin_headers, add_rows, session_factory
):
    await add_rows(_supplier())

    with patch(
        "procurement_api.routes.suppliers.send_notification", new=AsyncMock(return_value=True)
    ) as mock_notify:
        resp = await client.post("/api/supplier/sup-9/approve", headers=admin_headers)

    assert resp.status_code == 200
    assert resp.json()["status"] == "Active"
    assert resp.json()["id"] == "sup-9"

    users = await _supplier_users(session_factory, "sup-9")
    assert len(users) == 1
    assert users[0].type == "SUPPLIER"
    assert users[0].email == "sales@acme.com"
    assert users[0].username.startswith("sales_")

    # Welcome mail carries the generated password, which matches the stored hash
    mock_notify.assert_awaited_once()
    template_id, recipients, context = mock_notify.call_args.args
    assert template_id == "supplier_approved"
    assert recipients == ["sales@acme.com"]
    assert context["temp_password"] != "Password@123"


@pytest.mark.asyncio
async def test_approve_supplier_twice_keeps_single_user(
    client, admin_headers, add_rows, session_factory
):
    await add_rows(_supplier())

    with patch(
        "procurement_api.routes.suppliers.send_notification", new=AsyncMock(return_value=True)
    ) as mock_notify:
        first = await client.post("/api/supplier/sup-9/approve", headers=admin_headers)
        second = await client.post("/api/supplier/sup-9/approve", headers=admin_headers)

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["status"] == "Active"
    assert len(await _supplier_users(session_factory, "sup-9")) == 1
    # Only the first approval issues credentials
    assert mock_notify.await_count == 1


@pytest.mark.asyncio
async def test_approved_supplier_can_log_in_with_emailed_password(client, admin_headers, add_rows):
    await add_rows(_supplier())

    with patch(
        "procurement_api.services.supplier_service.generate_temporary_password",
        return_value="Temp#Pass2024",
    ), patch("procurement_api.routes.suppliers.send_notification", new=AsyncMock()):
        await client.post("/api/supplier/sup-9/approve", headers=admin_headers)

    login = await client.post(
        "/auth/login", json={"login": "sales@acme.com", "password": "Temp#Pass2024"}
    )
    assert login.status_code == 200

    me = await client.get(
        "/auth/me", headers={"Authorization": f"Bearer {login.json()['access_token']}"}
    )
    assert me.json()["type"] == "SUPPLIER"
    assert me.json()["supplier_id"] == "sup-9"


@pytest.mark.asyncio
async def test_approve_missing_supplier_returns_404_and_creates_nothing(
    client, admin_headers, session_factory
):
    resp = await client.post("/api/supplier/ghost/approve", headers=admin_headers)

    assert resp.status_code == 404
    async with session_factory() as s:
        count = (await s.execute(select(func.count(User.id)).where(User.type == "SUPPLIER"))).scalar()
    assert count == 0


@pytest.mark.asyncio
async def test_approve_requires_admin_role(client, buyer_headers, add_rows):
    await add_rows(_supplier())
    resp = await client.post("/api/supplier/sup-9/approve", headers=buyer_headers)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "INSUFFICIENT_PERMISSIONS"


@pytest.mark.asyncio
async def test_register_supplier_then_duplicate_conflicts(client):
    payload = {
        "companyName": "Bolt Works",
        "registrationEmail": "Quotes@BoltWorks.com",
        "supplierType": "Manufacturer",
        "country": "DE",
    }

    first = await client.post("/api/suppliers", json=payload)
    assert first.status_code == 201
    assert first.json()["status"] == "pending"
    assert first.json()["registrationEmail"] == "quotes@boltworks.com"

    second = await client.post("/api/suppliers", json=payload)
    assert second.status_code == 409


@pytest.mark.asyncio
async def test_register_supplier_validates_email(client):
    resp = await client.post(
        "/api/suppliers", json={"companyName": "Bolt Works", "registrationEmail": "nope"}
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_list_suppliers_filters_by_status(client, buyer_headers, add_rows):
    active = _supplier("sup-1", "a@x.com")
    active.status = "Active"
    await add_rows(active, _supplier("sup-2", "b@x.com"))

    resp = await client.get("/api/suppliers", params={"status": "Active"}, headers=buyer_headers)

    assert resp.status_code == 200
    body = resp.json()
    assert [s["id"] for s in body["data"]] == ["sup-1"]
    assert body["pagination"]["total"] == 1
