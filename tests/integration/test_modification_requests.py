"""Modification request lifecycle through /api/brfq and /api/admin."""

from datetime import datetime

import pytest
from sqlalchemy import func, select

from procurement_api.models.brfq import Brfq, RequestItem
from procurement_api.models.modification import (
    ModificationApprovalHistory,
    ModificationRequest,
)


def _brfq(**overrides) -> Brfq:
    values = dict(
        id="brfq-1",
        rfq_id="BRFQ-000001",
        title="Valves",
        status="approved",
        approval_status="approved",
        published=True,
        publish_on_approval=True,
        currency="USD",
    )
    values.update(overrides)
    return Brfq(**values)


def _mod(mod_id: str = "mod-1", status: str = "pending", summary=None, **extra) -> ModificationRequest:
    return ModificationRequest(
        id=mod_id,
        brfq_id="brfq-1",
        requested_by="buyer",
        field="title",
        reason="Drawing revision",
        summary=summary or {},
        status=status,
        requested_at=datetime(2024, 5, 1),
        **extra,
    )


async def _history_count(session_factory, mod_id: str) -> int:
    async with session_factory() as s:
        return (
            await s.execute(
                select(func.count(ModificationApprovalHistory.id)).where(
                    ModificationApprovalHistory.modification_id == mod_id
                )
            )
        ).scalar()


@pytest.mark.asyncio
async def test_reject_pending_modification(client, admin_headers, add_rows, session_factory):
    await add_rows(_brfq(), _mod())

    resp = await client.post(
        "/api/admin/modification-requests/mod-1/reject",
        json={"actedBy": "admin", "note": "scope unclear"},
        headers=admin_headers,
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["modification"]["status"] == "rejected"
    assert body["data"]["modification"]["processedBy"] == "admin"
    assert body["data"]["history"]["action"] == "reject"
    assert body["data"]["history"]["note"] == "scope unclear"

    async with session_factory() as s:
        mod = (await s.execute(select(ModificationRequest).where(ModificationRequest.id == "mod-1"))).scalar_one()
        assert mod.status == "rejected"
        assert mod.processed_at is not None
    assert await _history_count(session_factory, "mod-1") == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["approved", "rejected"])
async def test_reject_non_pending_returns_400_and_writes_nothing(
    client, admin_headers, add_rows, session_factory, status
):
    await add_rows(_brfq(), _mod(status=status))

    resp = await client.post(
        "/api/admin/modification-requests/mod-1/reject",
        json={"actedBy": "admin"},
        headers=admin_headers,
    )

    assert resp.status_code == 400
    assert resp.json()["success"] is False
    async with session_factory() as s:
        mod = (await s.execute(select(ModificationRequest).where(ModificationRequest.id == "mod-1"))).scalar_one()
        assert mod.status == status
        assert mod.processed_by is None
    assert await _history_count(session_factory, "mod-1") == 0


@pytest.mark.asyncio
async def test_reject_missing_modification_returns_404(client, admin_headers):
    resp = await client.post(
        "/api/admin/modification-requests/nope/reject", json={}, headers=admin_headers
    )
    assert resp.status_code == 404
    assert resp.json()["error"]["message"] == "Modification request not found"


@pytest.mark.asyncio
async def test_buyer_cannot_reject_modification(client, buyer_headers, add_rows):
    await add_rows(_brfq(), _mod())
    resp = await client.post(
        "/api/admin/modification-requests/mod-1/reject", json={}, headers=buyer_headers
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_request_modification_pauses_bidding(client, buyer_headers, add_rows, session_factory):
    await add_rows(_brfq())

    resp = await client.post(
        "/api/brfq/brfq-1/modification-request",
        json={
            "requestedFields": ["title"],
            "summary": {"title": {"from": "Valves", "to": "Brass valves"}},
            "note": "Material change",
        },
        headers=buyer_headers,
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "pending"
    assert body["field"] == "title"
    assert body["requestedBy"] == "buyer"

    async with session_factory() as s:
        brfq = (await s.execute(select(Brfq).where(Brfq.id == "brfq-1"))).scalar_one()
        assert brfq.published is False
        assert brfq.status == "modifying"
        assert brfq.approval_status == "modification_pending"


@pytest.mark.asyncio
async def test_approve_modification_applies_summary(client, admin_headers, add_rows, session_factory):
    summary = {
        "title": {"from": "Valves", "to": "Brass valves"},
        "currency": {"from": "USD", "to": "EUR"},
        "items": {"to": [{"description": "DN50 gate valve", "quantity": 10, "uom": "EA"}]},
    }
    await add_rows(
        _brfq(status="modifying", approval_status="modification_pending", published=False),
        RequestItem(id="item-old", brfq_id="brfq-1", description="Old item", uom="EA", quantity=1),
        _mod(summary=summary),
    )

    resp = await client.post(
        "/api/admin/modification-requests/mod-1/approve",
        json={"actedBy": "approver", "notifySuppliers": False},
        headers=admin_headers,
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["modification"]["status"] == "approved"
    assert data["history"]["action"] == "approve"
    assert data["brfq"]["title"] == "Brass valves"
    assert data["brfq"]["currency"] == "EUR"
    assert data["brfq"]["status"] == "approved"
    assert [i["description"] for i in data["brfq"]["items"]] == ["DN50 gate valve"]

    async with session_factory() as s:
        items = (await s.execute(select(RequestItem).where(RequestItem.brfq_id == "brfq-1"))).scalars().all()
        assert [i.quantity for i in items] == [10]


@pytest.mark.asyncio
async def test_approve_already_rejected_modification_returns_400(client, admin_headers, add_rows):
    await add_rows(_brfq(), _mod(status="rejected"))
    resp = await client.post(
        "/api/admin/modification-requests/mod-1/approve", json={}, headers=admin_headers
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_list_modification_requests_filters_by_status(client, admin_headers, add_rows):
    await add_rows(_brfq(), _mod("mod-1"), _mod("mod-2", status="rejected"))

    resp = await client.get(
        "/api/admin/modification-requests", params={"status": "pending"}, headers=admin_headers
    )

    assert resp.status_code == 200
    assert [m["id"] for m in resp.json()] == ["mod-1"]


@pytest.mark.asyncio
async def test_reject_restores_brfq_to_its_state_before_the_request(
    client, admin_headers, add_rows, session_factory
):
    await add_rows(
        _brfq(status="modifying", approval_status="modification_pending", published=False),
        _mod(previous_status="PUBLISHED", previous_published=True),
    )

    resp = await client.post(
        "/api/admin/modification-requests/mod-1/reject", json={}, headers=admin_headers
    )

    assert resp.status_code == 200
    async with session_factory() as s:
        brfq = (await s.execute(select(Brfq).where(Brfq.id == "brfq-1"))).scalar_one()
        assert brfq.status == "PUBLISHED"
        assert brfq.approval_status == "approved"
        assert brfq.published is True


@pytest.mark.asyncio
async def test_request_then_reject_reopens_brfq_for_a_new_request(
    client, buyer_headers, admin_headers, add_rows, session_factory
):
    await add_rows(_brfq(status="PUBLISHED"))

    created = await client.post(
        "/api/brfq/brfq-1/modification-request",
        json={"requestedFields": ["title"], "summary": {}},
        headers=buyer_headers,
    )
    mod_id = created.json()["id"]
    await client.post(
        f"/api/admin/modification-requests/{mod_id}/reject", json={}, headers=admin_headers
    )

    async with session_factory() as s:
        brfq = (await s.execute(select(Brfq).where(Brfq.id == "brfq-1"))).scalar_one()
        assert (brfq.status, brfq.approval_status, brfq.published) == ("PUBLISHED", "approved", True)

    again = await client.post(
        "/api/brfq/brfq-1/modification-request",
        json={"requestedFields": ["title"], "summary": {}},
        headers=buyer_headers,
    )
    assert again.status_code == 201


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, approval_status",
    [("rejected", "rejected"), ("draft", "pending"), ("paused", "approved")],
)
async def test_request_modification_on_closed_brfq_returns_400(
    client, buyer_headers, add_rows, session_factory, status, approval_status
):
    await add_rows(_brfq(status=status, approval_status=approval_status, published=False))

    resp = await client.post(
        "/api/brfq/brfq-1/modification-request",
        json={"requestedFields": ["title"], "summary": {}},
        headers=buyer_headers,
    )

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"
    async with session_factory() as s:
        brfq = (await s.execute(select(Brfq).where(Brfq.id == "brfq-1"))).scalar_one()
        assert brfq.status == status
        assert brfq.approval_status == approval_status
        count = (await s.execute(select(func.count(ModificationRequest.id)))).scalar()
        assert count == 0


@pytest.mark.asyncio
async def test_second_pending_modification_request_returns_400(
    client, buyer_headers, add_rows, session_factory
):
    await add_rows(_brfq(), _mod())

    resp = await client.post(
        "/api/brfq/brfq-1/modification-request",
        json={"requestedFields": ["title"], "summary": {}},
        headers=buyer_headers,
    )

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "MODIFICATION_ALREADY_PENDING"
    async with session_factory() as s:
        count = (await s.execute(select(func.count(ModificationRequest.id)))).scalar()
        assert count == 1


@pytest.mark.asyncio
async def test_approve_modification_for_brfq_no_longer_modifying_returns_400(
    client, admin_headers, add_rows
):
    await add_rows(_brfq(status="rejected", approval_status="rejected", published=False), _mod())

    resp = await client.post(
        "/api/admin/modification-requests/mod-1/approve", json={}, headers=admin_headers
    )

    assert resp.status_code == 400
