"""BRFQ creation, approval workflow and pause/resume."""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select

from procurement_api.models.audit_log import AuditLog
from procurement_api.models.brfq import Brfq, BrfqApprovalStep, PauseAction
from procurement_api.models.supplier import Supplier


def _create_body(**overrides) -> dict:
    body = {
        "title": "Gate valves for line 3",
        "currency": "USD",
        "requesterEmail": "requester@example.com",
        "items": [{"description": "Gate valve DN50", "uom": "EA", "quantity": 12}],
        "scopeOfWork": [{"title": "Supply"}, {"title": "Inspection"}],
    }
    body.update(overrides)
    return body


async def _create(client, headers, **overrides) -> dict:
    resp = await client.post("/api/brfq", json=_create_body(**overrides), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture
async def suppliers(add_rows):
    await add_rows(
        Supplier(id="sup-1", company_name="Acme", registration_email="a@acme.com", status="Active"),
        Supplier(id="sup-2", company_name="Bolt", registration_email="b@bolt.com", status="Active"),
    )


@pytest.mark.asyncio
async def test_create_brfq_numbers_sequentially(client, buyer_headers):
    first = await _create(client, buyer_headers)
    second = await _create(client, buyer_headers, title="Ball valves")

    assert first["rfqId"] == "BRFQ-000001"
    assert second["rfqId"] == "BRFQ-000002"
    assert first["status"] == "draft"
    assert first["approvalStatus"] == "none"
    assert first["published"] is False
    assert [i["description"] for i in first["items"]] == ["Gate valve DN50"]
    assert [s["position"] for s in first["scopeOfWork"]] == [0, 1]


@pytest.mark.asyncio
async def test_create_brfq_numbers_after_highest_existing_number(client, buyer_headers, add_rows):
    # Only the second number is left, as after BRFQ-000001 was deleted
    await add_rows(Brfq(id="brfq-2", rfq_id="BRFQ-000002", title="Old", status="draft"))

    created = await _create(client, buyer_headers)

    assert created["rfqId"] == "BRFQ-000003"


@pytest.mark.asyncio
async def test_create_brfq_links_suppliers(client, buyer_headers, suppliers):
    brfq = await _create(client, buyer_headers, supplierIds=["sup-1", "sup-2", "sup-1"])
    assert sorted(brfq["supplierIds"]) == ["sup-1", "sup-2"]


@pytest.mark.asyncio
async def test_create_brfq_with_unknown_supplier_is_400(client, buyer_headers):
    resp = await client.post(
        "/api/brfq", json=_create_body(supplierIds=["ghost"]), headers=buyer_headers
    )
    assert resp.status_code == 400
    assert "ghost" in resp.json()["error"]["message"]


@pytest.mark.asyncio
async def test_submit_then_reject_twice(client, buyer_headers, admin_headers, session_factory):
    brfq = await _create(client, buyer_headers)

    submitted = await client.post(f"/api/brfq/{brfq['id']}/submit", headers=buyer_headers)
    assert submitted.status_code == 200
    assert submitted.json()["brfq"]["approvalStatus"] == "pending"

    with patch("procurement_api.routes.admin.send_notification", new=AsyncMock()) as mock_notify:
        rejected = await client.post(
            f"/api/admin/brfqs/{brfq['id']}/reject",
            json={"note": "Budget not available"},
            headers=admin_headers,
        )
        again = await client.post(
            f"/api/admin/brfqs/{brfq['id']}/reject", json={}, headers=admin_headers
        )

    assert rejected.status_code == 200
    data = rejected.json()["brfq"]
    assert data["status"] == "rejected"
    assert data["approvalStatus"] == "rejected"
    assert data["approvedBy"] == "admin"
    assert data["approvalNote"] == "Budget not available"

    assert again.status_code == 400
    assert again.json()["error"] == {
        "code": "INVALID_STATUS_TRANSITION",
        "message": "Cannot reject BRFQ with status rejected",
    }

    # Requester told once, for the successful rejection only
    mock_notify.assert_awaited_once()
    assert mock_notify.call_args.args[:2] == ("brfq_rejected", ["requester@example.com"])

    async with session_factory() as s:
        steps = (await s.execute(select(BrfqApprovalStep))).scalars().all()
        audits = (
            await s.execute(select(func.count(AuditLog.id)).where(AuditLog.entity_id == brfq["id"]))
        ).scalar()
    assert [st.action for st in steps].count("reject") == 1
    assert audits >= 1


@pytest.mark.asyncio
async def test_submit_twice_is_400(client, buyer_headers):
    brfq = await _create(client, buyer_headers)
    await client.post(f"/api/brfq/{brfq['id']}/submit", headers=buyer_headers)
    resp = await client.post(f"/api/brfq/{brfq['id']}/submit", headers=buyer_headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Cannot submit BRFQ with status pending"


@pytest.mark.asyncio
async def test_approve_with_publish_queues_invitations(
    client, buyer_headers, approver_headers, suppliers
):
    brfq = await _create(client, buyer_headers, supplierIds=["sup-1", "sup-2"], publishOnApproval=True)
    await client.post(f"/api/brfq/{brfq['id']}/submit", headers=buyer_headers)

    with patch("procurement_api.routes.admin.send_notification", new=AsyncMock()) as mock_notify:
        resp = await client.post(
            f"/api/admin/brfqs/{brfq['id']}/approve", json={}, headers=approver_headers
        )

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "BRFQ approved and published"
    assert body["brfq"]["published"] is True
    assert body["brfq"]["approvalStatus"] == "approved"
    assert sorted((r["supplierId"], r["queued"]) for r in body["emailResults"]) == [
        ("sup-1", True),
        ("sup-2", True),
    ]

    assert mock_notify.await_count == 2
    for call in mock_notify.call_args_list:
        template_id, recipients, context = call.args
        assert template_id == "rfq_issued"
        assert "/supplier/submit-quote?token=" in context["quote_link"]


@pytest.mark.asyncio
async def test_approve_publish_override_keeps_unpublished(client, buyer_headers, admin_headers):
    brfq = await _create(client, buyer_headers, publishOnApproval=True)
    await client.post(f"/api/brfq/{brfq['id']}/submit", headers=buyer_headers)

    resp = await client.post(
        f"/api/admin/brfqs/{brfq['id']}/approve",
        json={"publishOverride": False},
        headers=admin_headers,
    )

    assert resp.status_code == 200
    assert resp.json()["message"] == "BRFQ approved"
    assert resp.json()["brfq"]["published"] is False
    assert resp.json()["emailResults"] == []


@pytest.mark.asyncio
async def test_approval_queue_filters_by_approval_status(client, buyer_headers, admin_headers):
    pending = await _create(client, buyer_headers)
    await _create(client, buyer_headers, title="Still a draft")
    await client.post(f"/api/brfq/{pending['id']}/submit", headers=buyer_headers)

    resp = await client.get(
        "/api/admin/brfqs", params={"approvalStatus": "pending"}, headers=admin_headers
    )

    assert resp.status_code == 200
    assert [b["id"] for b in resp.json()["data"]] == [pending["id"]]


@pytest.mark.asyncio
async def test_pause_and_resume_restores_status(client, buyer_headers, session_factory):
    brfq = await _create(client, buyer_headers)

    paused = await client.post(
        f"/api/brfq/{brfq['id']}/pause",
        json={"reasonText": "Waiting on drawings", "notifySuppliers": False},
        headers=buyer_headers,
    )
    assert paused.status_code == 200
    assert paused.json()["brfq"]["status"] == "paused"

    again = await client.post(f"/api/brfq/{brfq['id']}/pause", json={}, headers=buyer_headers)
    assert again.status_code == 400

    resumed = await client.post(
        f"/api/brfq/{brfq['id']}/resume", json={"notifySuppliers": False}, headers=buyer_headers
    )
    assert resumed.status_code == 200
    assert resumed.json()["brfq"]["status"] == "draft"

    async with session_factory() as s:
        actions = (
            await s.execute(select(PauseAction.action).where(PauseAction.brfq_id == brfq["id"]))
        ).scalars().all()
    assert sorted(actions) == ["paused", "resumed"]


@pytest.mark.asyncio
async def test_resume_when_not_paused_is_400(client, buyer_headers):
    brfq = await _create(client, buyer_headers)
    resp = await client.post(f"/api/brfq/{brfq['id']}/resume", json={}, headers=buyer_headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Cannot resume BRFQ with status draft"


@pytest.mark.asyncio
async def test_missing_brfq_is_404(client, buyer_headers):
    resp = await client.get("/api/brfq/nope", headers=buyer_headers)
    assert resp.status_code == 404
    assert resp.json()["error"]["message"] == "BRFQ not found"


@pytest.mark.asyncio
async def test_brfq_routes_require_token(client):
    resp = await client.get("/api/brfq")
    assert resp.status_code == 401
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_buyer_cannot_use_admin_routes(client, buyer_headers):
    resp = await client.get("/api/admin/brfqs", headers=buyer_headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_approver_cannot_create_brfq(client, approver_headers):
    resp = await client.post("/api/brfq", json=_create_body(), headers=approver_headers)
    assert resp.status_code == 403
