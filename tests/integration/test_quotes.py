"""Supplier quote submission through a signed quote link."""

from datetime import datetime, timedelta, timezone

from jose import jwt
import pytest
from sqlalchemy import func, select

from procurement_api.config import settings
from procurement_api.models.brfq import Brfq
from procurement_api.models.quote import Quote, QuoteItem
from procurement_api.models.supplier import Supplier
from procurement_api.services.auth_service import generate_quote_token


@pytest.fixture
async def rfq_and_supplier(add_rows):
    await add_rows(
        Brfq(
            id="brfq-1",
            rfq_id="BRFQ-000001",
            title="Valves",
            status="PUBLISHED",
            approval_status="approved",
            published=True,
        ),
        Supplier(
            id="sup-1",
            company_name="Acme Industrial",
            registration_email="sales@acme.com",
            status="Active",
        ),
    )


def _submission(token: str, **overrides) -> dict:
    body = {
        "token": token,
        "supplierQuoteNo": "Q-77",
        "validFor": "30 days",
        "currency": "USD",
        "items": [
            {"supplierPartNo": "GV-2", "unitPrice": "12.50", "qty": "4", "uom": "EA"},
            {"itemRef": "line-2", "cost": "99"},
        ],
    }
    body.update(overrides)
    return body


async def _quote_count(session_factory) -> int:
    async with session_factory() as s:
        return (await s.execute(select(func.count(Quote.id)))).scalar()


@pytest.mark.asyncio
async def test_submit_quote_with_valid_token(client, rfq_and_supplier, session_factory):
    token = generate_quote_token("brfq-1", "sup-1")

    resp = await client.post("/api/suppliers/quote", json=_submission(token))

    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Quote submitted successfully"
    quote = body["quote"]
    assert quote["rfqId"] == "brfq-1"
    assert quote["supplierId"] == "sup-1"
    assert quote["supplierQuoteNo"] == "Q-77"

    items = sorted(quote["items"], key=lambda i: i["supplierPartNo"])
    assert [i["supplierPartNo"] for i in items] == ["GV-2", "line-2"]
    # Cost derived from unit price and quantity when not sent
    assert items[0]["cost"] == 50.0
    assert items[1]["cost"] == 99.0

    async with session_factory() as s:
        assert (await s.execute(select(func.count(QuoteItem.id)))).scalar() == 2


@pytest.mark.asyncio
async def test_second_quote_from_same_supplier_conflicts(client, rfq_and_supplier, session_factory):
    token = generate_quote_token("brfq-1", "sup-1")

    first = await client.post("/api/suppliers/quote", json=_submission(token))
    second = await client.post("/api/suppliers/quote", json=_submission(token, supplierQuoteNo="Q-78"))

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["success"] is False
    assert await _quote_count(session_factory) == 1


@pytest.mark.asyncio
async def test_tampered_token_is_rejected(client, rfq_and_supplier, session_factory):
    token = generate_quote_token("brfq-1", "sup-1")
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload, signature[::-1]])

    resp = await client.post("/api/suppliers/quote", json=_submission(tampered))

    assert resp.status_code == 401
    assert await _quote_count(session_factory) == 0


@pytest.mark.asyncio
async def test_expired_token_is_rejected(client, rfq_and_supplier, session_factory):
    past = datetime.now(timezone.utc) - timedelta(days=1)
    expired = jwt.encode(
        {"rfqId": "brfq-1", "supplierId": "sup-1", "type": "quote", "exp": past},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )

    resp = await client.post("/api/suppliers/quote", json=_submission(expired))

    assert resp.status_code == 401
    assert resp.json()["error"]["message"] == "Invalid or expired quote token"
    assert await _quote_count(session_factory) == 0


@pytest.mark.asyncio
async def test_token_signed_with_other_secret_is_rejected(client, rfq_and_supplier, session_factory):
    forged = jwt.encode(
        {"rfqId": "brfq-1", "supplierId": "sup-1", "type": "quote"},
        "not-the-secret",
        algorithm=settings.JWT_ALGORITHM,
    )
    resp = await client.post("/api/suppliers/quote", json=_submission(forged))
    assert resp.status_code == 401
    assert await _quote_count(session_factory) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "rfq_id, supplier_id",
    [("brfq-missing", "sup-1"), ("brfq-1", "sup-missing")],
)
async def test_token_for_unknown_records_writes_nothing(
    client, rfq_and_supplier, session_factory, rfq_id, supplier_id
):
    token = generate_quote_token(rfq_id, supplier_id)

    resp = await client.post("/api/suppliers/quote", json=_submission(token))

    assert resp.status_code == 400
    assert await _quote_count(session_factory) == 0
    async with session_factory() as s:
        assert (await s.execute(select(func.count(QuoteItem.id)))).scalar() == 0


@pytest.mark.asyncio
async def test_access_token_cannot_be_used_as_quote_token(client, rfq_and_supplier, admin_headers):
    access_token = admin_headers["Authorization"].split(" ", 1)[1]
    resp = await client.post("/api/suppliers/quote", json=_submission(access_token))
    assert resp.status_code == 401


# ---------------------------------------------------------------------------
# GET /api/lib/verify-quote-token
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_verify_quote_token_returns_ids(client):
    token = generate_quote_token("brfq-1", "sup-1")
    resp = await client.get("/api/lib/verify-quote-token", params={"token": token})
    assert resp.status_code == 200
    assert resp.json() == {"rfqId": "brfq-1", "supplierId": "sup-1"}


@pytest.mark.asyncio
async def test_verify_quote_token_missing_is_400(client):
    resp = await client.get("/api/lib/verify-quote-token")
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_verify_quote_token_invalid_is_401(client):
    resp = await client.get("/api/lib/verify-quote-token", params={"token": "garbage"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_list_quotes_for_brfq(client, rfq_and_supplier, buyer_headers):
    await client.post(
        "/api/suppliers/quote", json=_submission(generate_quote_token("brfq-1", "sup-1"))
    )

    resp = await client.get("/api/brfq/brfq-1/quotes", headers=buyer_headers)

    assert resp.status_code == 200
    quotes = resp.json()
    assert len(quotes) == 1
    assert quotes[0]["supplierId"] == "sup-1"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, approval_status, published",
    [
        ("paused", "approved", False),
        ("modifying", "modification_pending", False),
        ("rejected", "rejected", False),
        ("awarded", "approved", True),
        ("approved", "approved", False),
    ],
)
async def test_quote_for_brfq_not_open_for_bidding_is_rejected(
    client, add_rows, session_factory, status, approval_status, published
):
    await add_rows(
        Brfq(
            id="brfq-2",
            rfq_id="BRFQ-000002",
            title="Pumps",
            status=status,
            approval_status=approval_status,
            published=published,
        ),
        Supplier(
            id="sup-2",
            company_name="Bolt Pumps",
            registration_email="sales@bolt.com",
            status="Active",
        ),
    )
    token = generate_quote_token("brfq-2", "sup-2")

    resp = await client.post("/api/suppliers/quote", json=_submission(token))

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "BRFQ_NOT_OPEN"
    assert await _quote_count(session_factory) == 0
