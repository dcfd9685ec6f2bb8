"""Unit tests for BRFQ numbering and creation in brfq_service."""

from unittest.mock import AsyncMock, MagicMock

from fastapi import HTTPException
import pytest
from sqlalchemy.exc import IntegrityError

from procurement_api.schemas.brfq import BrfqCreate
from procurement_api.services.brfq_service import create_brfq, generate_rfq_number


def _scalar_result(value) -> MagicMock:
    result = MagicMock()
    result.scalar.return_value = value
    return result


@pytest.mark.asyncio
async def test_number_follows_highest_issued_number():
    session = AsyncMock()
    session.execute.return_value = _scalar_result("BRFQ-000041")

    assert await generate_rfq_number(session) == "BRFQ-000042"


@pytest.mark.asyncio
async def test_first_number_when_none_issued():
    session = AsyncMock()
    session.execute.return_value = _scalar_result(None)

    assert await generate_rfq_number(session) == "BRFQ-000001"


@pytest.mark.asyncio
async def test_number_collision_on_flush_is_409():
    session = AsyncMock()
    session.add = MagicMock()
    session.execute.return_value = _scalar_result("BRFQ-000007")
    session.flush.side_effect = IntegrityError("INSERT INTO brfqs", {}, Exception("duplicate rfq_id"))

    with pytest.raises(HTTPException) as exc_info:
        await create_brfq(session, BrfqCreate(title="Valves"), created_by="buyer")

    assert exc_info.value.status_code == 409
    assert exc_info.value.detail["code"] == "RFQ_NUMBER_CONFLICT"
    assert "BRFQ-000008" in exc_info.value.detail["message"]
