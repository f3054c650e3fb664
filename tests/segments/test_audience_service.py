"""
Tests for the database-backed audience service.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.segment import Segment
from app.services.segments import UnknownFieldError
from app.services.segments.audience import AudienceService, stream_customers

HIGH_SPEND_FEW_VISITS = {
    "condition": "AND",
    "rules": [
        {"field": "totalSpend", "operator": ">", "value": 10000},
        {"field": "visits", "operator": "<", "value": 3},
    ],
}


@pytest.fixture
def seeded_customers(make_customers):
    async def _seed():
        return await make_customers(
            {"total_spend": 15000.0, "visits": 1, "tags": ["vip"]},
            {"total_spend": 15000.0, "visits": 5},
            {"total_spend": 20000.0, "visits": 0},
            {"total_spend": 500.0, "visits": 1, "phone": None},
            {"total_spend": 12000.0, "visits": 2},
        )

    return _seed


async def _segment(db: AsyncSession, rules: dict) -> Segment:
    segment = Segment(name="High spenders", rules=rules)
    db.add(segment)
    await db.commit()
    await db.refresh(segment)
    return segment


class TestStreamCustomers:
    """Tests for keyset-paginated customer streaming."""

    @pytest.mark.asyncio
    async def test_yields_every_customer_once_in_id_order(self, test_db, seeded_customers):
        customers = await seeded_customers()

        streamed = [record.id async for record in stream_customers(test_db, batch_size=2)]

        assert streamed == sorted(customer.id for customer in customers)

    @pytest.mark.asyncio
    async def test_exact_multiple_of_batch_size(self, test_db, make_customers):
        await make_customers({}, {}, {}, {})

        streamed = [record.id async for record in stream_customers(test_db, batch_size=2)]

        assert len(streamed) == 4

    @pytest.mark.asyncio
    async def test_empty_table(self, test_db):
        streamed = [record async for record in stream_customers(test_db, batch_size=3)]
        assert streamed == []


class TestAudienceService:
    """Tests for recompute, preview and members."""

    @pytest.mark.asyncio
    async def test_recompute_stores_count(self, test_db, seeded_customers):
        await seeded_customers()
        segment = await _segment(test_db, HIGH_SPEND_FEW_VISITS)

        count = await AudienceService(test_db, batch_size=2).recompute(segment)

        assert count == 3
        assert segment.estimated_audience == 3
        assert segment.last_updated is not None

    @pytest.mark.asyncio
    async def test_recompute_failure_keeps_previous_count(self, test_db, seeded_customers):
        await seeded_customers()
        segment = await _segment(test_db, {"field": "loyaltyTier", "operator": "=", "value": "gold"})
        segment.estimated_audience = 7
        await test_db.commit()

        with pytest.raises(UnknownFieldError):
            await AudienceService(test_db).recompute(segment)

        assert segment.estimated_audience == 7

    @pytest.mark.asyncio
    async def test_preview_returns_sample(self, test_db, seeded_customers):
        customers = await seeded_customers()

        count, sample = await AudienceService(test_db).preview(HIGH_SPEND_FEW_VISITS, sample_size=2)

        assert count == 3
        assert sample == [customers[0].id, customers[2].id]

    @pytest.mark.asyncio
    async def test_members(self, test_db, seeded_customers):
        customers = await seeded_customers()

        members = [record.id async for record in AudienceService(test_db).members(HIGH_SPEND_FEW_VISITS)]

        assert members == [customers[0].id, customers[2].id, customers[4].id]

    @pytest.mark.asyncio
    async def test_customer_matches(self, test_db, seeded_customers):
        customers = await seeded_customers()
        segment = await _segment(test_db, HIGH_SPEND_FEW_VISITS)
        service = AudienceService(test_db)

        assert service.customer_matches(segment, customers[0]) is True
        assert service.customer_matches(segment, customers[1]) is False
