"""
Segment Audience Service

Connects the rule engine to the database:
- Streams customers page by page (keyset pagination) into the evaluator
- Recomputes and caches a segment's estimated audience on request
- Previews unsaved rule trees
- Yields the matching customers of a segment for campaign delivery
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, AsyncIterator, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.customer import Customer
from app.models.segment import Segment
from app.services.segments.evaluator import RuleEvaluator, coerce_rule
from app.services.segments.fields import CustomerRecord

logger = logging.getLogger(__name__)


async def stream_customers(
    db: AsyncSession, batch_size: Optional[int] = None
) -> AsyncIterator[CustomerRecord]:
    """
    Yield every customer as a CustomerRecord, one page at a time.

    Pages are keyed on the primary key rather than an offset, so rows are
    neither skipped nor repeated when the table changes between pages.
    Stopping iteration stops the scan.
    """
    batch_size = batch_size or settings.AUDIENCE_BATCH_SIZE
    last_id = 0
    while True:
        result = await db.execute(
            select(Customer)
            .where(Customer.id > last_id)
            .order_by(Customer.id)
            .limit(batch_size)
        )
        page = result.scalars().all()
        for customer in page:
            yield CustomerRecord.from_model(customer)
        if len(page) < batch_size:
            return
        last_id = page[-1].id


class AudienceService:
    """Computes segment audiences from the customer table."""

    def __init__(
        self,
        db: AsyncSession,
        evaluator: Optional[RuleEvaluator] = None,
        batch_size: Optional[int] = None,
    ):
        self.db = db
        self.evaluator = evaluator or RuleEvaluator()
        self.batch_size = batch_size or settings.AUDIENCE_BATCH_SIZE

    def customers(self) -> AsyncIterator[CustomerRecord]:
        return stream_customers(self.db, self.batch_size)

    async def count(self, rules: Any) -> int:
        """Count the customers matching a rule tree without storing anything."""
        return await self.evaluator.estimate_audience_async(rules, self.customers())

    async def recompute(self, segment: Segment) -> int:
        """
        Refresh a segment's cached audience size and commit it.

        Args:
            segment: The segment to refresh

        Returns:
            Number of matching customers

        Raises:
            RuleEvaluationError: The stored rules cannot be evaluated; the
                cached count is left untouched
        """
        start = time.perf_counter()
        count = await self.count(segment.rules)

        segment.estimated_audience = count
        segment.last_updated = datetime.now(timezone.utc)
        await self.db.commit()
        await self.db.refresh(segment)

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "Recomputed audience for segment %s: %d customers (%.1fms)",
            segment.id,
            count,
            elapsed_ms,
        )
        return count

    async def preview(self, rules: Any, sample_size: int = 10) -> Tuple[int, List[int]]:
        """Count matches for an unsaved rule tree and sample matching customer IDs."""
        rule = coerce_rule(rules)
        count = 0
        sample: List[int] = []
        async for customer in self.customers():
            if self.evaluator.matches(rule, customer):
                count += 1
                if len(sample) < sample_size:
                    sample.append(customer.id)
        return count, sample

    async def members(self, rules: Any) -> AsyncIterator[CustomerRecord]:
        """Yield the customers matching a rule tree."""
        rule = coerce_rule(rules)
        async for customer in self.customers():
            if self.evaluator.matches(rule, customer):
                yield customer

    def customer_matches(self, segment: Segment, customer: Customer) -> bool:
        """Check one customer against a segment's rules."""
        return self.evaluator.matches(segment.rules, CustomerRecord.from_model(customer))
