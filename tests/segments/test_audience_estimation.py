"""
Tests for audience estimation over lazy customer sources.
"""

import pytest

from app.services.segments import (
    CustomerRecord,
    RuleEvaluator,
    UnknownFieldError,
    estimate_audience,
)
from tests.factories import CustomerFactory

VIP_OR_BIG_SPENDER = {
    "condition": "OR",
    "rules": [
        {"field": "tags", "operator": "contains", "value": "vip"},
        {"field": "totalSpend", "operator": ">=", "value": 50000},
    ],
}


def single_pass(customers):
    """Yield customers once, recording how many were pulled."""
    single_pass.pulled = 0
    for customer in customers:
        single_pass.pulled += 1
        yield customer


async def async_source(customers):
    for customer in customers:
        yield customer


class TestEstimateAudience:
    """Tests for RuleEvaluator.estimate_audience()."""

    def test_vip_or_big_spender_scenario(self):
        customers = [
            {"tags": ["vip"], "totalSpend": 0},
            {"tags": [], "totalSpend": 100},
        ]
        assert estimate_audience(VIP_OR_BIG_SPENDER, customers) == 1

    def test_empty_source_counts_zero(self):
        assert RuleEvaluator().estimate_audience(VIP_OR_BIG_SPENDER, iter([])) == 0

    def test_consumes_generator_once(self):
        customers = [CustomerFactory() for _ in range(25)]
        count = RuleEvaluator().estimate_audience({"condition": "AND", "rules": []}, single_pass(customers))

        assert count == 25
        assert single_pass.pulled == 25

    def test_count_equals_number_of_matches(self):
        evaluator = RuleEvaluator()
        rule = {"field": "visits", "operator": ">", "value": 10}
        customers = [CustomerFactory() for _ in range(40)]

        expected = sum(1 for customer in customers if evaluator.matches(rule, customer))
        assert evaluator.estimate_audience(rule, customers) == expected

    def test_error_aborts_estimate(self):
        customers = [{"tags": [], "totalSpend": 1}, {"tags": []}]

        with pytest.raises(UnknownFieldError):
            estimate_audience(VIP_OR_BIG_SPENDER, single_pass(customers))
        assert single_pass.pulled == 2

    def test_customer_records(self):
        customers = [
            CustomerRecord(id=1, tags=("vip",)),
            CustomerRecord(id=2, total_spend=60000),
            CustomerRecord(id=3, total_spend=10),
        ]
        assert estimate_audience(VIP_OR_BIG_SPENDER, customers) == 2


class TestEstimateAudienceAsync:
    """Tests for the async and partitioned estimators."""

    @pytest.mark.asyncio
    async def test_async_source(self):
        customers = [
            {"tags": ["vip"], "totalSpend": 0},
            {"tags": [], "totalSpend": 100},
            {"tags": [], "totalSpend": 75000},
        ]
        count = await RuleEvaluator().estimate_audience_async(VIP_OR_BIG_SPENDER, async_source(customers))
        assert count == 2

    @pytest.mark.asyncio
    async def test_async_empty_source(self):
        assert await RuleEvaluator().estimate_audience_async(VIP_OR_BIG_SPENDER, async_source([])) == 0

    @pytest.mark.asyncio
    async def test_partitioned_sum_matches_single_pass(self):
        evaluator = RuleEvaluator()
        rule = {"field": "totalSpend", "operator": ">", "value": 5000}
        customers = [CustomerFactory() for _ in range(30)]
        partitions = [customers[0:10], customers[10:20], customers[20:30]]

        partitioned = await evaluator.estimate_audience_partitioned(rule, partitions)
        assert partitioned == evaluator.estimate_audience(rule, customers)

    @pytest.mark.asyncio
    async def test_partitioned_error_propagates(self):
        partitions = [[{"tags": ["vip"]}], [{"totalSpend": 1}]]

        with pytest.raises(UnknownFieldError):
            await RuleEvaluator().estimate_audience_partitioned(VIP_OR_BIG_SPENDER, partitions)
