"""
Segment Rule Evaluator

Decides whether a customer belongs to a rule-defined audience and counts
how many customers of a (possibly streamed) customer source match.

Evaluation semantics:
- Composite rules evaluate children in order; AND stops at the first false
  child, OR at the first true child. AND over no children is true, OR over
  no children is false.
- Leaf rules read one customer attribute through the field registry and
  apply the operator. Ordering operators need mutually ordered operands
  (numbers, dates, or two strings); contains/not_contains need a string or
  list valued attribute.
- Every failure is raised as a RuleEvaluationError subclass. Nothing is
  coerced to a non-match.

The evaluator holds no mutable state, so a single instance can be shared by
any number of threads or tasks.
"""

from __future__ import annotations

import asyncio
import logging
import operator as op
from decimal import Decimal
from datetime import datetime
from typing import Any, AsyncIterable, Callable, Dict, Iterable, Mapping, Optional, Sequence

from app.services.segments.errors import TypeMismatchError, UnsupportedOperatorError
from app.services.segments.fields import FIELD_REGISTRY, FieldDefinition, resolve_field
from app.services.segments.rules import (
    CompositeRule,
    Condition,
    LeafRule,
    Operator,
    Rule,
    parse_rule,
)

logger = logging.getLogger(__name__)

_NUMBER_TYPES = (int, float, Decimal)
_COLLECTION_TYPES = (list, tuple, set, frozenset)


def _is_number(value: Any) -> bool:
    return isinstance(value, _NUMBER_TYPES) and not isinstance(value, bool)


def _ordered(name: str, compare: Callable[[Any, Any], bool]) -> Callable[[str, Any, Any], bool]:
    def apply(field: str, customer_value: Any, rule_value: Any) -> bool:
        comparable = (
            (_is_number(customer_value) and _is_number(rule_value))
            or (isinstance(customer_value, datetime) and isinstance(rule_value, datetime))
            or (isinstance(customer_value, str) and isinstance(rule_value, str))
        )
        if not comparable:
            raise TypeMismatchError(
                f"Operator '{name}' cannot compare {type(customer_value).__name__} "
                f"field '{field}' with {type(rule_value).__name__}"
            )
        return compare(customer_value, rule_value)

    return apply


def _contains(field: str, customer_value: Any, rule_value: Any) -> bool:
    if isinstance(customer_value, str):
        if not isinstance(rule_value, str):
            raise TypeMismatchError(
                f"Substring test on '{field}' needs a string value, got {type(rule_value).__name__}"
            )
        return rule_value in customer_value
    if isinstance(customer_value, _COLLECTION_TYPES):
        return rule_value in customer_value
    raise TypeMismatchError(
        f"Field '{field}' of type {type(customer_value).__name__} does not support contains"
    )


def _equals(field: str, customer_value: Any, rule_value: Any) -> bool:
    return customer_value == rule_value


# Exhaustive operator dispatch; a missing entry is an UnsupportedOperatorError
OPERATOR_HANDLERS: Dict[Operator, Callable[[str, Any, Any], bool]] = {
    Operator.GT: _ordered(">", op.gt),
    Operator.LT: _ordered("<", op.lt),
    Operator.GTE: _ordered(">=", op.ge),
    Operator.LTE: _ordered("<=", op.le),
    Operator.EQ: _equals,
    Operator.NEQ: lambda field, left, right: not _equals(field, left, right),
    Operator.CONTAINS: _contains,
    Operator.NOT_CONTAINS: lambda field, left, right: not _contains(field, left, right),
}


def coerce_rule(rule: Any) -> Rule:
    """Accept either a parsed rule tree or its JSON form."""
    if isinstance(rule, (CompositeRule, LeafRule)):
        return rule
    return parse_rule(rule)


class RuleEvaluator:
    """
    Evaluates segment rule trees against customers.

    Args:
        fields: Field registry used to resolve leaf field names. Defaults to
            the customer field registry.
    """

    def __init__(self, fields: Optional[Mapping[str, FieldDefinition]] = None):
        self.fields = FIELD_REGISTRY if fields is None else fields

    def matches(self, rule: Any, customer: Any) -> bool:
        """
        Check whether a customer satisfies a rule tree.

        Args:
            rule: Parsed Rule or its JSON dict form
            customer: CustomerRecord, ORM Customer or attribute mapping

        Returns:
            True if the customer matches

        Raises:
            MalformedRuleError, UnknownFieldError, TypeMismatchError,
            UnsupportedOperatorError
        """
        return self._evaluate(coerce_rule(rule), customer)

    def estimate_audience(self, rule: Any, customers: Iterable[Any]) -> int:
        """
        Count matching customers in a single pass over the source.

        The source is consumed lazily and never indexed, so generators and
        paginated readers work. The first evaluation error aborts the count.
        """
        parsed = coerce_rule(rule)
        count = 0
        for customer in customers:
            if self._evaluate(parsed, customer):
                count += 1
        return count

    async def estimate_audience_async(self, rule: Any, customers: AsyncIterable[Any]) -> int:
        """Async counterpart of estimate_audience for streamed database readers."""
        parsed = coerce_rule(rule)
        count = 0
        async for customer in customers:
            if self._evaluate(parsed, customer):
                count += 1
        return count

    async def estimate_audience_partitioned(
        self, rule: Any, partitions: Sequence[Iterable[Any]]
    ) -> int:
        """
        Count matches over disjoint customer partitions in worker threads.

        Each partition is counted independently and the partial counts are
        summed. An error in any partition propagates.
        """
        parsed = coerce_rule(rule)
        loop = asyncio.get_running_loop()
        counts = await asyncio.gather(
            *(
                loop.run_in_executor(None, self.estimate_audience, parsed, partition)
                for partition in partitions
            )
        )
        return sum(counts)

    def _evaluate(self, rule: Rule, customer: Any) -> bool:
        if isinstance(rule, CompositeRule):
            results = (self._evaluate(child, customer) for child in rule.rules)
            if rule.condition is Condition.AND:
                return all(results)
            return any(results)
        return self._evaluate_leaf(rule, customer)

    def _evaluate_leaf(self, rule: LeafRule, customer: Any) -> bool:
        definition = resolve_field(rule.field, self.fields)
        handler = OPERATOR_HANDLERS.get(rule.operator)
        if handler is None:
            raise UnsupportedOperatorError(rule.operator)

        customer_value = definition.read(customer)
        rule_value = rule.value
        # Membership tests compare an element, not a whole field value
        if rule.operator not in (Operator.CONTAINS, Operator.NOT_CONTAINS):
            rule_value = definition.normalize(rule_value)
        return handler(rule.field, customer_value, rule_value)


default_evaluator = RuleEvaluator()


def matches(rule: Any, customer: Any) -> bool:
    """Module-level shortcut for RuleEvaluator().matches."""
    return default_evaluator.matches(rule, customer)


def estimate_audience(rule: Any, customers: Iterable[Any]) -> int:
    """Module-level shortcut for RuleEvaluator().estimate_audience."""
    return default_evaluator.estimate_audience(rule, customers)
