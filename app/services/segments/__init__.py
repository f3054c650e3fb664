"""
Segment rule engine.

Parses segment rule trees, evaluates them against customers and estimates
audience sizes.
"""

from app.services.segments.errors import (
    MalformedRuleError,
    RuleEvaluationError,
    TypeMismatchError,
    UnknownFieldError,
    UnsupportedOperatorError,
)
from app.services.segments.evaluator import RuleEvaluator, estimate_audience, matches
from app.services.segments.fields import FIELD_REGISTRY, CustomerRecord, FieldDefinition, FieldType
from app.services.segments.rules import (
    COMPLEMENTS,
    CompositeRule,
    Condition,
    LeafRule,
    Operator,
    Rule,
    parse_rule,
    rule_to_dict,
)

__all__ = [
    "RuleEvaluator",
    "matches",
    "estimate_audience",
    "CustomerRecord",
    "FieldDefinition",
    "FieldType",
    "FIELD_REGISTRY",
    "Rule",
    "CompositeRule",
    "LeafRule",
    "Condition",
    "Operator",
    "COMPLEMENTS",
    "parse_rule",
    "rule_to_dict",
    # Errors
    "RuleEvaluationError",
    "MalformedRuleError",
    "UnknownFieldError",
    "TypeMismatchError",
    "UnsupportedOperatorError",
]
