"""
Segment rule tree model.

A rule tree is a nested boolean expression stored on Segment.rules as JSON:

    {
        "condition": "AND",
        "rules": [
            {"field": "totalSpend", "operator": ">", "value": 10000},
            {
                "condition": "OR",
                "rules": [
                    {"field": "visits", "operator": "<", "value": 3},
                    {"field": "tags", "operator": "contains", "value": "vip"}
                ]
            }
        ]
    }

The JSON is validated once by parse_rule() into frozen dataclasses, so the
evaluator never has to shape-check raw dictionaries.
"""

from __future__ import annotations

from dataclasses import dataclass, field as dataclass_field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Set, Tuple, Union

from app.services.segments.errors import MalformedRuleError, UnsupportedOperatorError


class Condition(str, Enum):
    """Boolean combinator of a composite rule."""

    AND = "AND"
    OR = "OR"


class Operator(str, Enum):
    """Comparison applied by a leaf rule."""

    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="
    EQ = "="
    NEQ = "!="
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"


ORDERING_OPERATORS = frozenset({Operator.GT, Operator.LT, Operator.GTE, Operator.LTE})
EQUALITY_OPERATORS = frozenset({Operator.EQ, Operator.NEQ})
MEMBERSHIP_OPERATORS = frozenset({Operator.CONTAINS, Operator.NOT_CONTAINS})

# Operator whose result is always the logical negation of the key's result
COMPLEMENTS: Dict[Operator, Operator] = {
    Operator.GT: Operator.LTE,
    Operator.LTE: Operator.GT,
    Operator.LT: Operator.GTE,
    Operator.GTE: Operator.LT,
    Operator.EQ: Operator.NEQ,
    Operator.NEQ: Operator.EQ,
    Operator.CONTAINS: Operator.NOT_CONTAINS,
    Operator.NOT_CONTAINS: Operator.CONTAINS,
}


def coerce_operator(value: Any, path: Optional[str] = None) -> Operator:
    """Map a raw operator token onto Operator or raise UnsupportedOperatorError."""
    if isinstance(value, Operator):
        return value
    try:
        return Operator(value)
    except (ValueError, TypeError):
        raise UnsupportedOperatorError(value, path) from None


@dataclass(frozen=True)
class LeafRule:
    """Predicate on a single customer attribute."""

    field: str
    operator: Operator
    value: Any = None

    def __post_init__(self):
        if not isinstance(self.field, str) or not self.field:
            raise MalformedRuleError("Leaf rule 'field' must be a non-empty string")
        object.__setattr__(self, "operator", coerce_operator(self.operator))

    def negate(self) -> "LeafRule":
        """Return the leaf using the complementary operator."""
        return LeafRule(self.field, COMPLEMENTS[self.operator], self.value)


@dataclass(frozen=True)
class CompositeRule:
    """AND/OR combinator over an ordered sequence of child rules."""

    condition: Condition
    rules: Tuple["Rule", ...] = dataclass_field(default_factory=tuple)

    def __post_init__(self):
        try:
            condition = Condition(self.condition)
        except ValueError:
            raise MalformedRuleError(f"Unknown condition '{self.condition}'") from None
        object.__setattr__(self, "condition", condition)
        object.__setattr__(self, "rules", tuple(self.rules))
        for child in self.rules:
            if not isinstance(child, (LeafRule, CompositeRule)):
                raise MalformedRuleError(f"Unexpected child rule of type {type(child).__name__}")


Rule = Union[CompositeRule, LeafRule]

LEAF_KEYS = ("field", "operator", "value")

# Deepest composite nesting accepted from JSON
MAX_RULE_DEPTH = 32


def parse_rule(data: Any, path: str = "rules") -> Rule:
    """
    Validate a JSON rule tree and build its typed representation.

    Args:
        data: Decoded JSON (dicts and lists) describing the rule tree
        path: Location reported in error messages

    Returns:
        CompositeRule or LeafRule

    Raises:
        MalformedRuleError: A node has neither the composite nor the leaf shape,
            the tree references itself, or it nests deeper than MAX_RULE_DEPTH
        UnsupportedOperatorError: A leaf carries an unrecognised operator
    """
    return _parse(data, path, set())


def _parse(data: Any, path: str, ancestors: Set[int], depth: int = 0) -> Rule:
    if isinstance(data, (LeafRule, CompositeRule)):
        return data
    if not isinstance(data, Mapping):
        raise MalformedRuleError(f"Rule must be an object, got {type(data).__name__}", path)
    if id(data) in ancestors:
        raise MalformedRuleError("Rule tree contains a cycle", path)

    if "condition" in data:
        condition = data["condition"]
        if not isinstance(condition, str) or condition.upper() not in Condition.__members__:
            raise MalformedRuleError(f"'condition' must be AND or OR, got {condition!r}", path)
        children = data.get("rules")
        if not isinstance(children, (list, tuple)):
            raise MalformedRuleError("Composite rule requires a 'rules' list", path)

        if depth >= MAX_RULE_DEPTH:
            raise MalformedRuleError(f"Rule tree is nested deeper than {MAX_RULE_DEPTH} levels", path)

        ancestors.add(id(data))
        try:
            parsed = tuple(
                _parse(child, f"{path}.rules[{index}]", ancestors, depth + 1)
                for index, child in enumerate(children)
            )
        finally:
            ancestors.discard(id(data))
        return CompositeRule(Condition(condition.upper()), parsed)

    missing = [key for key in LEAF_KEYS if key not in data]
    if missing:
        raise MalformedRuleError(
            f"Leaf rule is missing {', '.join(repr(key) for key in missing)}", path
        )
    if not isinstance(data["field"], str) or not data["field"]:
        raise MalformedRuleError("Leaf rule 'field' must be a non-empty string", path)

    operator = coerce_operator(data["operator"], path)
    return LeafRule(data["field"], operator, data["value"])


def rule_to_dict(rule: Rule) -> Dict[str, Any]:
    """Serialize a rule tree back to its JSON form."""
    if isinstance(rule, CompositeRule):
        return {
            "condition": rule.condition.value,
            "rules": [rule_to_dict(child) for child in rule.rules],
        }
    return {"field": rule.field, "operator": rule.operator.value, "value": rule.value}


def referenced_fields(rule: Rule) -> Set[str]:
    """Collect every field name used by the leaves of a rule tree."""
    if isinstance(rule, LeafRule):
        return {rule.field}
    fields: Set[str] = set()
    for child in rule.rules:
        fields |= referenced_fields(child)
    return fields
