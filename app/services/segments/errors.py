"""
Segment rule engine errors.

Every failure raised while parsing or evaluating a rule tree derives from
RuleEvaluationError so callers (the audience service, the HTTP layer) can
catch the whole family at once. None of these are ever converted into a
``False`` match.
"""

from typing import Any, Optional


class RuleEvaluationError(Exception):
    """Base class for rule tree parsing and evaluation failures."""

    code = "SEG_000"

    def __init__(self, message: str, path: Optional[str] = None):
        self.message = message
        self.path = path
        super().__init__(f"{message} (at {path})" if path else message)


class MalformedRuleError(RuleEvaluationError):
    """A rule node is neither a valid composite nor a valid leaf."""

    code = "SEG_001"


class UnknownFieldError(RuleEvaluationError):
    """A leaf rule references an attribute the customer does not have."""

    code = "SEG_002"

    def __init__(self, field: Any, path: Optional[str] = None):
        self.field = field
        super().__init__(f"Unknown customer field '{field}'", path)


class TypeMismatchError(RuleEvaluationError):
    """An operator was applied to operands of an incompatible kind."""

    code = "SEG_003"


class UnsupportedOperatorError(RuleEvaluationError):
    """A rule carries an operator outside the recognised set."""

    code = "SEG_004"

    def __init__(self, operator: Any, path: Optional[str] = None):
        self.operator = operator
        super().__init__(f"Unsupported operator '{operator}'", path)
