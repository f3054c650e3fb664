"""
Customer field registry for segment rules.

Leaf rules name customer attributes by their JSON (camelCase) names, as
produced by the segment builder UI. Each recognised name maps to a typed
accessor; anything else is rejected with UnknownFieldError instead of being
looked up reflectively.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from app.services.segments.errors import TypeMismatchError, UnknownFieldError


class FieldType(str, enum.Enum):
    NUMBER = "number"
    STRING = "string"
    DATE = "date"
    LIST = "list"


_MISSING = object()


@dataclass(frozen=True)
class CustomerRecord:
    """
    Read-only snapshot of the customer attributes the rule engine can see.

    Built from an ORM Customer row or from a plain mapping, so evaluation
    never touches a live database object.
    """

    id: Optional[int] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    total_spend: float = 0
    visits: int = 0
    last_visit: Optional[datetime] = None
    tags: Tuple[str, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, customer: Any) -> "CustomerRecord":
        return cls(
            id=customer.id,
            name=customer.name,
            email=customer.email,
            phone=customer.phone,
            total_spend=customer.total_spend if customer.total_spend is not None else 0,
            visits=customer.visits if customer.visits is not None else 0,
            last_visit=customer.last_visit,
            tags=tuple(customer.tags or ()),
            created_at=customer.created_at,
            updated_at=customer.updated_at,
        )


@dataclass(frozen=True)
class FieldDefinition:
    """A customer attribute that can appear in a leaf rule."""

    name: str
    attribute: str
    field_type: FieldType
    description: str = ""

    def read(self, customer: Any) -> Any:
        """
        Read the attribute from a customer.

        Mappings are looked up by the JSON name first, then the Python
        attribute name. Objects are read by attribute. An absent key or
        attribute raises UnknownFieldError; an explicit None is returned as is.
        """
        if isinstance(customer, Mapping):
            value = customer.get(self.name, _MISSING)
            if value is _MISSING:
                value = customer.get(self.attribute, _MISSING)
        else:
            value = getattr(customer, self.attribute, _MISSING)

        if value is _MISSING:
            raise UnknownFieldError(self.name)
        return self.normalize(value)

    def normalize(self, value: Any) -> Any:
        """Coerce a raw value (customer side or rule side) to this field's type."""
        if value is None:
            return None
        converter = _NORMALIZERS[self.field_type]
        return converter(self.name, value)


def _to_number(name: str, value: Any) -> Any:
    if isinstance(value, bool):
        raise TypeMismatchError(f"Field '{name}' expects a number, got a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        result = value
        finite = math.isfinite(value)
    elif isinstance(value, (Decimal, str)):
        try:
            result = Decimal(value)
        except ArithmeticError:
            raise TypeMismatchError(f"Field '{name}' expects a number, got {value!r}") from None
        finite = result.is_finite()
    else:
        raise TypeMismatchError(f"Field '{name}' expects a number, got {type(value).__name__}")
    # NaN and infinities have no ordering
    if not finite:
        raise TypeMismatchError(f"Field '{name}' expects a finite number, got {value!r}")
    return result


def _to_datetime(name: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise TypeMismatchError(f"Field '{name}' expects an ISO date, got {value!r}") from None
    else:
        raise TypeMismatchError(f"Field '{name}' expects a date, got {type(value).__name__}")
    # Naive timestamps are stored as UTC
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def _to_string(name: str, value: Any) -> Any:
    # Rule values for string fields are kept verbatim; the operators decide
    # whether a non-string operand is acceptable.
    return value


def _to_list(name: str, value: Any) -> Any:
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(value)
    return value


_NORMALIZERS: Dict[FieldType, Callable[[str, Any], Any]] = {
    FieldType.NUMBER: _to_number,
    FieldType.STRING: _to_string,
    FieldType.DATE: _to_datetime,
    FieldType.LIST: _to_list,
}


def _definitions(*definitions: FieldDefinition) -> Dict[str, FieldDefinition]:
    registry: Dict[str, FieldDefinition] = {}
    for definition in definitions:
        registry[definition.name] = definition
        registry.setdefault(definition.attribute, definition)
    return registry


# Recognised rule fields, keyed by JSON name and by Python attribute name
FIELD_REGISTRY: Dict[str, FieldDefinition] = _definitions(
    FieldDefinition("id", "id", FieldType.NUMBER, "Customer identifier"),
    FieldDefinition("name", "name", FieldType.STRING, "Customer name"),
    FieldDefinition("email", "email", FieldType.STRING, "Customer email address"),
    FieldDefinition("phone", "phone", FieldType.STRING, "Customer phone number"),
    FieldDefinition("totalSpend", "total_spend", FieldType.NUMBER, "Lifetime order amount"),
    FieldDefinition("visits", "visits", FieldType.NUMBER, "Number of orders placed"),
    FieldDefinition("lastVisit", "last_visit", FieldType.DATE, "Date of the latest order"),
    FieldDefinition("tags", "tags", FieldType.LIST, "Free-form customer tags"),
    FieldDefinition("createdAt", "created_at", FieldType.DATE, "When the customer was created"),
    FieldDefinition("updatedAt", "updated_at", FieldType.DATE, "When the customer was last updated"),
)


def resolve_field(name: Any, registry: Optional[Mapping[str, FieldDefinition]] = None) -> FieldDefinition:
    """Look up a field definition, raising UnknownFieldError for unrecognised names."""
    registry = FIELD_REGISTRY if registry is None else registry
    definition = registry.get(name) if isinstance(name, str) else None
    if definition is None:
        raise UnknownFieldError(name)
    return definition
