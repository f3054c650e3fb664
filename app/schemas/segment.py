"""
Segment Schemas

Rule trees travel as plain JSON. They are validated with the rule engine's
parser on the way in, so a stored segment always holds a well-formed tree
over recognised customer fields.
"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, Any

from app.services.segments import RuleEvaluationError, parse_rule, rule_to_dict
from app.services.segments.fields import resolve_field
from app.services.segments.rules import referenced_fields


def validate_rule_tree(value: Any) -> dict:
    """Parse a rule tree, check its field names and return its normalized JSON."""
    try:
        rule = parse_rule(value)
        for name in referenced_fields(rule):
            resolve_field(name)
    except RuleEvaluationError as exc:
        raise ValueError(str(exc)) from exc
    return rule_to_dict(rule)


class SegmentBase(BaseModel):
    """Base segment schema."""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    rules: dict[str, Any] = Field(
        ...,
        description="Rule tree of AND/OR conditions over customer fields",
        examples=[
            {
                "condition": "AND",
                "rules": [
                    {"field": "totalSpend", "operator": ">", "value": 10000},
                    {"field": "visits", "operator": "<", "value": 3},
                ],
            }
        ],
    )

    @field_validator("rules", mode="before")
    @classmethod
    def check_rules(cls, v: Any) -> dict:
        return validate_rule_tree(v)


class SegmentCreate(SegmentBase):
    """Schema for creating a segment."""
    pass


class SegmentUpdate(BaseModel):
    """Schema for updating a segment."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    rules: Optional[dict[str, Any]] = None

    @field_validator("rules", mode="before")
    @classmethod
    def check_rules(cls, v: Any) -> Optional[dict]:
        if v is None:
            return None
        return validate_rule_tree(v)


class SegmentResponse(BaseModel):
    """Segment response schema."""
    id: int
    name: str
    description: Optional[str] = None
    rules: dict[str, Any]
    estimated_audience: int = 0
    last_updated: Optional[datetime] = None
    created_by_user_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SegmentListResponse(BaseModel):
    """Paginated segment list response."""
    items: list[SegmentResponse]
    total: int
    page: int
    page_size: int


class SegmentPreviewRequest(BaseModel):
    """Request to size an unsaved rule tree."""
    rules: dict[str, Any]
    sample_size: int = Field(10, ge=0, le=100)

    @field_validator("rules", mode="before")
    @classmethod
    def check_rules(cls, v: Any) -> dict:
        return validate_rule_tree(v)


class SegmentPreviewResponse(BaseModel):
    estimated_audience: int
    sample_customer_ids: list[int]


class SegmentMatchResponse(BaseModel):
    segment_id: int
    customer_id: int
    matches: bool
