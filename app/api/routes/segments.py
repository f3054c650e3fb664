"""
Segment endpoints.

The estimated audience stored on a segment is computed on create, when the
rules change, and on an explicit recompute. Listing and reading segments
never re-evaluates rules.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, status, Query
from sqlalchemy import select, func

from app.api.deps import DbSession, CurrentUser
from app.exceptions import ConflictError, NotFoundError
from app.models.campaign import Campaign
from app.models.customer import Customer
from app.models.segment import Segment
from app.schemas.segment import (
    SegmentCreate,
    SegmentUpdate,
    SegmentResponse,
    SegmentListResponse,
    SegmentPreviewRequest,
    SegmentPreviewResponse,
    SegmentMatchResponse,
)
from app.services.segments.audience import AudienceService

router = APIRouter()


async def _get_segment(db, segment_id: int) -> Segment:
    segment = await db.get(Segment, segment_id)
    if not segment:
        raise NotFoundError("Segment", segment_id)
    return segment


@router.get("", response_model=SegmentListResponse)
async def list_segments(
    db: DbSession,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    """List segments, newest first."""
    total_result = await db.execute(select(func.count(Segment.id)))
    total = total_result.scalar() or 0

    offset = (page - 1) * page_size
    result = await db.execute(
        select(Segment).order_by(Segment.created_at.desc(), Segment.id.desc()).offset(offset).limit(page_size)
    )

    return SegmentListResponse(
        items=result.scalars().all(),
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("", response_model=SegmentResponse, status_code=status.HTTP_201_CREATED)
async def create_segment(
    segment_data: SegmentCreate,
    db: DbSession,
    current_user: CurrentUser,
):
    """Create a segment and compute its audience."""
    # Rules that fail to evaluate leave no segment behind
    audience = await AudienceService(db).count(segment_data.rules)

    segment = Segment(
        **segment_data.model_dump(),
        estimated_audience=audience,
        last_updated=datetime.now(timezone.utc),
        created_by_user_id=current_user.id,
    )
    db.add(segment)
    await db.commit()
    await db.refresh(segment)
    return segment


@router.post("/preview", response_model=SegmentPreviewResponse)
async def preview_segment(
    preview: SegmentPreviewRequest,
    db: DbSession,
    current_user: CurrentUser,
):
    """Size an unsaved rule tree without storing it."""
    count, sample = await AudienceService(db).preview(preview.rules, preview.sample_size)
    return SegmentPreviewResponse(estimated_audience=count, sample_customer_ids=sample)


@router.get("/{segment_id}", response_model=SegmentResponse)
async def get_segment(
    segment_id: int,
    db: DbSession,
    current_user: CurrentUser,
):
    """Get a single segment by ID."""
    return await _get_segment(db, segment_id)


@router.put("/{segment_id}", response_model=SegmentResponse)
async def update_segment(
    segment_id: int,
    segment_data: SegmentUpdate,
    db: DbSession,
    current_user: CurrentUser,
):
    """Update a segment. Changing the rules recomputes the audience."""
    segment = await _get_segment(db, segment_id)

    update_data = segment_data.model_dump(exclude_unset=True)
    if update_data.get("rules") is None:
        update_data.pop("rules", None)
    if "rules" in update_data and update_data["rules"] != segment.rules:
        # Count first; a failing rule tree must not replace the stored one
        update_data["estimated_audience"] = await AudienceService(db).count(update_data["rules"])
        update_data["last_updated"] = datetime.now(timezone.utc)

    for field, value in update_data.items():
        setattr(segment, field, value)

    await db.commit()
    await db.refresh(segment)
    return segment


@router.delete("/{segment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_segment(
    segment_id: int,
    db: DbSession,
    current_user: CurrentUser,
):
    """Delete a segment that no campaign targets."""
    segment = await _get_segment(db, segment_id)

    in_use = await db.execute(select(func.count(Campaign.id)).where(Campaign.segment_id == segment_id))
    if in_use.scalar():
        raise ConflictError(f"Segment {segment_id} is used by existing campaigns")

    await db.delete(segment)
    await db.commit()


@router.post("/{segment_id}/recompute", response_model=SegmentResponse)
async def recompute_segment(
    segment_id: int,
    db: DbSession,
    current_user: CurrentUser,
):
    """Refresh the segment's cached audience size."""
    segment = await _get_segment(db, segment_id)
    await AudienceService(db).recompute(segment)
    return segment


@router.post("/{segment_id}/evaluate/{customer_id}", response_model=SegmentMatchResponse)
async def evaluate_customer(
    segment_id: int,
    customer_id: int,
    db: DbSession,
    current_user: CurrentUser,
):
    """Check whether one customer belongs to the segment."""
    segment = await _get_segment(db, segment_id)
    customer = await db.get(Customer, customer_id)
    if not customer:
        raise NotFoundError("Customer", customer_id)

    return SegmentMatchResponse(
        segment_id=segment.id,
        customer_id=customer.id,
        matches=AudienceService(db).customer_matches(segment, customer),
    )
