from fastapi import APIRouter, Body, status, Query
from sqlalchemy import select, func, or_
from sqlalchemy.exc import IntegrityError
from pydantic import ValidationError as PydanticValidationError
from typing import Any, Optional
import logging
import math

from app.api.deps import DbSession, CurrentUser
from app.exceptions import BusinessRuleError, ConflictError, NotFoundError
from app.models.customer import Customer
from app.schemas.customer import (
    CustomerCreate,
    CustomerUpdate,
    CustomerResponse,
    CustomerListResponse,
    BulkCustomerResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

SORTABLE_COLUMNS = {
    "created_at": Customer.created_at,
    "total_spend": Customer.total_spend,
    "visits": Customer.visits,
    "name": Customer.name,
}


def _order_by(sort: str):
    descending = sort.startswith("-")
    column = SORTABLE_COLUMNS.get(sort.lstrip("-"))
    if column is None:
        raise BusinessRuleError(
            f"Cannot sort by '{sort}'. Allowed: {', '.join(sorted(SORTABLE_COLUMNS))}"
        )
    return column.desc() if descending else column.asc()


async def _get_customer(db, customer_id: int) -> Customer:
    result = await db.execute(select(Customer).where(Customer.id == customer_id))
    customer = result.scalar_one_or_none()
    if not customer:
        raise NotFoundError("Customer", customer_id)
    return customer


async def _ensure_email_free(db, email: str, exclude_id: Optional[int] = None) -> None:
    query = select(Customer.id).where(Customer.email == email)
    if exclude_id is not None:
        query = query.where(Customer.id != exclude_id)
    result = await db.execute(query)
    if result.scalar_one_or_none() is not None:
        raise ConflictError(f"Customer with email {email} already exists")


@router.get("", response_model=CustomerListResponse)
async def list_customers(
    db: DbSession,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    sort: str = "-created_at",
):
    """List customers with pagination, search and sorting."""
    query = select(Customer)

    if search:
        query = query.where(
            or_(
                Customer.name.ilike(f"%{search}%"),
                Customer.email.ilike(f"%{search}%"),
            )
        )

    order = _order_by(sort)

    count_query = select(func.count()).select_from(query.subquery())
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    offset = (page - 1) * limit
    query = query.order_by(order, Customer.id).offset(offset).limit(limit)

    result = await db.execute(query)
    customers = result.scalars().all()

    return CustomerListResponse(
        customers=customers,
        current_page=page,
        total_pages=math.ceil(total / limit),
        total_customers=total,
    )


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    customer_data: CustomerCreate,
    db: DbSession,
    current_user: CurrentUser,
):
    """Create a new customer."""
    await _ensure_email_free(db, customer_data.email)
    customer = Customer(**customer_data.model_dump())
    db.add(customer)
    await db.commit()
    await db.refresh(customer)
    return customer


@router.post("/bulk", response_model=BulkCustomerResponse, status_code=status.HTTP_202_ACCEPTED)
async def bulk_create_customers(
    db: DbSession,
    current_user: CurrentUser,
    payload: Any = Body(...),
):
    """
    Import a batch of customers.

    The whole batch is validated first; the first invalid item rejects it.
    Valid batches are inserted in a single transaction.
    """
    if not isinstance(payload, list):
        raise BusinessRuleError("Request body must be an array of customers")

    validated = []
    for item in payload:
        try:
            validated.append(CustomerCreate.model_validate(item))
        except PydanticValidationError:
            email = item.get("email") if isinstance(item, dict) else None
            raise BusinessRuleError(f"Invalid customer data for {email or 'unknown email'}")

    emails = [customer.email for customer in validated]
    if len(set(emails)) != len(emails):
        raise BusinessRuleError("Batch contains duplicate email addresses")
    if emails:
        existing = await db.execute(select(Customer.email).where(Customer.email.in_(emails)))
        taken = existing.scalars().first()
        if taken:
            raise ConflictError(f"Customer with email {taken} already exists")

    customers = [Customer(**customer.model_dump()) for customer in validated]
    db.add_all(customers)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Bulk import conflicts with existing customers")

    logger.info("Imported %d customers", len(customers))
    return BulkCustomerResponse(
        message=f"Imported {len(customers)} customers",
        customer_ids=[customer.id for customer in customers],
    )


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: int,
    db: DbSession,
    current_user: CurrentUser,
):
    """Get a single customer by ID."""
    return await _get_customer(db, customer_id)


@router.put("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: int,
    customer_data: CustomerUpdate,
    db: DbSession,
    current_user: CurrentUser,
):
    """Update a customer."""
    customer = await _get_customer(db, customer_id)

    # Update only provided fields
    update_data = customer_data.model_dump(exclude_unset=True)
    if update_data.get("email"):
        await _ensure_email_free(db, update_data["email"], exclude_id=customer_id)
    for field, value in update_data.items():
        setattr(customer, field, value)

    await db.commit()
    await db.refresh(customer)
    return customer


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_customer(
    customer_id: int,
    db: DbSession,
    current_user: CurrentUser,
):
    """Delete a customer."""
    customer = await _get_customer(db, customer_id)
    await db.delete(customer)
    await db.commit()
