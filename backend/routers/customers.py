from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from network.tracer import trace_customer
from schemas import (
    CustomerBulkStatusUpdate,
    CustomerCreate,
    CustomerResponse,
    CustomerStatusUpdate,
    CustomerTraceResponse,
    CustomerUpdate,
    paginated_response,
    success_response,
)
from services import topology_store as store

router = APIRouter(prefix="/api/customers", tags=["customers"])


@router.get("")
async def list_customers(
    node_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Case-insensitive match on name or ONT serial"),
    limit: Optional[int] = Query(None, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    page = await store.list_customers(
        db, node_id=node_id, status=status, search=search, limit=limit, offset=offset
    )
    return paginated_response(
        [CustomerResponse.model_validate(c) for c in page.items],
        page.total,
        page.limit,
        page.offset,
    )


@router.get("/los")
async def los_customers(db: AsyncSession = Depends(get_db)):
    """Customers currently in loss-of-signal state."""
    customers = await store.list_los_customers(db)
    return success_response([CustomerResponse.model_validate(c) for c in customers])


@router.patch("/status/bulk")
async def bulk_update_status(payload: CustomerBulkStatusUpdate, db: AsyncSession = Depends(get_db)):
    """Apply status updates keyed by ONT serial number."""
    updated = await store.bulk_update_customer_status(db, payload.updates)
    return success_response({"updated": updated}, f"{updated} customer(s) updated")


@router.get("/{customer_id}")
async def get_customer(customer_id: int, db: AsyncSession = Depends(get_db)):
    customer = await store.get_customer(db, customer_id)
    return success_response(CustomerResponse.model_validate(customer))


@router.get("/{customer_id}/trace")
async def trace(customer_id: int, db: AsyncSession = Depends(get_db)):
    """
    Physical path from the customer back to its head-end, with loss budget.

    An incomplete path is still a 200; check `trace_valid` and `reason`.
    """
    result = await trace_customer(db, customer_id)
    return success_response(CustomerTraceResponse.model_validate(result, from_attributes=True))


@router.post("", status_code=201)
async def create_customer(customer: CustomerCreate, db: AsyncSession = Depends(get_db)):
    db_customer = await store.create_customer(db, customer)
    return success_response(
        CustomerResponse.model_validate(db_customer), "Customer created successfully"
    )


@router.put("/{customer_id}")
async def update_customer(
    customer_id: int,
    customer_update: CustomerUpdate,
    db: AsyncSession = Depends(get_db),
):
    db_customer = await store.update_customer(db, customer_id, customer_update)
    return success_response(
        CustomerResponse.model_validate(db_customer), "Customer updated successfully"
    )


@router.patch("/{customer_id}/status")
async def update_status(
    customer_id: int,
    payload: CustomerStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Record live status and, when reported, receive power (dBm)."""
    customer = await store.update_customer_status(db, customer_id, payload.status, payload.rx_power)
    return success_response(CustomerResponse.model_validate(customer), "Status updated successfully")


@router.delete("/{customer_id}")
async def delete_customer(customer_id: int, db: AsyncSession = Depends(get_db)):
    await store.delete_customer(db, customer_id)
    return success_response(message="Customer deleted successfully")
