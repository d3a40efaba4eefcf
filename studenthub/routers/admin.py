"""
Admin Statistics Router

Sales and platform profit figures over completed payments.
"""
from datetime import datetime, time, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from studenthub.auth import verify_admin
from studenthub.services.database import get_database
from studenthub.services.models import Payment
from studenthub.services.stats import (
    admin_profits,
    monthly_profits,
    monthly_sales,
    product_sales,
    year_bounds,
)

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(verify_admin)])


def _parse_date(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """ISO date or datetime query value; naive values are UTC."""
    if not value:
        return None
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date: {value}")
    if end_of_day and len(value) == 10:
        parsed = datetime.combine(parsed.date(), time.max)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


async def _completed_in_year(year: Optional[int]) -> list[Payment]:
    start, end = year_bounds(year or datetime.now(timezone.utc).year)
    return await get_database().payments.find_completed(start, end)


@router.get("/stats/products")
async def get_product_stats(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    category: Optional[str] = None,
):
    db = get_database()
    payments = await db.payments.find_completed(
        _parse_date(start_date), _parse_date(end_date, end_of_day=True)
    )
    products = await db.products.get_many([p.product_id for p in payments])
    return product_sales(payments, products, category)


@router.get("/stats/monthly")
async def get_monthly_stats(year: Optional[int] = Query(None, ge=1, le=9998)):
    """Sales for each month of `year` (default: current year)."""
    return monthly_sales(await _completed_in_year(year))


@router.get("/profits")
async def get_admin_profits(start_date: Optional[str] = None, end_date: Optional[str] = None):
    payments = await get_database().payments.find_completed(
        _parse_date(start_date), _parse_date(end_date, end_of_day=True)
    )
    return admin_profits(payments)


@router.get("/profits/monthly")
async def get_monthly_profits(year: Optional[int] = Query(None, ge=1, le=9998)):
    return monthly_profits(await _completed_in_year(year))
