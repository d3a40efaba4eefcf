"""
Sales and profit aggregations for the admin dashboard.

Pure functions over completed payments; callers fetch the rows.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from studenthub.services.models import Payment, Product

TOP_PRODUCTS_LIMIT = 10


def year_bounds(year: int) -> tuple[datetime, datetime]:
    """First and last instant of a calendar year in UTC."""
    return (
        datetime(year, 1, 1, tzinfo=timezone.utc),
        datetime(year + 1, 1, 1, tzinfo=timezone.utc) - timedelta(microseconds=1),
    )


def product_sales(
    payments: Iterable[Payment],
    products: dict[str, Product],
    category: Optional[str] = None,
) -> dict[str, Any]:
    """
    Totals, per-category split and best sellers.

    Payments whose product no longer exists are skipped.
    """
    total_sales = 0
    total_revenue = 0.0
    category_sales: dict[str, dict[str, Any]] = {}
    per_product: dict[str, dict[str, Any]] = {}

    for payment in payments:
        product = products.get(payment.product_id)
        if product is None:
            continue
        if category and product.category != category:
            continue

        total_sales += 1
        total_revenue += payment.amount

        bucket = category_sales.setdefault(product.category, {"count": 0, "revenue": 0.0})
        bucket["count"] += 1
        bucket["revenue"] += payment.amount

        entry = per_product.setdefault(
            product.id, {"id": product.id, "title": product.title, "count": 0, "revenue": 0.0}
        )
        entry["count"] += 1
        entry["revenue"] += payment.amount

    top_products = sorted(per_product.values(), key=lambda p: p["count"], reverse=True)
    return {
        "total_sales": total_sales,
        "total_revenue": total_revenue,
        "category_sales": category_sales,
        "top_products": top_products[:TOP_PRODUCTS_LIMIT],
    }


def monthly_sales(payments: Iterable[Payment]) -> list[dict[str, Any]]:
    """Twelve {month, count, revenue} entries, zero-filled."""
    months = [{"month": m, "count": 0, "revenue": 0.0} for m in range(1, 13)]
    for payment in payments:
        if payment.created_at is None:
            continue
        entry = months[payment.created_at.month - 1]
        entry["count"] += 1
        entry["revenue"] += payment.amount
    return months


def admin_profits(payments: Iterable[Payment]) -> dict[str, Any]:
    payments = list(payments)
    total_profit = sum(p.admin_commission for p in payments)
    total_revenue = sum(p.amount for p in payments)
    average_rate = (
        sum(p.admin_commission_rate for p in payments) / len(payments) if payments else 0
    )

    by_month: dict[str, dict[str, Any]] = {}
    by_method: dict[str, dict[str, Any]] = {}
    for p in payments:
        if p.created_at is not None:
            key = p.created_at.strftime("%Y-%m")
            month = by_month.setdefault(
                key, {"month": key, "profit": 0.0, "transactions": 0, "revenue": 0.0}
            )
            month["profit"] += p.admin_commission
            month["transactions"] += 1
            month["revenue"] += p.amount

        method = by_method.setdefault(
            p.payment_method, {"profit": 0.0, "transactions": 0, "revenue": 0.0}
        )
        method["profit"] += p.admin_commission
        method["transactions"] += 1
        method["revenue"] += p.amount

    return {
        "total_profit": total_profit,
        "total_transactions": len(payments),
        "total_revenue": total_revenue,
        "average_commission_rate": average_rate,
        "monthly_profits": [by_month[k] for k in sorted(by_month)],
        "profits_by_payment_method": by_method,
    }


def monthly_profits(payments: Iterable[Payment]) -> list[dict[str, Any]]:
    """Twelve {month, profit, transactions, revenue} entries, zero-filled."""
    months = [
        {"month": m, "profit": 0.0, "transactions": 0, "revenue": 0.0} for m in range(1, 13)
    ]
    for payment in payments:
        if payment.created_at is None:
            continue
        entry = months[payment.created_at.month - 1]
        entry["profit"] += payment.admin_commission
        entry["transactions"] += 1
        entry["revenue"] += payment.amount
    return months
