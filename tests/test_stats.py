"""Tests for admin sales/profit aggregations"""
from datetime import datetime, timezone

import pytest

from studenthub.services.models import Payment, Product
from studenthub.services.stats import (
    admin_profits,
    monthly_profits,
    monthly_sales,
    product_sales,
    year_bounds,
)


def _product(pid, category="books", title=None):
    return Product(
        id=pid, title=title or f"Item {pid}", description="d", price=100,
        category=category, condition="good", seller="s1",
    )


def _payment(pid, amount, month=1, method="momo", rate=0.1):
    return Payment(
        id=f"pay-{pid}-{month}-{amount}",
        order_id=f"o-{pid}-{month}-{amount}",
        amount=amount,
        product_id=pid,
        buyer_id="b1",
        seller_id="s1",
        payment_method=method,
        payment_status="completed",
        admin_commission_rate=rate,
        admin_commission=amount * rate,
        seller_amount=amount - amount * rate,
        created_at=datetime(2025, month, 15, tzinfo=timezone.utc),
    )


def test_year_bounds():
    start, end = year_bounds(2025)
    assert start == datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert end.year == 2025 and end.month == 12 and end.day == 31
    assert end.hour == 23 and end.minute == 59 and end.second == 59


def test_monthly_sales_always_twelve_months():
    months = monthly_sales([])
    assert [m["month"] for m in months] == list(range(1, 13))
    assert all(m["count"] == 0 and m["revenue"] == 0 for m in months)


def test_monthly_sales_buckets():
    months = monthly_sales([_payment("p1", 100, 3), _payment("p2", 50, 3), _payment("p3", 10, 12)])
    assert months[2] == {"month": 3, "count": 2, "revenue": 150}
    assert months[11]["count"] == 1
    assert months[0]["count"] == 0


def test_monthly_profits_always_twelve_months():
    months = monthly_profits([_payment("p1", 1000, 7)])
    assert len(months) == 12
    assert months[6]["profit"] == pytest.approx(100)
    assert months[6]["transactions"] == 1
    assert months[5]["transactions"] == 0


def test_product_sales():
    products = {
        "p1": _product("p1", "books"),
        "p2": _product("p2", "electronics"),
    }
    payments = [
        _payment("p1", 100), _payment("p1", 100, 2), _payment("p2", 500),
        _payment("gone", 999),
    ]

    stats = product_sales(payments, products)

    assert stats["total_sales"] == 3
    assert stats["total_revenue"] == pytest.approx(700)
    assert stats["category_sales"]["books"] == {"count": 2, "revenue": 200}
    assert stats["top_products"][0]["id"] == "p1"
    assert stats["top_products"][0]["count"] == 2


def test_product_sales_category_filter():
    products = {"p1": _product("p1", "books"), "p2": _product("p2", "electronics")}
    stats = product_sales([_payment("p1", 100), _payment("p2", 500)], products, "electronics")
    assert stats["total_sales"] == 1
    assert list(stats["category_sales"]) == ["electronics"]


def test_top_products_capped_at_ten():
    products = {f"p{i}": _product(f"p{i}") for i in range(15)}
    stats = product_sales([_payment(f"p{i}", 10) for i in range(15)], products)
    assert len(stats["top_products"]) == 10


def test_admin_profits():
    payments = [
        _payment("p1", 1000, 1, "momo", 0.1),
        _payment("p2", 2000, 1, "vnpay", 0.2),
        _payment("p3", 500, 4, "momo", 0.1),
    ]

    profits = admin_profits(payments)

    assert profits["total_profit"] == pytest.approx(100 + 400 + 50)
    assert profits["total_transactions"] == 3
    assert profits["total_revenue"] == pytest.approx(3500)
    assert profits["average_commission_rate"] == pytest.approx(0.4 / 3)
    assert [m["month"] for m in profits["monthly_profits"]] == ["2025-01", "2025-04"]
    assert profits["profits_by_payment_method"]["vnpay"]["profit"] == pytest.approx(400)
    assert profits["profits_by_payment_method"]["momo"]["transactions"] == 2


def test_admin_profits_empty():
    profits = admin_profits([])
    assert profits["total_profit"] == 0
    assert profits["average_commission_rate"] == 0
    assert profits["monthly_profits"] == []
