"""Tests for database models"""
import pytest

from studenthub import config

from studenthub.services.models import (
    Payment,
    Product,
    ProductStatus,
    User,
    compute_commission,
)


@pytest.mark.parametrize("amount,rate", [
    (0, 0.1),
    (150000, 0.1),
    (99999.5, 0.25),
    (1000, 0),
    (1000, 1),
])
def test_commission_split(amount, rate):
    """Commission plus seller share always equals the amount"""
    commission, seller_amount = compute_commission(amount, rate)
    assert commission == pytest.approx(amount * rate)
    assert seller_amount == pytest.approx(amount - amount * rate)
    assert commission + seller_amount == pytest.approx(amount)


def test_user_password_never_serialized():
    user = User(id="u1", name="A", email="a@example.com", password="$2b$hash")
    assert user.password == "$2b$hash"
    assert "password" not in user.model_dump()


def test_user_email_normalized():
    user = User(id="u1", name="A", email="  Mixed@Example.COM ")
    assert user.email == "mixed@example.com"


def test_user_is_admin():
    assert User(id="u1", name="A", email="a@x.io", role="admin").is_admin
    assert not User(id="u2", name="B", email="b@x.io").is_admin


def test_product_defaults_are_plain_values():
    product = Product(
        id="p1", title="Lamp", description="Desk lamp", price=10,
        category="furniture", condition="good", seller="u1",
    )
    assert product.status == ProductStatus.AVAILABLE.value
    assert product.model_dump(mode="json")["status"] == "available"
    assert product.views == 0
    assert product.images == []


def test_product_rejects_negative_price():
    with pytest.raises(ValueError):
        Product(
            id="p1", title="Lamp", description="Desk lamp", price=-1,
            category="furniture", condition="good", seller="u1",
        )


def test_payment_rate_bounds():
    with pytest.raises(ValueError):
        Payment(
            id="x", order_id="o", amount=10, product_id="p",
            buyer_id="b", seller_id="s", admin_commission_rate=1.5,
        )


@pytest.mark.parametrize("amount,rate", [(-1, 0.1), (1000, -0.01), (1000, 1.5)])
def test_commission_split_rejects_out_of_range(amount, rate):
    with pytest.raises(ValueError):
        compute_commission(amount, rate)


def test_payment_rejects_negative_amount():
    with pytest.raises(ValueError):
        Payment(
            id="x", order_id="o", amount=-5, product_id="p",
            buyer_id="b", seller_id="s",
        )


def test_commission_rate_env_out_of_range(monkeypatch):
    monkeypatch.setenv("ADMIN_COMMISSION_RATE", "1.5")
    with pytest.raises(ValueError):
        config.read_commission_rate()

    monkeypatch.setenv("ADMIN_COMMISSION_RATE", "0.25")
    assert config.read_commission_rate() == pytest.approx(0.25)
