"""Tests for API endpoints"""
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi.testclient import TestClient

from api.index import app
from studenthub.security import hash_password
from studenthub.services.models import Chat, Comment, Payment, User
from studenthub.services.payments import VnpayGateway
from studenthub.services.payments.vnpay import build_sign_data

from .conftest import ADMIN_ID, PRODUCT_ID, SELLER_ID, USER_ID


@pytest.fixture
def client():
    """Test client"""
    return TestClient(app)


# ==================== APP ====================

def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "OK"
    assert "timestamp" in response.json()


def test_security_headers(client):
    response = client.get("/health")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"


def test_openapi_docs(client):
    openapi = client.get("/api-docs.json")
    assert openapi.status_code == 200
    assert "/api/products" in openapi.json()["paths"]

    docs = client.get("/api-docs")
    assert docs.status_code == 200
    assert "swagger" in docs.text.lower()


def test_unhandled_error_returns_server_error(mock_db):
    mock_db.products.find_all = AsyncMock(side_effect=RuntimeError("boom"))
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get("/api/products")

    assert response.status_code == 500
    assert response.json() == {"detail": "Server error"}


# ==================== USERS ====================

def test_register(client, mock_db):
    mock_db.users.get_by_email = AsyncMock(return_value=None)
    mock_db.users.create = AsyncMock(return_value=User(
        id=USER_ID, name="New Student", email="new@example.com"
    ))

    response = client.post("/api/users/register", json={
        "name": "  New Student ", "email": "new@example.com", "password": "secret1",
    })

    assert response.status_code == 201
    body = response.json()
    assert body["token"]
    assert body["user"] == {
        "id": USER_ID, "name": "New Student", "email": "new@example.com", "role": "user",
    }
    mock_db.users.create.assert_awaited_once_with("New Student", "new@example.com", "secret1", "user")


def test_register_ignores_requested_role(client, mock_db):
    mock_db.users.get_by_email = AsyncMock(return_value=None)
    mock_db.users.create = AsyncMock(return_value=User(
        id=USER_ID, name="Sneaky", email="sneaky@example.com"
    ))

    response = client.post("/api/users/register", json={
        "name": "Sneaky", "email": "sneaky@example.com", "password": "secret1", "role": "admin",
    })

    assert response.status_code == 201
    assert response.json()["user"]["role"] == "user"
    mock_db.users.create.assert_awaited_once_with("Sneaky", "sneaky@example.com", "secret1", "user")


def test_register_existing_email(client, mock_db, sample_user):
    mock_db.users.get_by_email = AsyncMock(return_value=sample_user)
    response = client.post("/api/users/register", json={
        "name": "Dup", "email": sample_user.email, "password": "secret1",
    })
    assert response.status_code == 400
    assert response.json()["detail"] == "User already exists with this email"


def test_register_validation(client, mock_db):
    response = client.post("/api/users/register", json={
        "name": "X", "email": "not-an-email", "password": "123",
    })
    assert response.status_code == 422


def test_login(client, mock_db, sample_user):
    stored = sample_user.model_copy(update={"password": hash_password("secret1")})
    mock_db.users.get_by_email = AsyncMock(return_value=stored)

    ok = client.post("/api/users/login", json={"email": stored.email, "password": "secret1"})
    bad = client.post("/api/users/login", json={"email": stored.email, "password": "nope"})

    assert ok.status_code == 200
    assert ok.json()["user"]["id"] == USER_ID
    assert bad.status_code == 400
    assert bad.json()["detail"] == "Invalid credentials"


def test_profile_role_change_ignored_for_user(client, mock_db, auth_headers, sample_user):
    mock_db.users.update = AsyncMock(return_value=sample_user.model_copy(update={"bio": "Hi"}))

    response = client.put(
        "/api/users/profile", json={"bio": "Hi", "role": "admin"}, headers=auth_headers()
    )

    assert response.status_code == 200
    mock_db.users.update.assert_awaited_once_with(USER_ID, {"bio": "Hi"})


def test_rate_self_rejected(client, mock_db, auth_headers):
    response = client.post(f"/api/users/{USER_ID}/rate", json={"rating": 5}, headers=auth_headers())
    assert response.status_code == 400


def test_rate_user_updates_average(client, mock_db, auth_headers):
    rating = Mock()
    rating.model_dump = Mock(return_value={"rater": USER_ID, "rated": SELLER_ID, "rating": 4})
    mock_db.ratings.upsert = AsyncMock(return_value=rating)
    mock_db.ratings.summary_for = AsyncMock(return_value=(4.5, 2))
    mock_db.users.set_rating = AsyncMock()

    response = client.post(
        f"/api/users/{SELLER_ID}/rate", json={"rating": 4, "comment": "Fast"}, headers=auth_headers()
    )

    assert response.status_code == 201
    mock_db.ratings.upsert.assert_awaited_once_with(USER_ID, SELLER_ID, 4, "Fast")
    mock_db.users.set_rating.assert_awaited_once_with(SELLER_ID, 4.5, 2)


def test_admin_dashboard(client, mock_db, auth_headers):
    mock_db.products.find_all = AsyncMock(return_value=[])
    mock_db.users.find_all = AsyncMock(return_value=[])
    mock_db.users.count = AsyncMock(return_value=3)
    mock_db.products.count = AsyncMock(return_value=5)
    mock_db.products.category_counts = AsyncMock(return_value=[{"category": "books", "count": 5}])

    response = client.get("/api/users/admin/dashboard", headers=auth_headers(ADMIN_ID))

    assert response.status_code == 200
    body = response.json()
    assert body["counts"]["users"] == 3
    assert body["category_stats"] == [{"category": "books", "count": 5}]


# ==================== PRODUCTS ====================

def test_list_products(client, mock_db, sample_product):
    mock_db.products.find_all = AsyncMock(return_value=[sample_product])
    mock_db.products.count = AsyncMock(return_value=1)
    mock_db.users.get_summaries = AsyncMock(return_value={
        SELLER_ID: {"id": SELLER_ID, "name": "Test Seller", "avatar": "", "rating": 4.0},
    })

    response = client.get("/api/products", params={
        "category": "books", "min_price": 1000, "sort": "price", "order": "asc",
    })

    assert response.status_code == 200
    body = response.json()
    assert body["products"][0]["seller"]["name"] == "Test Seller"
    assert body["pagination"] == {"total": 1, "page": 1, "limit": 10, "pages": 1}
    query = mock_db.products.find_all.call_args.args[0]
    assert query == {"category": "books", "price": {"$gte": 1000}}
    assert mock_db.products.find_all.call_args.kwargs["sort"] == [("price", 1)]


def test_get_product_not_found(client, mock_db):
    mock_db.products.increment_views = AsyncMock(return_value=None)
    response = client.get("/api/products/65a0000000000000000000ff")
    assert response.status_code == 404


def test_create_product_rejects_pdf(client, mock_db, auth_headers):
    mock_db.products.create = AsyncMock()

    response = client.post(
        "/api/products",
        data={"title": "Notes", "description": "Lecture notes", "price": "10000",
              "category": "books", "condition": "good"},
        files=[("images", ("notes.pdf", b"%PDF-1.4", "application/pdf"))],
        headers=auth_headers(),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Only image files are allowed!"
    mock_db.products.create.assert_not_called()


def test_create_product(client, mock_db, auth_headers, sample_product):
    mock_db.products.create = AsyncMock(return_value=sample_product)

    response = client.post(
        "/api/products",
        data={"title": "Calculus textbook", "description": "Barely used", "price": "150000",
              "category": "books", "condition": "like new"},
        files=[("images", ("cover.JPG", b"\xff\xd8\xff", "image/jpeg"))],
        headers=auth_headers(),
    )

    assert response.status_code == 201
    data = mock_db.products.create.call_args.args[0]
    assert data["seller"] == USER_ID
    assert data["condition"] == "like new"
    assert len(data["images"]) == 1
    assert data["images"][0].endswith(".JPG")


def test_update_product_not_owner(client, mock_db, auth_headers, sample_product):
    mock_db.products.get_by_id = AsyncMock(return_value=sample_product)
    response = client.put(f"/api/products/{PRODUCT_ID}", data={"title": "Mine now"}, headers=auth_headers())
    assert response.status_code == 403


def test_delete_product_pulls_favorites(client, mock_db, auth_headers, sample_product):
    mock_db.products.get_by_id = AsyncMock(return_value=sample_product)
    mock_db.products.delete = AsyncMock(return_value=True)
    mock_db.users.pull_favorites = AsyncMock()

    response = client.delete(f"/api/products/{PRODUCT_ID}", headers=auth_headers(SELLER_ID))

    assert response.status_code == 200
    mock_db.users.pull_favorites.assert_awaited_once_with([PRODUCT_ID])


def test_favorite_twice_rejected(client, mock_db, auth_headers, sample_user, sample_product):
    mock_db.users.get_by_id = AsyncMock(
        return_value=sample_user.model_copy(update={"favorites": [PRODUCT_ID]})
    )
    mock_db.products.get_by_id = AsyncMock(return_value=sample_product)

    response = client.post(f"/api/products/{PRODUCT_ID}/favorite", headers=auth_headers())

    assert response.status_code == 400


def test_favorite(client, mock_db, auth_headers, sample_product):
    mock_db.products.get_by_id = AsyncMock(return_value=sample_product)
    mock_db.users.add_favorite = AsyncMock()
    mock_db.products.adjust_favorites = AsyncMock()

    response = client.post(f"/api/products/{PRODUCT_ID}/favorite", headers=auth_headers())

    assert response.status_code == 200
    mock_db.products.adjust_favorites.assert_awaited_once_with(PRODUCT_ID, 1)


def test_report_own_product_rejected(client, mock_db, auth_headers, sample_product):
    mock_db.products.get_by_id = AsyncMock(return_value=sample_product)
    response = client.post(
        f"/api/products/{PRODUCT_ID}/report", json={"reason": "spam"}, headers=auth_headers(SELLER_ID)
    )
    assert response.status_code == 400


# ==================== CHATS ====================

def _chat(chat_id="65a0000000000000000000d1"):
    return Chat(
        id=chat_id, participants=[USER_ID, SELLER_ID], unread_count={USER_ID: 0, SELLER_ID: 0}
    )


def test_chat_with_self_rejected(client, mock_db, auth_headers):
    response = client.post("/api/chats", json={"receiver_id": USER_ID}, headers=auth_headers())
    assert response.status_code == 400


def test_create_chat(client, mock_db, auth_headers):
    mock_db.chats.find_between = AsyncMock(return_value=None)
    mock_db.chats.create = AsyncMock(return_value=_chat())
    mock_db.products.get_many = AsyncMock(return_value={})

    response = client.post("/api/chats", json={"receiver_id": SELLER_ID}, headers=auth_headers())

    assert response.status_code == 201
    mock_db.chats.create.assert_awaited_once_with([USER_ID, SELLER_ID], None)


def test_existing_chat_returned(client, mock_db, auth_headers):
    mock_db.chats.find_between = AsyncMock(return_value=_chat())
    mock_db.chats.create = AsyncMock()
    mock_db.products.get_many = AsyncMock(return_value={})

    response = client.post("/api/chats", json={"receiver_id": SELLER_ID}, headers=auth_headers())

    assert response.status_code == 200
    mock_db.chats.create.assert_not_called()


def test_chat_forbidden_for_outsider(client, mock_db, auth_headers):
    mock_db.chats.get_by_id = AsyncMock(return_value=_chat())
    response = client.get("/api/chats/65a0000000000000000000d1/messages", headers=auth_headers(ADMIN_ID))
    assert response.status_code == 403


def test_send_message_emits_events(client, mock_db, auth_headers):
    chat = _chat()
    message = Mock(sender=USER_ID)
    message.id = "65a0000000000000000000e1"
    message.model_dump = Mock(return_value={"id": message.id, "content": "Still available?"})
    mock_db.chats.get_by_id = AsyncMock(return_value=chat)
    mock_db.messages.create = AsyncMock(return_value=message)
    mock_db.chats.record_message = AsyncMock(
        return_value=chat.model_copy(update={"unread_count": {USER_ID: 0, SELLER_ID: 1}})
    )

    with patch("studenthub.routers.chats.emit_new_message", new=AsyncMock()) as new_message, \
         patch("studenthub.routers.chats.emit_chat_updated", new=AsyncMock()) as chat_updated:
        response = client.post(
            f"/api/chats/{chat.id}/messages", json={"content": "Still available?"},
            headers=auth_headers(),
        )

    assert response.status_code == 201
    new_message.assert_awaited_once()
    assert chat_updated.await_args.args[2] == {USER_ID: 0, SELLER_ID: 1}


# ==================== COMMENTS ====================

def test_like_comment_twice_rejected(client, mock_db, auth_headers):
    mock_db.comments.get_by_id = AsyncMock(return_value=Comment(
        id="65a0000000000000000000f1", product=PRODUCT_ID, user=SELLER_ID,
        content="Nice", likes=[USER_ID],
    ))
    response = client.post("/api/comments/65a0000000000000000000f1/like", headers=auth_headers())
    assert response.status_code == 400


def test_edit_comment_not_author(client, mock_db, auth_headers):
    mock_db.comments.get_by_id = AsyncMock(return_value=Comment(
        id="65a0000000000000000000f1", product=PRODUCT_ID, user=SELLER_ID, content="Nice",
    ))
    response = client.put(
        "/api/comments/65a0000000000000000000f1", json={"content": "Edited"}, headers=auth_headers()
    )
    assert response.status_code == 403


# ==================== PAYMENTS ====================

@pytest.fixture
def momo_gateway():
    gateway = Mock()
    gateway.new_order_id = Mock(return_value="MOMOTEST1700000000000")
    gateway.create_payment = AsyncMock(return_value={
        "resultCode": 0, "message": "Successful.", "payUrl": "https://test-payment.momo.vn/pay/x",
    })
    with patch("studenthub.routers.payments.get_momo_gateway", return_value=gateway):
        yield gateway


@pytest.fixture
def vnpay_gateway():
    gateway = VnpayGateway(tmn_code="TESTTMN1", hash_secret="TESTVNPAYSECRET")
    with patch("studenthub.routers.payments.get_vnpay_gateway", return_value=gateway):
        yield gateway


def test_momo_create(client, mock_db, auth_headers, sample_product, momo_gateway):
    mock_db.products.get_by_id = AsyncMock(return_value=sample_product)
    mock_db.payments.create = AsyncMock()
    mock_db.payments.update = AsyncMock()

    response = client.post(
        "/api/payments/momo/create", json={"product_id": PRODUCT_ID}, headers=auth_headers()
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "pay_url": "https://test-payment.momo.vn/pay/x",
        "order_id": "MOMOTEST1700000000000",
    }
    created = mock_db.payments.create.call_args.args[0]
    assert created["amount"] == 150000
    assert created["buyer_id"] == USER_ID
    assert created["seller_id"] == SELLER_ID
    assert created["payment_method"] == "momo"


def test_momo_create_own_product(client, mock_db, auth_headers, sample_product, momo_gateway):
    mock_db.products.get_by_id = AsyncMock(return_value=sample_product)
    response = client.post(
        "/api/payments/momo/create", json={"product_id": PRODUCT_ID}, headers=auth_headers(SELLER_ID)
    )
    assert response.status_code == 400
    momo_gateway.create_payment.assert_not_called()


def test_momo_create_sold_product(client, mock_db, auth_headers, sample_product, momo_gateway):
    mock_db.products.get_by_id = AsyncMock(
        return_value=sample_product.model_copy(update={"status": "sold"})
    )
    response = client.post(
        "/api/payments/momo/create", json={"product_id": PRODUCT_ID}, headers=auth_headers()
    )
    assert response.status_code == 400


def test_momo_ipn_invalid_signature(client, mock_db, momo_gateway):
    momo_gateway.verify_ipn = Mock(return_value=False)
    response = client.post("/api/payments/momo/ipn", json={"orderId": "x", "signature": "bad"})
    assert response.status_code == 200
    assert response.json() == {"message": "Invalid signature", "resultCode": 1}


def test_momo_ipn_success(client, mock_db, momo_gateway, sample_payment):
    momo_gateway.verify_ipn = Mock(return_value=True)
    mock_db.payments.get_by_order_id = AsyncMock(return_value=sample_payment)
    mock_db.payments.update = AsyncMock()
    mock_db.products.mark_sold = AsyncMock()

    response = client.post("/api/payments/momo/ipn", json={
        "orderId": sample_payment.order_id, "resultCode": 0, "transId": 4088878653,
    })

    assert response.json()["resultCode"] == 0
    _, data = mock_db.payments.update.call_args.args
    assert data["payment_status"] == "completed"
    assert data["transaction_id"] == "4088878653"
    mock_db.products.mark_sold.assert_awaited_once_with(PRODUCT_ID, USER_ID)


def test_momo_ipn_failure(client, mock_db, momo_gateway, sample_payment):
    momo_gateway.verify_ipn = Mock(return_value=True)
    mock_db.payments.get_by_order_id = AsyncMock(return_value=sample_payment)
    mock_db.payments.update = AsyncMock()
    mock_db.products.mark_sold = AsyncMock()

    response = client.post("/api/payments/momo/ipn", json={
        "orderId": sample_payment.order_id, "resultCode": 1006, "message": "User denied",
    })

    assert response.json()["resultCode"] == 1
    _, data = mock_db.payments.update.call_args.args
    assert data == {"payment_status": "failed", "error_code": "1006", "error_message": "User denied"}
    mock_db.products.mark_sold.assert_not_called()


def _vnpay_params(gateway, order_id, amount=150000, response_code="00", **extra):
    params = {
        "vnp_TmnCode": "TESTTMN1",
        "vnp_TxnRef": order_id,
        "vnp_Amount": str(int(amount * 100)),
        "vnp_ResponseCode": response_code,
        "vnp_TransactionStatus": response_code,
        "vnp_TransactionNo": "14123456",
        "vnp_OrderInfo": "Payment for Calculus textbook",
        **extra,
    }
    params["vnp_SecureHash"] = gateway.sign(build_sign_data(params))
    return params


def _vnpay_payment(sample_payment, **update):
    return sample_payment.model_copy(
        update={"order_id": "VNP250309140507", "payment_method": "vnpay", **update}
    )


def test_vnpay_create(client, mock_db, auth_headers, sample_product, vnpay_gateway):
    mock_db.products.get_by_id = AsyncMock(return_value=sample_product)
    mock_db.payments.create = AsyncMock()
    mock_db.payments.update = AsyncMock()

    response = client.post(
        "/api/payments/vnpay/create",
        json={"product_id": PRODUCT_ID, "bank_code": "NCB"},
        headers={**auth_headers(), "X-Forwarded-For": "203.0.113.9, 10.0.0.1"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["order_id"].startswith("VNP")
    assert "vnp_IpAddr=203.0.113.9" in body["pay_url"]
    assert "vnp_ReturnUrl=http%3A%2F%2Ftestserver%2Fapi%2Fpayments%2Fvnpay%2Freturn" in body["pay_url"]
    mock_db.payments.update.assert_awaited_once_with(body["order_id"], {"pay_url": body["pay_url"]})


def test_vnpay_return_success(client, mock_db, vnpay_gateway, sample_payment):
    payment = _vnpay_payment(sample_payment)
    mock_db.payments.get_by_order_id = AsyncMock(return_value=payment)
    mock_db.payments.update = AsyncMock()
    mock_db.products.mark_sold = AsyncMock()

    response = client.get(
        "/api/payments/vnpay/return",
        params=_vnpay_params(vnpay_gateway, payment.order_id),
        follow_redirects=False,
    )

    assert response.status_code == 302
    assert response.headers["location"] == (
        f"http://localhost:3000/payment/success?orderId={payment.order_id}"
    )
    mock_db.products.mark_sold.assert_awaited_once()


def test_vnpay_return_failed(client, mock_db, vnpay_gateway, sample_payment):
    payment = _vnpay_payment(sample_payment)
    mock_db.payments.get_by_order_id = AsyncMock(return_value=payment)
    mock_db.payments.update = AsyncMock()

    response = client.get(
        "/api/payments/vnpay/return",
        params=_vnpay_params(vnpay_gateway, payment.order_id, response_code="24"),
        follow_redirects=False,
    )

    assert response.status_code == 302
    assert response.headers["location"].endswith(f"/payment/failed?orderId={payment.order_id}&code=24")


def test_vnpay_return_tampered(client, mock_db, vnpay_gateway):
    params = _vnpay_params(vnpay_gateway, "VNP250309140507")
    params["vnp_Amount"] = "100"
    response = client.get("/api/payments/vnpay/return", params=params, follow_redirects=False)
    assert response.status_code == 400


def test_vnpay_ipn_checksum_failed(client, mock_db, vnpay_gateway):
    params = _vnpay_params(vnpay_gateway, "VNP250309140507")
    params["vnp_ResponseCode"] = "24"
    response = client.get("/api/payments/vnpay/ipn", params=params)
    assert response.json() == {"RspCode": "97", "Message": "Checksum failed"}


def test_vnpay_ipn_amount_mismatch(client, mock_db, vnpay_gateway, sample_payment):
    payment = _vnpay_payment(sample_payment)
    mock_db.payments.get_by_order_id = AsyncMock(return_value=payment)

    response = client.get(
        "/api/payments/vnpay/ipn", params=_vnpay_params(vnpay_gateway, payment.order_id, amount=1000)
    )

    assert response.json()["RspCode"] == "04"


def test_vnpay_ipn_already_processed(client, mock_db, vnpay_gateway, sample_payment):
    payment = _vnpay_payment(sample_payment, payment_status="completed")
    mock_db.payments.get_by_order_id = AsyncMock(return_value=payment)

    response = client.get(
        "/api/payments/vnpay/ipn", params=_vnpay_params(vnpay_gateway, payment.order_id)
    )

    assert response.json()["RspCode"] == "02"


def test_vnpay_ipn_success(client, mock_db, vnpay_gateway, sample_payment):
    payment = _vnpay_payment(sample_payment)
    mock_db.payments.get_by_order_id = AsyncMock(return_value=payment)
    mock_db.payments.update = AsyncMock()
    mock_db.products.mark_sold = AsyncMock()

    response = client.get(
        "/api/payments/vnpay/ipn", params=_vnpay_params(vnpay_gateway, payment.order_id)
    )

    assert response.json() == {"RspCode": "00", "Message": "Success"}
    _, data = mock_db.payments.update.call_args.args
    assert data["transaction_id"] == "14123456"


def test_vnpay_refund_requires_admin(client, mock_db, auth_headers, vnpay_gateway):
    response = client.post(
        "/api/payments/vnpay/refund",
        json={"order_id": "VNP1", "transaction_date": "20250309140507", "amount": 1000},
        headers=auth_headers(),
    )
    assert response.status_code == 403


def test_payment_status_not_found(client, mock_db, auth_headers):
    mock_db.payments.get_by_order_id = AsyncMock(return_value=None)
    response = client.get("/api/payments/unknown/status", headers=auth_headers())
    assert response.status_code == 404


def test_confirm_receipt_not_completed(client, mock_db, auth_headers, sample_payment):
    mock_db.payments.get_for_buyer = AsyncMock(return_value=sample_payment)
    response = client.post(
        f"/api/payments/confirm-receipt/{sample_payment.order_id}", headers=auth_headers()
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Payment is not completed yet"


def test_confirm_receipt(client, mock_db, auth_headers, sample_payment):
    completed = sample_payment.model_copy(update={"payment_status": "completed"})
    mock_db.payments.get_for_buyer = AsyncMock(return_value=completed)
    mock_db.payments.update = AsyncMock(
        return_value=completed.model_copy(update={"received_successfully": True})
    )

    response = client.post(
        f"/api/payments/confirm-receipt/{completed.order_id}", headers=auth_headers()
    )

    assert response.status_code == 200
    assert response.json()["payment"]["received_successfully"] is True


# ==================== ADMIN STATS ====================

def _completed(amount, method="momo"):
    return Payment(
        id=f"pay-{amount}", order_id=f"o-{amount}", amount=amount, product_id=PRODUCT_ID,
        buyer_id=USER_ID, seller_id=SELLER_ID, payment_method=method,
        payment_status="completed", admin_commission=amount * 0.1,
        seller_amount=amount * 0.9,
    )


def test_monthly_stats_twelve_months(client, mock_db, auth_headers):
    mock_db.payments.find_completed = AsyncMock(return_value=[])
    response = client.get("/api/admin/stats/monthly?year=2024", headers=auth_headers(ADMIN_ID))
    assert response.status_code == 200
    assert len(response.json()) == 12
    start, end = mock_db.payments.find_completed.call_args.args
    assert start.year == 2024 and end.year == 2024 and end.month == 12


def test_admin_profits(client, mock_db, auth_headers):
    mock_db.payments.find_completed = AsyncMock(return_value=[_completed(1000), _completed(2000, "vnpay")])

    response = client.get(
        "/api/admin/profits",
        params={"start_date": "2025-01-01", "end_date": "2025-01-31"},
        headers=auth_headers(ADMIN_ID),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total_profit"] == pytest.approx(300)
    assert body["total_transactions"] == 2
    _, end = mock_db.payments.find_completed.call_args.args
    assert (end.hour, end.minute) == (23, 59)


def test_admin_profits_bad_date(client, mock_db, auth_headers):
    response = client.get(
        "/api/admin/profits", params={"start_date": "last week"}, headers=auth_headers(ADMIN_ID)
    )
    assert response.status_code == 400


@pytest.mark.parametrize("year", [0, 10000])
def test_monthly_stats_year_out_of_range(client, mock_db, auth_headers, year):
    mock_db.payments.find_completed = AsyncMock(return_value=[])

    for path in ("/api/admin/stats/monthly", "/api/admin/profits/monthly"):
        response = client.get(path, params={"year": year}, headers=auth_headers(ADMIN_ID))
        assert response.status_code == 422

    mock_db.payments.find_completed.assert_not_called()


def test_admin_profits_utc_designator(client, mock_db, auth_headers):
    mock_db.payments.find_completed = AsyncMock(return_value=[])

    response = client.get(
        "/api/admin/profits",
        params={"start_date": "2025-01-01T08:30:00Z"},
        headers=auth_headers(ADMIN_ID),
    )

    assert response.status_code == 200
    start, end = mock_db.payments.find_completed.call_args.args
    assert start == datetime(2025, 1, 1, 8, 30, tzinfo=timezone.utc)
    assert end is None


def test_product_stats(client, mock_db, auth_headers, sample_product):
    mock_db.payments.find_completed = AsyncMock(return_value=[_completed(150000)])
    mock_db.products.get_many = AsyncMock(return_value={PRODUCT_ID: sample_product})

    response = client.get("/api/admin/stats/products", headers=auth_headers(ADMIN_ID))

    assert response.status_code == 200
    assert response.json()["category_sales"]["books"]["count"] == 1


# ==================== CRON ====================

def test_cron_requires_secret(client):
    response = client.get("/api/cron/auto-confirm-receipts")
    assert response.status_code == 401


def test_cron_auto_confirm(client):
    db = Mock()
    db.payments.confirm_overdue_receipts = AsyncMock(return_value=2)

    with patch("studenthub.routers.cron.get_database_async", new=AsyncMock(return_value=db)):
        response = client.get(
            "/api/cron/auto-confirm-receipts",
            headers={"Authorization": "Bearer test_cron_secret"},
        )

    assert response.status_code == 200
    assert response.json()["confirmed"] == 2
    assert "timestamp" in response.json()
