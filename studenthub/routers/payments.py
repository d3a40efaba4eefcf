"""
Payments Router

MoMo and VNPay checkout, gateway callbacks, payment status/history and
buyer receipt confirmation.

Gateway callbacks never raise: failures are answered in the gateway's
own response protocol.
"""
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse

from studenthub import config
from studenthub.auth import verify_admin, verify_auth
from studenthub.errors import (
    ERROR_INVALID_SIGNATURE,
    ERROR_PAYMENT_FAILED,
    ERROR_PAYMENT_NOT_FOUND,
    ERROR_PRODUCT_NOT_FOUND,
    ERROR_PRODUCT_OWN,
    ERROR_PRODUCT_UNAVAILABLE,
)
from studenthub.logging import get_logger, sanitize_id_for_logging
from studenthub.routers.deps import get_client_ip, get_momo_gateway, get_vnpay_gateway
from studenthub.routers.models import (
    CreatePaymentRequest,
    CreateVnpayPaymentRequest,
    VnpayQueryRequest,
    VnpayRefundRequest,
    serialize,
)
from studenthub.services.database import get_database
from studenthub.services.models import PaymentStatus, Product, ProductStatus, User
from studenthub.services.payments import (
    MomoError,
    VnpayError,
    encode_extra_data,
    new_vnpay_order_id,
)
from studenthub.services.receipts import (
    ReceiptError,
    complete_payment,
    confirm_receipt,
    fail_payment,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/payments", tags=["payments"])


async def _get_purchasable_product(product_id: str, buyer: User) -> Product:
    product = await get_database().products.get_by_id(product_id)
    if not product:
        raise HTTPException(status_code=404, detail=ERROR_PRODUCT_NOT_FOUND)
    if product.status != ProductStatus.AVAILABLE.value:
        raise HTTPException(status_code=400, detail=ERROR_PRODUCT_UNAVAILABLE)
    if product.seller == buyer.id:
        raise HTTPException(status_code=400, detail=ERROR_PRODUCT_OWN)
    return product


# ==================== MOMO ====================

@router.post("/momo/create")
async def create_momo_payment(request: CreatePaymentRequest, user: User = Depends(verify_auth)):
    """Create a pending MoMo payment and return the wallet pay URL."""
    product = await _get_purchasable_product(request.product_id, user)
    gateway = get_momo_gateway()
    db = get_database()

    order_id = gateway.new_order_id()
    extra_data = encode_extra_data({
        "productId": product.id,
        "buyerId": user.id,
        "sellerId": product.seller,
    })
    await db.payments.create({
        "order_id": order_id,
        "request_id": order_id,
        "amount": product.price,
        "product_id": product.id,
        "buyer_id": user.id,
        "seller_id": product.seller,
        "payment_method": "momo",
        "extra_data": extra_data,
    })

    try:
        result = await gateway.create_payment(
            order_id, product.price, f"Payment for {product.title}", extra_data
        )
    except MomoError as e:
        await db.payments.update(order_id, {
            "payment_status": PaymentStatus.FAILED.value,
            "error_message": str(e),
        })
        raise HTTPException(status_code=500, detail=str(e) or ERROR_PAYMENT_FAILED)

    pay_url = result.get("payUrl")
    if pay_url:
        await db.payments.update(order_id, {
            "pay_url": pay_url,
            "error_code": str(result.get("resultCode")) if result.get("resultCode") is not None else None,
            "error_message": result.get("message"),
        })

    return {"success": True, "pay_url": pay_url, "order_id": order_id}


@router.post("/momo/ipn")
async def momo_ipn(request: Request):
    """MoMo server callback; always answered with {message, resultCode}."""
    try:
        ipn: dict[str, Any] = await request.json()
    except ValueError:
        return JSONResponse({"message": "Invalid payload", "resultCode": 1})

    try:
        if not get_momo_gateway().verify_ipn(ipn):
            logger.warning(f"MoMo IPN with invalid signature for {sanitize_id_for_logging(ipn.get('orderId'))}")
            return {"message": ERROR_INVALID_SIGNATURE, "resultCode": 1}

        db = get_database()
        payment = await db.payments.get_by_order_id(str(ipn.get("orderId")))
        if not payment:
            return {"message": "Order not found", "resultCode": 1}

        result_code = str(ipn.get("resultCode"))
        if result_code == "0":
            await complete_payment(db, payment, str(ipn.get("transId")))
            return {"message": "Payment processed successfully", "resultCode": 0}

        await fail_payment(db, payment.order_id, result_code, ipn.get("message"))
        return {"message": "Payment processing failed", "resultCode": 1}
    except Exception as e:
        logger.error(f"MoMo IPN error: {e}", exc_info=True)
        return JSONResponse(
            status_code=500, content={"message": ERROR_PAYMENT_FAILED, "resultCode": 1}
        )


# ==================== VNPAY ====================

@router.post("/vnpay/create")
async def create_vnpay_payment(
    request: CreateVnpayPaymentRequest, http_request: Request, user: User = Depends(verify_auth)
):
    """Create a pending VNPay payment and return the signed checkout URL."""
    product = await _get_purchasable_product(request.product_id, user)
    gateway = get_vnpay_gateway()
    db = get_database()

    order_id = new_vnpay_order_id()
    await db.payments.create({
        "order_id": order_id,
        "request_id": order_id,
        "amount": product.price,
        "product_id": product.id,
        "buyer_id": user.id,
        "seller_id": product.seller,
        "payment_method": "vnpay",
    })

    pay_url = gateway.create_payment_url(
        order_id=order_id,
        amount=product.price,
        order_info=f"Payment for {product.title}",
        ip_addr=get_client_ip(http_request),
        locale=request.locale or "vn",
        bank_code=request.bank_code,
        return_url=gateway.return_url or str(http_request.url_for("vnpay_return")),
    )
    await db.payments.update(order_id, {"pay_url": pay_url})

    return {"success": True, "pay_url": pay_url, "order_id": order_id}


@router.get("/vnpay/return", name="vnpay_return")
async def vnpay_return(request: Request):
    """Browser return from VNPay: record the outcome and redirect to the frontend."""
    params = dict(request.query_params)
    if not get_vnpay_gateway().verify_return(params):
        raise HTTPException(status_code=400, detail=ERROR_INVALID_SIGNATURE)

    order_id = params.get("vnp_TxnRef", "")
    db = get_database()
    payment = await db.payments.get_by_order_id(order_id)
    if not payment:
        raise HTTPException(status_code=404, detail=ERROR_PAYMENT_NOT_FOUND)

    response_code = params.get("vnp_ResponseCode")
    if response_code == "00" and params.get("vnp_TransactionStatus") == "00":
        if payment.payment_status != PaymentStatus.COMPLETED.value:
            await complete_payment(db, payment, params.get("vnp_TransactionNo"))
        return RedirectResponse(
            f"{config.FRONTEND_URL}/payment/success?orderId={order_id}", status_code=302
        )

    await fail_payment(db, order_id, response_code, f"Transaction failed with code {response_code}")
    return RedirectResponse(
        f"{config.FRONTEND_URL}/payment/failed?orderId={order_id}&code={response_code}",
        status_code=302,
    )


@router.get("/vnpay/ipn")
async def vnpay_ipn(request: Request):
    """VNPay server callback; always HTTP 200 with {RspCode, Message}."""
    params = dict(request.query_params)
    try:
        if not get_vnpay_gateway().verify_return(params):
            return {"RspCode": "97", "Message": "Checksum failed"}

        order_id = params.get("vnp_TxnRef", "")
        db = get_database()
        payment = await db.payments.get_by_order_id(order_id)
        if not payment:
            return {"RspCode": "01", "Message": "Order not found"}

        if int(params.get("vnp_Amount", "0")) / 100 != payment.amount:
            return {"RspCode": "04", "Message": "Amount invalid"}

        if payment.payment_status != PaymentStatus.PENDING.value:
            return {"RspCode": "02", "Message": "This order has been updated to the payment status"}

        response_code = params.get("vnp_ResponseCode")
        if response_code == "00":
            await complete_payment(db, payment, params.get("vnp_TransactionNo"))
        else:
            await fail_payment(
                db, order_id, response_code, f"Transaction failed with code {response_code}"
            )
        return {"RspCode": "00", "Message": "Success"}
    except Exception as e:
        logger.error(f"VNPay IPN error: {e}", exc_info=True)
        return {"RspCode": "99", "Message": "Unknown error"}


@router.post("/vnpay/query")
async def vnpay_query(
    request: VnpayQueryRequest, http_request: Request, user: User = Depends(verify_auth)
):
    try:
        result = await get_vnpay_gateway().query_transaction(
            request.order_id, request.transaction_date, get_client_ip(http_request)
        )
    except VnpayError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"success": True, "result": result}


@router.post("/vnpay/refund")
async def vnpay_refund(
    request: VnpayRefundRequest, http_request: Request, admin: User = Depends(verify_admin)
):
    try:
        result = await get_vnpay_gateway().refund_transaction(
            order_id=request.order_id,
            transaction_date=request.transaction_date,
            amount=request.amount,
            transaction_type=request.transaction_type,
            created_by=admin.name or admin.email or admin.id,
            ip_addr=get_client_ip(http_request),
        )
    except VnpayError as e:
        raise HTTPException(status_code=500, detail=str(e))

    logger.info(
        f"Admin {sanitize_id_for_logging(admin.id)} requested VNPay refund for "
        f"{sanitize_id_for_logging(request.order_id)}"
    )
    return {"success": True, "result": result}


# ==================== STATUS & HISTORY ====================

@router.get("/history")
async def payment_history(user: User = Depends(verify_auth)):
    """Payments where the caller is buyer or seller, newest first."""
    db = get_database()
    payments = await db.payments.find_for_user(user.id)

    products = await db.products.get_many([p.product_id for p in payments])
    users = await db.users.get_summaries(
        [p.buyer_id for p in payments] + [p.seller_id for p in payments]
    )
    items = []
    for p in payments:
        product = products.get(p.product_id)
        items.append(serialize(
            p,
            product_id=(
                {"id": product.id, "title": product.title, "images": product.images,
                 "price": product.price}
                if product else p.product_id
            ),
            buyer_id=users.get(p.buyer_id, {"id": p.buyer_id}),
            seller_id=users.get(p.seller_id, {"id": p.seller_id}),
        ))
    return {"success": True, "payments": items}


@router.get("/{order_id}/status")
async def payment_status(order_id: str, user: User = Depends(verify_auth)):
    db = get_database()
    payment = await db.payments.get_by_order_id(order_id)
    if not payment:
        raise HTTPException(status_code=404, detail=ERROR_PAYMENT_NOT_FOUND)

    product = await db.products.get_by_id(payment.product_id)
    return {
        "success": True,
        "payment": serialize(payment, product_id=serialize(product) if product else payment.product_id),
    }


@router.post("/confirm-receipt/{order_id}")
async def confirm_payment_receipt(order_id: str, user: User = Depends(verify_auth)):
    """Buyer confirms the item arrived."""
    try:
        payment = await confirm_receipt(get_database(), order_id, user.id)
    except ReceiptError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "message": "Receipt confirmed successfully", "payment": serialize(payment)}
