"""
Payment settlement and receipt confirmation.

A completed payment marks the product sold and gives the buyer
RECEIPT_CONFIRMATION_DAYS to confirm receipt; past the deadline the
cron job confirms it on their behalf.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from studenthub import config
from studenthub.errors import (
    ERROR_PAYMENT_NOT_COMPLETED,
    ERROR_PAYMENT_NOT_FOUND,
    ERROR_RECEIPT_CONFIRMED,
)
from studenthub.logging import get_logger, sanitize_id_for_logging
from studenthub.services.database import Database
from studenthub.services.models import Payment, PaymentStatus

logger = get_logger(__name__)


class ReceiptError(Exception):
    """Receipt cannot be confirmed; carries the HTTP status to report."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def receipt_deadline(now: Optional[datetime] = None) -> datetime:
    return (now or datetime.now(timezone.utc)) + timedelta(days=config.RECEIPT_CONFIRMATION_DAYS)


async def complete_payment(
    db: Database, payment: Payment, transaction_id: Optional[str] = None
) -> Optional[Payment]:
    """Mark payment completed, start the receipt window and sell the product."""
    updated = await db.payments.update(payment.order_id, {
        "payment_status": PaymentStatus.COMPLETED.value,
        "transaction_id": transaction_id,
        "received_successfully_deadline": receipt_deadline(),
    })
    await db.products.mark_sold(payment.product_id, payment.buyer_id)
    logger.info(f"Payment {sanitize_id_for_logging(payment.order_id)} completed")
    return updated


async def fail_payment(
    db: Database, order_id: str, error_code: Optional[str], error_message: Optional[str]
) -> Optional[Payment]:
    logger.info(
        f"Payment {sanitize_id_for_logging(order_id)} failed with code {error_code}"
    )
    return await db.payments.update(order_id, {
        "payment_status": PaymentStatus.FAILED.value,
        "error_code": error_code,
        "error_message": error_message,
    })


async def confirm_receipt(db: Database, order_id: str, buyer_id: str) -> Payment:
    """
    Buyer confirms receipt of a completed payment.

    Raises:
        ReceiptError: 404 unknown payment for this buyer, 400 not completed
            or already confirmed
    """
    payment = await db.payments.get_for_buyer(order_id, buyer_id)
    if not payment:
        raise ReceiptError(ERROR_PAYMENT_NOT_FOUND, 404)
    if payment.payment_status != PaymentStatus.COMPLETED.value:
        raise ReceiptError(ERROR_PAYMENT_NOT_COMPLETED)
    if payment.received_successfully:
        raise ReceiptError(ERROR_RECEIPT_CONFIRMED)

    return await db.payments.update(order_id, {
        "received_successfully": True,
        "received_confirmed_at": datetime.now(timezone.utc),
    })


async def auto_confirm_receipts(db: Database, now: Optional[datetime] = None) -> int:
    """Confirm every overdue receipt; returns how many were confirmed."""
    now = now or datetime.now(timezone.utc)
    confirmed = await db.payments.confirm_overdue_receipts(now)
    if confirmed:
        logger.info(f"Auto-confirmed {confirmed} receipts")
    else:
        logger.debug("No expired payments to auto-confirm")
    return confirmed
