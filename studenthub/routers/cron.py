"""
Cron Router

Scheduled jobs triggered by an external scheduler.
Schedule: 0 * * * * (hourly)
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from studenthub.auth import verify_cron_secret
from studenthub.logging import get_logger
from studenthub.services.database import get_database_async
from studenthub.services.receipts import auto_confirm_receipts

logger = get_logger(__name__)

router = APIRouter(prefix="/api/cron", tags=["cron"])


@router.get("/auto-confirm-receipts", dependencies=[Depends(verify_cron_secret)])
async def auto_confirm_receipts_job():
    """Confirm receipts whose buyer confirmation window has passed."""
    now = datetime.now(timezone.utc)
    db = await get_database_async()
    confirmed = await auto_confirm_receipts(db, now)
    return {"confirmed": confirmed, "timestamp": now.isoformat()}
