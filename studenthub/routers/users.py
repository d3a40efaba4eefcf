"""
Users Router

Registration, login, profiles, ratings, reports and user administration.
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from pymongo.errors import DuplicateKeyError

from studenthub.auth import verify_admin, verify_auth
from studenthub.errors import (
    ERROR_INVALID_CREDENTIALS,
    ERROR_RATE_SELF,
    ERROR_REPORT_SELF,
    ERROR_USER_EXISTS,
    ERROR_USER_NOT_FOUND,
)
from studenthub.logging import get_logger, sanitize_id_for_logging
from studenthub.routers.deps import populate_users
from studenthub.routers.models import (
    AdminUserUpdateRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RateUserRequest,
    RegisterRequest,
    ReportRequest,
    pagination,
    serialize,
)
from studenthub.security import create_access_token, verify_password
from studenthub.services.database import get_database
from studenthub.services.models import User, UserRole

logger = get_logger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])

USER_SORT_FIELDS = {
    "createdAt": "created_at",
    "created_at": "created_at",
    "name": "name",
    "email": "email",
    "role": "role",
    "rating": "rating",
}


def _auth_response(user: User) -> dict:
    return {
        "token": create_access_token(user.id),
        "user": {"id": user.id, "name": user.name, "email": user.email, "role": user.role},
    }


# ==================== AUTH ====================

@router.post("/register", status_code=201)
async def register(request: RegisterRequest):
    """Create an account and return a token."""
    db = get_database()

    if await db.users.get_by_email(request.email):
        raise HTTPException(status_code=400, detail=ERROR_USER_EXISTS)

    try:
        user = await db.users.create(
            request.name, request.email, request.password, UserRole.USER.value
        )
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail=ERROR_USER_EXISTS)

    logger.info(f"User registered: {sanitize_id_for_logging(user.id)}")
    return _auth_response(user)


@router.post("/login")
async def login(request: LoginRequest):
    db = get_database()
    user = await db.users.get_by_email(request.email, with_password=True)
    if not user or not verify_password(request.password, user.password):
        raise HTTPException(status_code=400, detail=ERROR_INVALID_CREDENTIALS)
    return _auth_response(user)


# ==================== PROFILE ====================

@router.get("/profile")
async def get_profile(user: User = Depends(verify_auth)):
    return serialize(user)


@router.put("/profile")
async def update_profile(request: ProfileUpdateRequest, user: User = Depends(verify_auth)):
    """Update own profile; only admins may change a role."""
    data = request.model_dump(exclude_none=True, mode="json")
    if not data.get("name"):
        data.pop("name", None)
    if not data.get("email"):
        data.pop("email", None)
    if "role" in data and not user.is_admin:
        data.pop("role")

    if not data:
        return serialize(user)

    db = get_database()
    try:
        updated = await db.users.update(user.id, data)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail=ERROR_USER_EXISTS)
    if not updated:
        raise HTTPException(status_code=404, detail=ERROR_USER_NOT_FOUND)
    return serialize(updated)


# ==================== ADMIN ====================
# Declared before /{id} so the literal segments win

@router.get("/admin/all")
async def admin_list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    role: str | None = None,
    sort: str = "createdAt",
    order: str = "desc",
    admin: User = Depends(verify_admin),
):
    db = get_database()
    query = {"role": role} if role else {}
    sort_field = USER_SORT_FIELDS.get(sort, "created_at")
    direction = 1 if order == "asc" else -1

    users = await db.users.find_all(
        query, sort=[(sort_field, direction)], skip=(page - 1) * limit, limit=limit
    )
    total = await db.users.count(query)
    return {"users": [serialize(u) for u in users], "pagination": pagination(total, page, limit)}


@router.get("/admin/dashboard")
async def admin_dashboard(admin: User = Depends(verify_admin)):
    """Counts, latest listings and sign-ups, products per category."""
    db = get_database()

    recent_products = await db.products.find_all(limit=5)
    recent_users = await db.users.find_all(limit=5)

    return {
        "counts": {
            "users": await db.users.count(),
            "products": await db.products.count(),
            "available_products": await db.products.count({"status": "available"}),
            "sold_products": await db.products.count({"status": "sold"}),
        },
        "recent_products": await populate_users(db, recent_products, "seller", ("name",)),
        "recent_users": [serialize(u) for u in recent_users],
        "category_stats": await db.products.category_counts(),
    }


@router.get("/admin/reports")
async def admin_user_reports(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: str = "pending",
    admin: User = Depends(verify_admin),
):
    db = get_database()
    query = {"type": "user", "status": status}
    reports = await db.reports.find_all(query, skip=(page - 1) * limit, limit=limit)
    total = await db.reports.count(query)

    summaries = await db.users.get_summaries(
        [r.reporter for r in reports] + [r.reported for r in reports], ("name", "email")
    )
    items = [
        serialize(
            r,
            reporter=summaries.get(r.reporter, {"id": r.reporter}),
            reported=summaries.get(r.reported, {"id": r.reported}),
        )
        for r in reports
    ]
    return {"reports": items, "pagination": pagination(total, page, limit)}


@router.put("/admin/{user_id}")
async def admin_update_user(
    user_id: str, request: AdminUserUpdateRequest, admin: User = Depends(verify_admin)
):
    db = get_database()
    data = request.model_dump(exclude_none=True, mode="json")
    for key in ("name", "email", "role"):
        if not data.get(key):
            data.pop(key, None)

    if not await db.users.get_by_id(user_id):
        raise HTTPException(status_code=404, detail=ERROR_USER_NOT_FOUND)

    try:
        updated = await db.users.update(user_id, data) if data else await db.users.get_by_id(user_id)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail=ERROR_USER_EXISTS)
    if not updated:
        raise HTTPException(status_code=404, detail=ERROR_USER_NOT_FOUND)
    return {"message": "User updated by admin", "user": serialize(updated)}


@router.delete("/admin/{user_id}")
async def admin_delete_user(user_id: str, admin: User = Depends(verify_admin)):
    """Delete a user with their products, favorites references and ratings."""
    db = get_database()
    if not await db.users.get_by_id(user_id):
        raise HTTPException(status_code=404, detail=ERROR_USER_NOT_FOUND)

    product_ids = await db.products.ids_by_seller(user_id)
    await db.users.delete(user_id)
    await db.products.delete_by_seller(user_id)
    await db.users.pull_favorites(product_ids + [user_id])
    await db.ratings.delete_for_user(user_id)

    logger.info(
        f"Admin {sanitize_id_for_logging(admin.id)} deleted user {sanitize_id_for_logging(user_id)}"
    )
    return {"message": "User and all associated data deleted successfully"}


# ==================== PUBLIC PROFILES ====================

@router.get("/{user_id}")
async def get_user(user_id: str):
    db = get_database()
    user = await db.users.get_by_id(user_id)
    if not user:
        raise HTTPException(status_code=404, detail=ERROR_USER_NOT_FOUND)
    product_count = await db.products.count({"seller": user.id})
    return serialize(user, product_count=product_count)


@router.get("/{user_id}/ratings")
async def get_user_ratings(user_id: str):
    db = get_database()
    ratings = await db.ratings.find_for_user(user_id)
    return await populate_users(db, ratings, "rater")


@router.post("/{user_id}/rate", status_code=201)
async def rate_user(user_id: str, request: RateUserRequest, user: User = Depends(verify_auth)):
    """Create or replace the caller's rating and refresh the average."""
    if user.id == user_id:
        raise HTTPException(status_code=400, detail=ERROR_RATE_SELF)

    db = get_database()
    if not await db.users.get_by_id(user_id):
        raise HTTPException(status_code=404, detail=ERROR_USER_NOT_FOUND)

    rating = await db.ratings.upsert(user.id, user_id, request.rating, request.comment)
    average, count = await db.ratings.summary_for(user_id)
    await db.users.set_rating(user_id, average, count)
    return serialize(rating)


@router.post("/{user_id}/report", status_code=201)
async def report_user(user_id: str, request: ReportRequest, user: User = Depends(verify_auth)):
    if user.id == user_id:
        raise HTTPException(status_code=400, detail=ERROR_REPORT_SELF)

    db = get_database()
    if not await db.users.get_by_id(user_id):
        raise HTTPException(status_code=404, detail=ERROR_USER_NOT_FOUND)

    report = await db.reports.create({
        "type": "user",
        "reporter": user.id,
        "reported": user_id,
        "reason": request.reason.value,
        "description": request.description,
    })
    return {"message": "User reported successfully", "report": serialize(report)}
