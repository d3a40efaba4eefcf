"""
Products Router

Listings with filters, search, favorites, reports and product administration.
Create/update accept multipart forms with `images` files.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile

from studenthub.auth import verify_admin, verify_auth
from studenthub.errors import (
    ERROR_ALREADY_FAVORITE,
    ERROR_NOT_FAVORITE,
    ERROR_PRODUCT_FORBIDDEN,
    ERROR_PRODUCT_NOT_FOUND,
    ERROR_REPORT_SELF,
)
from studenthub.logging import get_logger, sanitize_id_for_logging
from studenthub.middleware.upload import UploadError, remove_upload, save_uploads
from studenthub.routers.deps import populate_users
from studenthub.routers.models import (
    AdminProductUpdateRequest,
    ReportRequest,
    pagination,
    serialize,
)
from studenthub.services.database import get_database
from studenthub.services.models import (
    Product,
    ProductCategory,
    ProductCondition,
    ProductStatus,
    User,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/products", tags=["products"])

PRODUCT_SORT_FIELDS = {
    "createdAt": "created_at",
    "created_at": "created_at",
    "price": "price",
    "views": "views",
    "favorites": "favorites",
    "title": "title",
}


async def _get_product_or_404(product_id: str) -> Product:
    product = await get_database().products.get_by_id(product_id)
    if not product:
        raise HTTPException(status_code=404, detail=ERROR_PRODUCT_NOT_FOUND)
    return product


def _delete_images(product: Product) -> None:
    for path in product.images:
        remove_upload(path)


# ==================== LISTINGS ====================

@router.get("")
async def list_products(
    category: Optional[ProductCategory] = None,
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    condition: Optional[ProductCondition] = None,
    status: Optional[ProductStatus] = None,
    sort: str = "createdAt",
    order: str = "desc",
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    """Filtered, paginated listings with seller summary."""
    query: dict = {}
    if category:
        query["category"] = category.value
    if condition:
        query["condition"] = condition.value
    if status:
        query["status"] = status.value
    if min_price is not None or max_price is not None:
        query["price"] = {}
        if min_price is not None:
            query["price"]["$gte"] = min_price
        if max_price is not None:
            query["price"]["$lte"] = max_price

    db = get_database()
    sort_field = PRODUCT_SORT_FIELDS.get(sort, "created_at")
    products = await db.products.find_all(
        query,
        sort=[(sort_field, 1 if order == "asc" else -1)],
        skip=(page - 1) * limit,
        limit=limit,
    )
    total = await db.products.count(query)
    return {
        "products": await populate_users(db, products, "seller", ("name", "avatar", "rating")),
        "pagination": pagination(total, page, limit),
    }


@router.get("/favorites")
async def get_favorite_products(user: User = Depends(verify_auth)):
    db = get_database()
    products = await db.products.get_many(user.favorites)
    ordered = [products[pid] for pid in user.favorites if pid in products]
    return await populate_users(db, ordered, "seller")


@router.get("/user/{user_id}")
async def get_products_by_user(user_id: str):
    db = get_database()
    return [serialize(p) for p in await db.products.find_all({"seller": user_id})]


@router.get("/search/{query}")
async def search_products(query: str):
    db = get_database()
    return await populate_users(db, await db.products.search(query), "seller")


@router.get("/category/{category}")
async def get_products_by_category(category: ProductCategory):
    db = get_database()
    products = await db.products.find_all({"category": category.value})
    return await populate_users(db, products, "seller")


# ==================== ADMIN ====================

@router.get("/admin/all")
async def admin_list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[ProductStatus] = None,
    category: Optional[ProductCategory] = None,
    admin: User = Depends(verify_admin),
):
    db = get_database()
    query: dict = {}
    if status:
        query["status"] = status.value
    if category:
        query["category"] = category.value
    products = await db.products.find_all(query, skip=(page - 1) * limit, limit=limit)
    total = await db.products.count(query)
    return {
        "products": await populate_users(db, products, "seller", ("name", "email")),
        "pagination": pagination(total, page, limit),
    }


@router.get("/admin/reports")
async def admin_product_reports(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: str = "pending",
    admin: User = Depends(verify_admin),
):
    db = get_database()
    query = {"type": "product", "status": status}
    reports = await db.reports.find_all(query, skip=(page - 1) * limit, limit=limit)
    total = await db.reports.count(query)
    products = await db.products.get_many([r.product for r in reports if r.product])
    items = await populate_users(db, reports, "reporter", ("name", "email"))
    for item in items:
        product = products.get(item["product"])
        if product:
            item["product"] = {"id": product.id, "title": product.title, "images": product.images}
    return {"reports": items, "pagination": pagination(total, page, limit)}


@router.put("/admin/{product_id}")
async def admin_update_product(
    product_id: str, request: AdminProductUpdateRequest, admin: User = Depends(verify_admin)
):
    await _get_product_or_404(product_id)
    data = request.model_dump(exclude_none=True, mode="json")
    db = get_database()
    product = await db.products.update(product_id, data)
    if not product:
        raise HTTPException(status_code=404, detail=ERROR_PRODUCT_NOT_FOUND)
    return {"message": "Product updated by admin", "product": serialize(product)}


@router.delete("/admin/{product_id}")
async def admin_delete_product(product_id: str, admin: User = Depends(verify_admin)):
    product = await _get_product_or_404(product_id)
    db = get_database()
    await db.products.delete(product_id)
    await db.users.pull_favorites([product_id])
    _delete_images(product)
    logger.info(
        f"Admin {sanitize_id_for_logging(admin.id)} deleted product "
        f"{sanitize_id_for_logging(product_id)}"
    )
    return {"message": "Product deleted by admin"}


# ==================== SINGLE PRODUCT ====================

@router.get("/{product_id}")
async def get_product(product_id: str):
    """Product with seller details; each read counts as a view."""
    db = get_database()
    product = await db.products.increment_views(product_id)
    if not product:
        raise HTTPException(status_code=404, detail=ERROR_PRODUCT_NOT_FOUND)
    populated = await populate_users(
        db, [product], "seller", ("name", "avatar", "rating", "rating_count", "location")
    )
    return populated[0]


@router.post("", status_code=201)
async def create_product(
    title: str = Form(..., min_length=1),
    description: str = Form(..., min_length=1),
    price: float = Form(..., ge=0),
    category: ProductCategory = Form(...),
    condition: ProductCondition = Form(...),
    images: Optional[List[UploadFile]] = File(None),
    user: User = Depends(verify_auth),
):
    try:
        paths = await save_uploads(images, "images")
    except UploadError as e:
        raise HTTPException(status_code=400, detail=str(e))

    db = get_database()
    product = await db.products.create({
        "title": title.strip(),
        "description": description,
        "price": price,
        "category": category.value,
        "condition": condition.value,
        "images": paths,
        "seller": user.id,
        "location": user.location,
    })
    logger.info(f"Product {sanitize_id_for_logging(product.id)} listed")
    return serialize(product)


@router.put("/{product_id}")
async def update_product(
    product_id: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[float] = Form(None, ge=0),
    category: Optional[ProductCategory] = Form(None),
    condition: Optional[ProductCondition] = Form(None),
    status: Optional[ProductStatus] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    user: User = Depends(verify_auth),
):
    """Owner-only partial update; uploaded images are appended."""
    product = await _get_product_or_404(product_id)
    if product.seller != user.id:
        raise HTTPException(status_code=403, detail=ERROR_PRODUCT_FORBIDDEN)

    data: dict = {}
    if title:
        data["title"] = title.strip()
    if description:
        data["description"] = description
    if price is not None:
        data["price"] = price
    if category:
        data["category"] = category.value
    if condition:
        data["condition"] = condition.value
    if status:
        data["status"] = status.value

    try:
        new_images = await save_uploads(images, "images")
    except UploadError as e:
        raise HTTPException(status_code=400, detail=str(e))

    db = get_database()
    updated = await db.products.update(product_id, data, new_images)
    if not updated:
        raise HTTPException(status_code=404, detail=ERROR_PRODUCT_NOT_FOUND)
    return serialize(updated)


@router.delete("/{product_id}")
async def delete_product(product_id: str, user: User = Depends(verify_auth)):
    product = await _get_product_or_404(product_id)
    if product.seller != user.id:
        raise HTTPException(status_code=403, detail=ERROR_PRODUCT_FORBIDDEN)

    db = get_database()
    await db.products.delete(product_id)
    await db.users.pull_favorites([product_id])
    _delete_images(product)
    return {"message": "Product removed"}


# ==================== FAVORITES ====================

@router.post("/{product_id}/favorite")
async def add_favorite(product_id: str, user: User = Depends(verify_auth)):
    await _get_product_or_404(product_id)
    if product_id in user.favorites:
        raise HTTPException(status_code=400, detail=ERROR_ALREADY_FAVORITE)

    db = get_database()
    await db.users.add_favorite(user.id, product_id)
    await db.products.adjust_favorites(product_id, 1)
    return {"message": "Product added to favorites"}


@router.delete("/{product_id}/favorite")
async def remove_favorite(product_id: str, user: User = Depends(verify_auth)):
    await _get_product_or_404(product_id)
    if product_id not in user.favorites:
        raise HTTPException(status_code=400, detail=ERROR_NOT_FAVORITE)

    db = get_database()
    await db.users.remove_favorite(user.id, product_id)
    await db.products.adjust_favorites(product_id, -1)
    return {"message": "Product removed from favorites"}


# ==================== REPORTS ====================

@router.post("/{product_id}/report", status_code=201)
async def report_product(
    product_id: str, request: ReportRequest, user: User = Depends(verify_auth)
):
    product = await _get_product_or_404(product_id)
    if product.seller == user.id:
        raise HTTPException(status_code=400, detail=ERROR_REPORT_SELF)

    db = get_database()
    report = await db.reports.create({
        "type": "product",
        "reporter": user.id,
        "reported": product.seller,
        "product": product.id,
        "reason": request.reason.value,
        "description": request.description,
    })
    return {"message": "Product reported successfully", "report": serialize(report)}
