"""
Comments Router

Product comments, one level of replies, likes.
"""
from fastapi import APIRouter, Depends, HTTPException

from studenthub.auth import verify_auth
from studenthub.errors import (
    ERROR_ALREADY_LIKED,
    ERROR_COMMENT_FORBIDDEN,
    ERROR_COMMENT_NOT_FOUND,
    ERROR_NOT_LIKED,
    ERROR_PARENT_COMMENT_NOT_FOUND,
    ERROR_PRODUCT_NOT_FOUND,
)
from studenthub.routers.deps import populate_users
from studenthub.routers.models import CommentContentRequest, CreateCommentRequest
from studenthub.services.database import get_database
from studenthub.services.models import Comment, User

router = APIRouter(prefix="/api/comments", tags=["comments"])


async def _get_comment_or_404(comment_id: str, detail: str = ERROR_COMMENT_NOT_FOUND) -> Comment:
    comment = await get_database().comments.get_by_id(comment_id)
    if not comment:
        raise HTTPException(status_code=404, detail=detail)
    return comment


async def _present(comment: Comment) -> dict:
    return (await populate_users(get_database(), [comment], "user"))[0]


@router.get("/product/{product_id}")
async def get_product_comments(product_id: str):
    """Top-level comments, newest first."""
    db = get_database()
    if not await db.products.get_by_id(product_id):
        raise HTTPException(status_code=404, detail=ERROR_PRODUCT_NOT_FOUND)
    return await populate_users(db, await db.comments.find_top_level(product_id), "user")


@router.post("", status_code=201)
async def create_comment(request: CreateCommentRequest, user: User = Depends(verify_auth)):
    db = get_database()
    if not await db.products.get_by_id(request.product_id):
        raise HTTPException(status_code=404, detail=ERROR_PRODUCT_NOT_FOUND)
    comment = await db.comments.create(request.product_id, user.id, request.content)
    return await _present(comment)


@router.put("/{comment_id}")
async def update_comment(
    comment_id: str, request: CommentContentRequest, user: User = Depends(verify_auth)
):
    comment = await _get_comment_or_404(comment_id)
    if comment.user != user.id:
        raise HTTPException(status_code=403, detail=ERROR_COMMENT_FORBIDDEN)

    updated = await get_database().comments.update_content(comment_id, request.content)
    if not updated:
        raise HTTPException(status_code=404, detail=ERROR_COMMENT_NOT_FOUND)
    return await _present(updated)


@router.delete("/{comment_id}")
async def delete_comment(comment_id: str, user: User = Depends(verify_auth)):
    """Author-only; replies go with it."""
    comment = await _get_comment_or_404(comment_id)
    if comment.user != user.id:
        raise HTTPException(status_code=403, detail=ERROR_COMMENT_FORBIDDEN)

    await get_database().comments.delete_with_replies(comment_id)
    return {"message": "Comment removed"}


# ==================== REPLIES ====================

@router.get("/{comment_id}/replies")
async def get_replies(comment_id: str):
    """Replies, oldest first."""
    db = get_database()
    return await populate_users(db, await db.comments.find_replies(comment_id), "user")


@router.post("/{comment_id}/replies", status_code=201)
async def create_reply(
    comment_id: str, request: CommentContentRequest, user: User = Depends(verify_auth)
):
    parent = await _get_comment_or_404(comment_id, ERROR_PARENT_COMMENT_NOT_FOUND)
    reply = await get_database().comments.create(
        parent.product, user.id, request.content, parent_id=parent.id
    )
    return await _present(reply)


# ==================== LIKES ====================

@router.post("/{comment_id}/like")
async def like_comment(comment_id: str, user: User = Depends(verify_auth)):
    comment = await _get_comment_or_404(comment_id)
    if user.id in comment.likes:
        raise HTTPException(status_code=400, detail=ERROR_ALREADY_LIKED)

    updated = await get_database().comments.add_like(comment_id, user.id)
    if not updated:
        raise HTTPException(status_code=400, detail=ERROR_ALREADY_LIKED)
    return {"message": "Comment liked", "likes": len(updated.likes)}


@router.delete("/{comment_id}/like")
async def unlike_comment(comment_id: str, user: User = Depends(verify_auth)):
    comment = await _get_comment_or_404(comment_id)
    if user.id not in comment.likes:
        raise HTTPException(status_code=400, detail=ERROR_NOT_LIKED)

    updated = await get_database().comments.remove_like(comment_id, user.id)
    if not updated:
        raise HTTPException(status_code=400, detail=ERROR_NOT_LIKED)
    return {"message": "Comment unliked", "likes": len(updated.likes)}
