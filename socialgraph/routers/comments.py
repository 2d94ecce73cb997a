"""
Comment endpoints:
  POST   /comments                  — comment on a post (or reply to a comment)
  PUT    /comments/{id}             — edit own comment
  DELETE /comments/{id}             — soft delete own comment
  GET    /comments/post/{post_id}   — top-level comments, oldest first
  GET    /comments/{id}/replies     — direct replies, oldest first
"""
import logging

from fastapi import APIRouter, Depends, status

from socialgraph.deps import current_user_id, get_comments, page_window, paged, reply_window
from socialgraph.engine.comments import CommentThreads
from socialgraph.engine.pagination import PageWindow
from socialgraph.errors import NotFoundOrUnauthorized
from socialgraph.schemas import CommentCreate, CommentUpdate

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_comment(
    body: CommentCreate,
    user_id: int = Depends(current_user_id),
    comments: CommentThreads = Depends(get_comments),
):
    created = await comments.create_comment(
        post_id=body.post_id,
        author_id=user_id,
        content=body.content,
        parent_comment_id=body.parent_comment_id,
    )
    return {
        "message": "Comment created successfully",
        "comment": created.comment,
        "comment_count": created.comment_count,
    }


@router.put("/{comment_id}")
async def update_comment(
    comment_id: int,
    body: CommentUpdate,
    user_id: int = Depends(current_user_id),
    comments: CommentThreads = Depends(get_comments),
):
    comment = await comments.update_comment(comment_id, user_id, body.content)
    return {"message": "Comment updated successfully", "comment": comment}


@router.delete("/{comment_id}")
async def delete_comment(
    comment_id: int,
    user_id: int = Depends(current_user_id),
    comments: CommentThreads = Depends(get_comments),
):
    if not await comments.delete_comment(comment_id, user_id):
        raise NotFoundOrUnauthorized()
    return {"message": "Comment deleted successfully"}


@router.get("/post/{post_id}")
async def list_post_comments(
    post_id: int,
    window: PageWindow = Depends(page_window),
    comments: CommentThreads = Depends(get_comments),
):
    page = await comments.list_top_level_comments(post_id, window.offset, window.limit)
    return paged(page, window)


@router.get("/{comment_id}/replies")
async def list_comment_replies(
    comment_id: int,
    window: PageWindow = Depends(reply_window),
    comments: CommentThreads = Depends(get_comments),
):
    page = await comments.list_replies(comment_id, window.offset, window.limit)
    return paged(page, window)
