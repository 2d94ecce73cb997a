"""
Like endpoints:
  POST   /likes                  — like a post (body: {"post_id": ...})
  DELETE /likes/{post_id}        — unlike
  GET    /likes/post/{post_id}   — who liked a post, newest first
  GET    /likes/user/{user_id}   — posts a user liked, newest first
  GET    /likes/status/{post_id} — has the caller liked it + like count
"""
from fastapi import APIRouter, Depends, status

from socialgraph.deps import current_user_id, get_likes, page_window, paged
from socialgraph.engine.likes import LikeCounter
from socialgraph.engine.pagination import PageWindow
from socialgraph.errors import NotFound
from socialgraph.schemas import LikeRequest, LikeStatus

router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
async def like_post(
    body: LikeRequest,
    user_id: int = Depends(current_user_id),
    likes: LikeCounter = Depends(get_likes),
):
    created = await likes.like_post(user_id, body.post_id)
    return {
        "message": "Post liked successfully",
        "like": created.like,
        "like_count": created.like_count,
    }


@router.delete("/{post_id}")
async def unlike_post(
    post_id: int,
    user_id: int = Depends(current_user_id),
    likes: LikeCounter = Depends(get_likes),
):
    if not await likes.unlike_post(user_id, post_id):
        raise NotFound("like")
    like_count = await likes.get_like_count(post_id)
    return {"message": "Post unliked successfully", "like_count": like_count}


@router.get("/post/{post_id}")
async def list_post_likes(
    post_id: int,
    window: PageWindow = Depends(page_window),
    likes: LikeCounter = Depends(get_likes),
):
    page = await likes.list_post_likers(post_id, window.offset, window.limit)
    return paged(page, window)


@router.get("/user/{user_id}")
async def list_user_likes(
    user_id: int,
    window: PageWindow = Depends(page_window),
    likes: LikeCounter = Depends(get_likes),
):
    page = await likes.list_user_liked_posts(user_id, window.offset, window.limit)
    return paged(page, window)


@router.get("/status/{post_id}", response_model=LikeStatus)
async def like_status(
    post_id: int,
    user_id: int = Depends(current_user_id),
    likes: LikeCounter = Depends(get_likes),
):
    return await likes.like_status(user_id, post_id)
