"""
Post endpoints:
  POST   /posts                — create a post
  GET    /posts/feed           — chronological posts from followed users
  GET    /posts/user/{user_id} — a user's posts, newest first
  GET    /posts/{id}           — fetch a single post
  PATCH  /posts/{id}           — edit content / media / comments flag
  DELETE /posts/{id}           — soft delete
"""
import logging

from fastapi import APIRouter, Depends, status

from socialgraph.deps import current_user_id, get_posts, page_window, paged
from socialgraph.engine.pagination import PageWindow
from socialgraph.engine.posts import PostStore
from socialgraph.errors import NotFound, NotFoundOrUnauthorized
from socialgraph.schemas import PostCreate, PostResponse, PostUpdate

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_post(
    body: PostCreate,
    user_id: int = Depends(current_user_id),
    posts: PostStore = Depends(get_posts),
):
    post = await posts.create_post(
        owner_id=user_id,
        content=body.content,
        media_url=body.media_url,
        comments_enabled=body.comments_enabled,
    )
    logger.info("Post created: %s by user %s", post.id, user_id)
    return {"message": "Post created successfully", "post": post}


@router.get("/feed")
async def get_feed(
    user_id: int = Depends(current_user_id),
    window: PageWindow = Depends(page_window),
    posts: PostStore = Depends(get_posts),
):
    page = await posts.list_feed(user_id, window.offset, window.limit)
    return paged(page, window)


@router.get("/user/{user_id}")
async def list_user_posts(
    user_id: int,
    window: PageWindow = Depends(page_window),
    posts: PostStore = Depends(get_posts),
):
    page = await posts.list_posts_by_user(user_id, window.limit, window.offset)
    return paged(page, window)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(post_id: int, posts: PostStore = Depends(get_posts)):
    post = await posts.get_post(post_id)
    if post is None:
        raise NotFound("post")
    return post


@router.patch("/{post_id}")
async def update_post(
    post_id: int,
    body: dict,
    user_id: int = Depends(current_user_id),
    posts: PostStore = Depends(get_posts),
):
    # Raw body on purpose: PostUpdate.from_fields applies the allow-list
    post = await posts.update_post(post_id, user_id, PostUpdate.from_fields(body))
    return {"message": "Post updated successfully", "post": post}


@router.delete("/{post_id}")
async def delete_post(
    post_id: int,
    user_id: int = Depends(current_user_id),
    posts: PostStore = Depends(get_posts),
):
    if not await posts.delete_post(post_id, user_id):
        raise NotFoundOrUnauthorized()
    logger.info("Post %s deleted by user %s", post_id, user_id)
    return {"message": "Post deleted successfully"}
