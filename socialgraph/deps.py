"""
FastAPI dependencies: caller identity, paging and engine components.

Token verification lives in front of this service; by the time a request
arrives the authenticated user id is carried in the X-User-Id header.
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException, Query, status

from socialgraph.config import settings
from socialgraph.database import get_gateway
from socialgraph.engine.comments import CommentThreads
from socialgraph.engine.follows import FollowGraph
from socialgraph.engine.likes import LikeCounter
from socialgraph.engine.pagination import PageWindow
from socialgraph.engine.posts import PostStore
from socialgraph.engine.profiles import ProfileAggregator
from socialgraph.store import StoreGateway


def current_user_id(x_user_id: Optional[int] = Header(None, gt=0)) -> int:
    if x_user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return x_user_id


def optional_user_id(x_user_id: Optional[int] = Header(None, gt=0)) -> Optional[int]:
    return x_user_id


def page_window(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
) -> PageWindow:
    return PageWindow.from_page(page, limit)


def reply_window(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.reply_page_size, ge=1, le=settings.max_page_size),
) -> PageWindow:
    return PageWindow.from_page(page, limit)


def get_posts(gateway: StoreGateway = Depends(get_gateway)) -> PostStore:
    return PostStore(gateway)


def get_comments(
    gateway: StoreGateway = Depends(get_gateway),
    posts: PostStore = Depends(get_posts),
) -> CommentThreads:
    return CommentThreads(gateway, posts)


def get_likes(
    gateway: StoreGateway = Depends(get_gateway),
    posts: PostStore = Depends(get_posts),
) -> LikeCounter:
    return LikeCounter(gateway, posts)


def get_follows(gateway: StoreGateway = Depends(get_gateway)) -> FollowGraph:
    return FollowGraph(gateway)


def get_profiles(
    gateway: StoreGateway = Depends(get_gateway),
    follows: FollowGraph = Depends(get_follows),
) -> ProfileAggregator:
    return ProfileAggregator(gateway, follows)


def paged(page_model, window: PageWindow) -> dict:
    """Serialise an engine page and echo the caller's page/limit."""
    body = page_model.model_dump()
    body["page"] = window.offset // window.limit + 1
    body["limit"] = window.limit
    return body
