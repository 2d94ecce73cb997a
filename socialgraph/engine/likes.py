"""
Like counter.

(user_id, post_id) is the primary key of the likes table, so the store
decides whether a like already exists: a duplicate insert comes back as a
UniqueViolation and is reported as Conflict("already liked"). There is no
separate existence check before the insert, and therefore no race window
between check and write.
"""
import asyncio
from typing import Optional

from sqlalchemy import delete, func, insert, select

from socialgraph.engine.pagination import PageWindow
from socialgraph.engine.posts import PostStore
from socialgraph.errors import Conflict, ForeignKeyViolation, NotFound, UniqueViolation
from socialgraph.models import Like, Post, User
from socialgraph.schemas import (
    LikeCreated,
    LikedPost,
    LikedPostPage,
    LikeResponse,
    Liker,
    LikerPage,
    LikeStatus,
)
from socialgraph.store import StoreGateway
from socialgraph.telemetry import EventSink, traced


def _count_likes(post_id: int):
    return select(func.count()).select_from(Like).where(Like.post_id == post_id)


class LikeCounter:
    def __init__(
        self,
        gateway: StoreGateway,
        posts: PostStore,
        events: Optional[EventSink] = None,
    ) -> None:
        self.gateway = gateway
        self.posts = posts
        self.events = events or EventSink("likes")

    async def _require_post(self, post_id: int) -> None:
        if await self.posts.get_post(post_id) is None:
            raise NotFound("post")

    @traced("likes.like")
    async def like_post(self, user_id: int, post_id: int) -> LikeCreated:
        await self._require_post(post_id)
        try:
            async with self.gateway.transaction() as unit:
                await unit.execute(insert(Like).values(user_id=user_id, post_id=post_id))
                row = await unit.fetch_one(
                    select(Like.user_id, Like.post_id, Like.created_at).where(
                        Like.user_id == user_id, Like.post_id == post_id
                    )
                )
                like_count = await unit.scalar(_count_likes(post_id))
        except UniqueViolation as exc:
            self.events.warning("like_conflict", user_id=user_id, post_id=post_id)
            raise Conflict("already liked") from exc
        except ForeignKeyViolation as exc:
            raise NotFound("user") from exc

        self.events.emit("post_liked", user_id=user_id, post_id=post_id, like_count=like_count)
        return LikeCreated(like=LikeResponse.model_validate(row), like_count=like_count)

    @traced("likes.unlike")
    async def unlike_post(self, user_id: int, post_id: int) -> bool:
        await self._require_post(post_id)
        removed = await self.gateway.execute(
            delete(Like).where(Like.user_id == user_id, Like.post_id == post_id)
        )
        if removed:
            self.events.emit("post_unliked", user_id=user_id, post_id=post_id)
        return removed > 0

    @traced("likes.has_liked")
    async def has_liked(self, user_id: int, post_id: int) -> bool:
        row = await self.gateway.fetch_one(
            select(Like.user_id).where(Like.user_id == user_id, Like.post_id == post_id)
        )
        return row is not None

    @traced("likes.count")
    async def get_like_count(self, post_id: int) -> int:
        return await self.gateway.scalar(_count_likes(post_id))

    @traced("likes.status")
    async def like_status(self, user_id: int, post_id: int) -> LikeStatus:
        await self._require_post(post_id)
        liked, like_count = await asyncio.gather(
            self.has_liked(user_id, post_id),
            self.get_like_count(post_id),
        )
        return LikeStatus(post_id=post_id, user_has_liked=liked, like_count=like_count)

    @traced("likes.list_post_likers")
    async def list_post_likers(self, post_id: int, offset: int, limit: int) -> LikerPage:
        window = PageWindow.of(offset, limit)
        await self._require_post(post_id)
        rows, total = await asyncio.gather(
            self.gateway.fetch_all(
                select(Like.user_id, Like.created_at, User.username, User.display_name)
                .select_from(Like)
                .join(User, User.id == Like.user_id)
                .where(Like.post_id == post_id)
                .order_by(Like.created_at.desc(), Like.user_id.desc())
                .limit(window.limit)
                .offset(window.offset)
            ),
            self.gateway.scalar(_count_likes(post_id)),
        )
        return LikerPage(
            likes=[Liker.model_validate(r) for r in rows],
            **window.page_fields(total),
        )

    @traced("likes.list_user_liked_posts")
    async def list_user_liked_posts(
        self, user_id: int, offset: int, limit: int
    ) -> LikedPostPage:
        window = PageWindow.of(offset, limit)
        visible = (Like.user_id == user_id, Post.is_deleted.is_(False))
        rows, total = await asyncio.gather(
            self.gateway.fetch_all(
                select(
                    Like.user_id,
                    Like.post_id,
                    Like.created_at,
                    Post.content,
                    Post.media_url,
                    Post.created_at.label("post_created_at"),
                    Post.user_id.label("author_id"),
                    User.username,
                    User.display_name,
                )
                .select_from(Like)
                .join(Post, Post.id == Like.post_id)
                .join(User, User.id == Post.user_id)
                .where(*visible)
                .order_by(Like.created_at.desc(), Like.post_id.desc())
                .limit(window.limit)
                .offset(window.offset)
            ),
            self.gateway.scalar(
                select(func.count())
                .select_from(Like)
                .join(Post, Post.id == Like.post_id)
                .where(*visible)
            ),
        )
        return LikedPostPage(
            likes=[LikedPost.model_validate(r) for r in rows],
            **window.page_fields(total),
        )
