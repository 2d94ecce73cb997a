"""
Content store: post lifecycle, ownership checks and partial updates.

Posts are never physically removed. delete_post flips is_deleted and every
read path filters on it.
"""
import asyncio
from typing import Any, Mapping, Optional, Union

from sqlalchemy import func, insert, select, update

from socialgraph.engine.pagination import PageWindow
from socialgraph.errors import (
    ForeignKeyViolation,
    NotFound,
    NotFoundOrUnauthorized,
    ValidationError,
)
from socialgraph.models import Comment, Follow, Like, Post, User
from socialgraph.schemas import PostPage, PostResponse, PostUpdate
from socialgraph.store import StoreGateway
from socialgraph.telemetry import EventSink, traced


def _active(model):
    return model.is_deleted.is_(False)


def select_posts():
    """Active posts joined with author identity and their counters."""
    like_count = (
        select(func.count())
        .select_from(Like)
        .where(Like.post_id == Post.id)
        .correlate(Post)
        .scalar_subquery()
    )
    comment_count = (
        select(func.count())
        .select_from(Comment)
        .where(
            Comment.post_id == Post.id,
            Comment.parent_comment_id.is_(None),
            _active(Comment),
        )
        .correlate(Post)
        .scalar_subquery()
    )
    return (
        select(
            Post.id,
            Post.user_id,
            Post.content,
            Post.media_url,
            Post.comments_enabled,
            Post.created_at,
            Post.updated_at,
            User.username,
            User.display_name,
            like_count.label("like_count"),
            comment_count.label("comment_count"),
        )
        .select_from(Post)
        .join(User, User.id == Post.user_id)
        .where(_active(Post))
    )


class PostStore:
    def __init__(self, gateway: StoreGateway, events: Optional[EventSink] = None) -> None:
        self.gateway = gateway
        self.events = events or EventSink("posts")

    @traced("posts.create")
    async def create_post(
        self,
        owner_id: int,
        content: str,
        media_url: Optional[str] = None,
        comments_enabled: bool = True,
    ) -> PostResponse:
        try:
            async with self.gateway.transaction() as unit:
                post_id = await unit.insert(
                    insert(Post).values(
                        user_id=owner_id,
                        content=content,
                        media_url=media_url,
                        comments_enabled=comments_enabled,
                    )
                )
                row = await unit.fetch_one(select_posts().where(Post.id == post_id))
                if row is None:
                    # Author row soft-deleted; roll the insert back
                    raise NotFound("user")
        except ForeignKeyViolation as exc:
            raise NotFound("user") from exc

        self.events.emit("post_created", post_id=post_id, user_id=owner_id)
        return PostResponse.model_validate(row)

    @traced("posts.get")
    async def get_post(self, post_id: int) -> Optional[PostResponse]:
        row = await self.gateway.fetch_one(select_posts().where(Post.id == post_id))
        return PostResponse.model_validate(row) if row else None

    @traced("posts.list_by_user")
    async def list_posts_by_user(self, user_id: int, limit: int, offset: int) -> PostPage:
        window = PageWindow.of(offset, limit)
        rows, total = await asyncio.gather(
            self.gateway.fetch_all(
                select_posts()
                .where(Post.user_id == user_id)
                .order_by(Post.created_at.desc(), Post.id.desc())
                .limit(window.limit)
                .offset(window.offset)
            ),
            self.gateway.scalar(
                select(func.count())
                .select_from(Post)
                .where(Post.user_id == user_id, _active(Post))
            ),
        )
        return PostPage(
            posts=[PostResponse.model_validate(r) for r in rows],
            **window.page_fields(total),
        )

    @traced("posts.feed")
    async def list_feed(self, user_id: int, offset: int, limit: int) -> PostPage:
        """Chronological posts from the accounts ``user_id`` follows."""
        window = PageWindow.of(offset, limit)
        followed = select(Follow.followed_id).where(Follow.follower_id == user_id)
        rows, total = await asyncio.gather(
            self.gateway.fetch_all(
                select_posts()
                .where(Post.user_id.in_(followed), _active(User))
                .order_by(Post.created_at.desc(), Post.id.desc())
                .limit(window.limit)
                .offset(window.offset)
            ),
            self.gateway.scalar(
                select(func.count())
                .select_from(Post)
                .join(User, User.id == Post.user_id)
                .where(Post.user_id.in_(followed), _active(Post), _active(User))
            ),
        )
        return PostPage(
            posts=[PostResponse.model_validate(r) for r in rows],
            **window.page_fields(total),
        )

    @traced("posts.delete")
    async def delete_post(self, post_id: int, requester_id: int) -> bool:
        matched = await self.gateway.execute(
            update(Post)
            .where(Post.id == post_id, Post.user_id == requester_id, _active(Post))
            .values(is_deleted=True)
        )
        if matched:
            self.events.emit("post_deleted", post_id=post_id, user_id=requester_id)
        return matched > 0

    @traced("posts.update")
    async def update_post(
        self,
        post_id: int,
        requester_id: int,
        fields: Union[PostUpdate, Mapping[str, Any]],
    ) -> PostResponse:
        """
        Apply a partial update to an owned, active post.

        ``fields`` may be a PostUpdate or a raw mapping; anything outside
        content / media_url / comments_enabled is dropped. Raises
        ValidationError("no valid fields") when nothing is left to write and
        NotFoundOrUnauthorized when no owned active post matches.
        """
        if not isinstance(fields, PostUpdate):
            fields = PostUpdate.from_fields(fields)
        values = fields.to_values()
        if not values:
            raise ValidationError("no valid fields")

        async with self.gateway.transaction() as unit:
            matched = await unit.execute(
                update(Post)
                .where(Post.id == post_id, Post.user_id == requester_id, _active(Post))
                .values(**values)
            )
            if not matched:
                raise NotFoundOrUnauthorized()
            row = await unit.fetch_one(select_posts().where(Post.id == post_id))

        self.events.emit("post_updated", post_id=post_id, fields=sorted(values))
        return PostResponse.model_validate(row)
