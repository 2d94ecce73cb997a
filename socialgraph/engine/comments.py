"""
Comment thread engine.

Threads are two levels deep in every listing: top-level comments
(parent_comment_id IS NULL) and their direct replies. Replying to a reply is
rejected outright instead of being stored and never shown.

A comment moves Active → Deleted once; deleted comments are invisible to
every read and can no longer be edited.
"""
import asyncio
from typing import Optional

from sqlalchemy import func, insert, select, update
from sqlalchemy.orm import aliased

from socialgraph.engine.pagination import PageWindow
from socialgraph.engine.posts import PostStore
from socialgraph.errors import (
    Forbidden,
    ForeignKeyViolation,
    NotFound,
    NotFoundOrUnauthorized,
    ValidationError,
)
from socialgraph.models import Comment, User
from socialgraph.schemas import CommentCreated, CommentPage, CommentResponse, ReplyPage
from socialgraph.store import StoreGateway
from socialgraph.telemetry import EventSink, traced

NESTED_REPLY = "nested replies unsupported"


def _active():
    return Comment.is_deleted.is_(False)


def _select_comments(with_reply_count: bool = False):
    columns = [
        Comment.id,
        Comment.post_id,
        Comment.user_id,
        Comment.content,
        Comment.parent_comment_id,
        Comment.created_at,
        Comment.updated_at,
        User.username,
        User.display_name,
    ]
    if with_reply_count:
        reply = aliased(Comment)
        columns.append(
            select(func.count())
            .select_from(reply)
            .where(reply.parent_comment_id == Comment.id, reply.is_deleted.is_(False))
            .correlate(Comment)
            .scalar_subquery()
            .label("reply_count")
        )
    return (
        select(*columns)
        .select_from(Comment)
        .join(User, User.id == Comment.user_id)
        .where(_active())
    )


def _count_top_level(post_id: int):
    return (
        select(func.count())
        .select_from(Comment)
        .where(Comment.post_id == post_id, Comment.parent_comment_id.is_(None), _active())
    )


class CommentThreads:
    def __init__(
        self,
        gateway: StoreGateway,
        posts: PostStore,
        events: Optional[EventSink] = None,
    ) -> None:
        self.gateway = gateway
        self.posts = posts
        self.events = events or EventSink("comments")

    @traced("comments.create")
    async def create_comment(
        self,
        post_id: int,
        author_id: int,
        content: str,
        parent_comment_id: Optional[int] = None,
    ) -> CommentCreated:
        """
        Create a comment or a reply.

        Preconditions are checked in order and each fails differently:
          1. post exists and is active            → NotFound("post")
          2. post has comments enabled            → Forbidden("comments disabled")
          3. parent (if any) is active            → NotFound("parent")
             and belongs to the same post         → ValidationError("parent mismatch")
             and is itself top-level              → ValidationError(NESTED_REPLY)
        """
        post = await self.posts.get_post(post_id)
        if post is None:
            self.events.warning("comment_rejected", post_id=post_id, reason="post")
            raise NotFound("post")
        if not post.comments_enabled:
            self.events.warning("comment_rejected", post_id=post_id, reason="comments_disabled")
            raise Forbidden("comments disabled")

        if parent_comment_id is not None:
            parent = await self.get_comment(parent_comment_id)
            if parent is None:
                raise NotFound("parent")
            if parent.post_id != post_id:
                self.events.warning(
                    "comment_rejected",
                    post_id=post_id,
                    parent_comment_id=parent_comment_id,
                    reason="parent_mismatch",
                )
                raise ValidationError("parent mismatch")
            if parent.parent_comment_id is not None:
                raise ValidationError(NESTED_REPLY)

        try:
            async with self.gateway.transaction() as unit:
                comment_id = await unit.insert(
                    insert(Comment).values(
                        post_id=post_id,
                        user_id=author_id,
                        content=content,
                        parent_comment_id=parent_comment_id,
                    )
                )
                row = await unit.fetch_one(_select_comments().where(Comment.id == comment_id))
                if row is None:
                    raise NotFound("user")
                comment_count = await unit.scalar(_count_top_level(post_id))
        except ForeignKeyViolation as exc:
            raise NotFound("user") from exc

        self.events.emit(
            "comment_created",
            comment_id=comment_id,
            post_id=post_id,
            user_id=author_id,
            is_reply=parent_comment_id is not None,
        )
        return CommentCreated(
            comment=CommentResponse.model_validate(row),
            comment_count=comment_count,
        )

    @traced("comments.get")
    async def get_comment(self, comment_id: int) -> Optional[CommentResponse]:
        row = await self.gateway.fetch_one(_select_comments().where(Comment.id == comment_id))
        return CommentResponse.model_validate(row) if row else None

    @traced("comments.update")
    async def update_comment(
        self, comment_id: int, requester_id: int, content: str
    ) -> CommentResponse:
        async with self.gateway.transaction() as unit:
            matched = await unit.execute(
                update(Comment)
                .where(Comment.id == comment_id, Comment.user_id == requester_id, _active())
                .values(content=content)
            )
            if not matched:
                raise NotFoundOrUnauthorized()
            row = await unit.fetch_one(_select_comments().where(Comment.id == comment_id))

        self.events.emit("comment_updated", comment_id=comment_id, user_id=requester_id)
        return CommentResponse.model_validate(row)

    @traced("comments.delete")
    async def delete_comment(self, comment_id: int, requester_id: int) -> bool:
        matched = await self.gateway.execute(
            update(Comment)
            .where(Comment.id == comment_id, Comment.user_id == requester_id, _active())
            .values(is_deleted=True)
        )
        if matched:
            self.events.emit("comment_deleted", comment_id=comment_id, user_id=requester_id)
        return matched > 0

    @traced("comments.list_top_level")
    async def list_top_level_comments(
        self, post_id: int, offset: int, limit: int
    ) -> CommentPage:
        window = PageWindow.of(offset, limit)
        if await self.posts.get_post(post_id) is None:
            raise NotFound("post")

        rows, total = await asyncio.gather(
            self.gateway.fetch_all(
                _select_comments(with_reply_count=True)
                .where(Comment.post_id == post_id, Comment.parent_comment_id.is_(None))
                .order_by(Comment.created_at.asc(), Comment.id.asc())
                .limit(window.limit)
                .offset(window.offset)
            ),
            self.gateway.scalar(_count_top_level(post_id)),
        )
        return CommentPage(
            comments=[CommentResponse.model_validate(r) for r in rows],
            **window.page_fields(total),
        )

    @traced("comments.list_replies")
    async def list_replies(
        self, parent_comment_id: int, offset: int, limit: int
    ) -> ReplyPage:
        window = PageWindow.of(offset, limit)
        parent = await self.get_comment(parent_comment_id)
        if parent is None:
            raise NotFound("comment")
        if parent.parent_comment_id is not None:
            raise ValidationError(NESTED_REPLY)

        rows, total = await asyncio.gather(
            self.gateway.fetch_all(
                _select_comments()
                .where(Comment.parent_comment_id == parent_comment_id)
                .order_by(Comment.created_at.asc(), Comment.id.asc())
                .limit(window.limit)
                .offset(window.offset)
            ),
            self.gateway.scalar(
                select(func.count())
                .select_from(Comment)
                .where(Comment.parent_comment_id == parent_comment_id, _active())
            ),
        )
        return ReplyPage(
            replies=[CommentResponse.model_validate(r) for r in rows],
            **window.page_fields(total),
        )

    @traced("comments.count")
    async def get_comment_count(self, post_id: int) -> int:
        """Active top-level comments; replies are counted per comment."""
        return await self.gateway.scalar(_count_top_level(post_id))
