"""
Follow graph: directed follower → followed edges.

Self-follows are refused before touching the store (the check constraint on
follows is a backstop, not the contract). Duplicate edges are refused by the
composite primary key and surface as Conflict("already following").
"""
import asyncio
from typing import Optional

from sqlalchemy import delete, func, insert, select

from socialgraph.engine.pagination import PageWindow
from socialgraph.errors import Conflict, Forbidden, ForeignKeyViolation, NotFound, UniqueViolation
from socialgraph.models import Follow, User
from socialgraph.schemas import (
    FollowCounts,
    FollowCreated,
    FollowedUser,
    FollowPage,
    FollowResponse,
)
from socialgraph.store import StoreGateway
from socialgraph.telemetry import EventSink, traced


def _active_user():
    return User.is_deleted.is_(False)


def count_following(user_id: int):
    return (
        select(func.count())
        .select_from(Follow)
        .join(User, User.id == Follow.followed_id)
        .where(Follow.follower_id == user_id, _active_user())
    )


def count_followers(user_id: int):
    return (
        select(func.count())
        .select_from(Follow)
        .join(User, User.id == Follow.follower_id)
        .where(Follow.followed_id == user_id, _active_user())
    )


class FollowGraph:
    def __init__(self, gateway: StoreGateway, events: Optional[EventSink] = None) -> None:
        self.gateway = gateway
        self.events = events or EventSink("follows")

    @traced("follows.follow")
    async def follow_user(self, follower_id: int, followed_id: int) -> FollowCreated:
        if follower_id == followed_id:
            self.events.warning("follow_rejected", user_id=follower_id, reason="self_follow")
            raise Forbidden("self-follow")

        target = await self.gateway.fetch_one(
            select(User.id).where(User.id == followed_id, _active_user())
        )
        if target is None:
            raise NotFound("user")

        try:
            async with self.gateway.transaction() as unit:
                await unit.execute(
                    insert(Follow).values(follower_id=follower_id, followed_id=followed_id)
                )
                row = await unit.fetch_one(
                    select(Follow.follower_id, Follow.followed_id, Follow.created_at).where(
                        Follow.follower_id == follower_id,
                        Follow.followed_id == followed_id,
                    )
                )
                followers_count = await unit.scalar(count_followers(followed_id))
        except UniqueViolation as exc:
            self.events.warning(
                "follow_conflict", follower_id=follower_id, followed_id=followed_id
            )
            raise Conflict("already following") from exc
        except ForeignKeyViolation as exc:
            # Unknown follower; the target was checked above
            raise NotFound("user") from exc

        self.events.emit("user_followed", follower_id=follower_id, followed_id=followed_id)
        return FollowCreated(
            follow=FollowResponse.model_validate(row),
            followers_count=followers_count,
        )

    @traced("follows.unfollow")
    async def unfollow_user(self, follower_id: int, followed_id: int) -> bool:
        removed = await self.gateway.execute(
            delete(Follow).where(
                Follow.follower_id == follower_id, Follow.followed_id == followed_id
            )
        )
        if removed:
            self.events.emit("user_unfollowed", follower_id=follower_id, followed_id=followed_id)
        return removed > 0

    async def _list_edges(self, user_id: int, offset: int, limit: int, outgoing: bool) -> FollowPage:
        window = PageWindow.of(offset, limit)
        if outgoing:
            anchor, other, count = Follow.follower_id, Follow.followed_id, count_following
        else:
            anchor, other, count = Follow.followed_id, Follow.follower_id, count_followers

        rows, total = await asyncio.gather(
            self.gateway.fetch_all(
                select(
                    User.id,
                    User.username,
                    User.display_name,
                    User.avatar_url,
                    Follow.created_at.label("followed_since"),
                )
                .select_from(Follow)
                .join(User, User.id == other)
                .where(anchor == user_id, _active_user())
                .order_by(Follow.created_at.desc(), other.desc())
                .limit(window.limit)
                .offset(window.offset)
            ),
            self.gateway.scalar(count(user_id)),
        )
        return FollowPage(
            users=[FollowedUser.model_validate(r) for r in rows],
            **window.page_fields(total),
        )

    @traced("follows.list_following")
    async def list_following(self, user_id: int, offset: int, limit: int) -> FollowPage:
        return await self._list_edges(user_id, offset, limit, outgoing=True)

    @traced("follows.list_followers")
    async def list_followers(self, user_id: int, offset: int, limit: int) -> FollowPage:
        return await self._list_edges(user_id, offset, limit, outgoing=False)

    @traced("follows.counts")
    async def get_follow_counts(self, user_id: int) -> FollowCounts:
        row = await self.gateway.fetch_one(
            select(
                count_following(user_id).scalar_subquery().label("following_count"),
                count_followers(user_id).scalar_subquery().label("followers_count"),
            )
        )
        return FollowCounts.model_validate(row)

    @traced("follows.is_following")
    async def is_following(self, follower_id: int, followed_id: int) -> bool:
        row = await self.gateway.fetch_one(
            select(Follow.follower_id).where(
                Follow.follower_id == follower_id, Follow.followed_id == followed_id
            )
        )
        return row is not None
