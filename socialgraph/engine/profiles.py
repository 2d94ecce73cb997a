"""
Profile aggregator: one user record plus its graph and content counters.
"""
import asyncio
from typing import Any, Mapping, Optional, Union

from sqlalchemy import func, select, update

from socialgraph.engine.follows import FollowGraph, count_followers, count_following
from socialgraph.errors import Conflict, NotFound, UniqueViolation, ValidationError
from socialgraph.models import Post, User
from socialgraph.schemas import ProfileResponse, ProfileUpdate
from socialgraph.store import StoreGateway
from socialgraph.telemetry import EventSink, traced

_PROFILE_COLUMNS = (
    User.id,
    User.username,
    User.email,
    User.display_name,
    User.bio,
    User.avatar_url,
    User.created_at,
)


def _select_user(user_id: int):
    return select(*_PROFILE_COLUMNS).where(User.id == user_id, User.is_deleted.is_(False))


class ProfileAggregator:
    def __init__(
        self,
        gateway: StoreGateway,
        follows: FollowGraph,
        events: Optional[EventSink] = None,
    ) -> None:
        self.gateway = gateway
        self.follows = follows
        self.events = events or EventSink("profiles")

    async def _counts(self, user_id: int) -> dict:
        posts_count = (
            select(func.count())
            .select_from(Post)
            .where(Post.user_id == user_id, Post.is_deleted.is_(False))
        )
        return await self.gateway.fetch_one(
            select(
                count_following(user_id).scalar_subquery().label("following_count"),
                count_followers(user_id).scalar_subquery().label("followers_count"),
                posts_count.scalar_subquery().label("posts_count"),
            )
        )

    @traced("profiles.get")
    async def get_profile(
        self, user_id: int, requesting_user_id: Optional[int] = None
    ) -> Optional[ProfileResponse]:
        """
        Build the profile view for ``user_id``.

        The base record, the counters and (when a requester is given) the
        follow flag are independent reads and go out together. ``is_following``
        is left unset without a requester, so ``model_dump(exclude_unset=True)``
        omits it.
        """
        reads = [self.gateway.fetch_one(_select_user(user_id)), self._counts(user_id)]
        if requesting_user_id is not None:
            reads.append(self.follows.is_following(requesting_user_id, user_id))
        user, counts, *flag = await asyncio.gather(*reads)

        if user is None:
            self.events.emit("profile_missing", user_id=user_id)
            return None

        fields = {**user, **counts}
        if flag:
            fields["is_following"] = flag[0]
        return ProfileResponse(**fields)

    @traced("profiles.update")
    async def update_profile(
        self, user_id: int, fields: Union[ProfileUpdate, Mapping[str, Any]]
    ) -> ProfileResponse:
        if not isinstance(fields, ProfileUpdate):
            fields = ProfileUpdate.from_fields(fields)
        values = fields.to_values()
        if not values:
            raise ValidationError("no valid fields")

        try:
            matched = await self.gateway.execute(
                update(User)
                .where(User.id == user_id, User.is_deleted.is_(False))
                .values(**values)
            )
        except UniqueViolation as exc:
            raise Conflict("email taken") from exc
        if not matched:
            raise NotFound("user")

        self.events.emit("profile_updated", user_id=user_id, fields=sorted(values))
        profile = await self.get_profile(user_id)
        if profile is None:
            # Soft-deleted between the write and the re-read
            raise NotFound("user")
        return profile
