"""
User graph & profile endpoints:
  POST   /users/follow             — follow another user (body: {"user_id": ...})
  DELETE /users/unfollow/{user_id} — unfollow
  GET    /users/following          — accounts the caller follows
  GET    /users/followers          — accounts following the caller
  GET    /users/stats              — caller's follow counts
  GET    /users/profile/{user_id}  — profile view (is_following when authenticated)
  PUT    /users/profile            — update the caller's profile
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, status

from socialgraph.deps import (
    current_user_id,
    get_follows,
    get_profiles,
    optional_user_id,
    page_window,
    paged,
)
from socialgraph.engine.follows import FollowGraph
from socialgraph.engine.pagination import PageWindow
from socialgraph.engine.profiles import ProfileAggregator
from socialgraph.errors import NotFound
from socialgraph.schemas import FollowCounts, FollowRequest, ProfileUpdate

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/follow", status_code=status.HTTP_201_CREATED)
async def follow_user(
    body: FollowRequest,
    user_id: int = Depends(current_user_id),
    follows: FollowGraph = Depends(get_follows),
):
    created = await follows.follow_user(user_id, body.user_id)
    logger.info("%s followed %s", user_id, body.user_id)
    return {
        "message": "User followed successfully",
        "follow": created.follow,
        "followers_count": created.followers_count,
    }


@router.delete("/unfollow/{followed_id}")
async def unfollow_user(
    followed_id: int,
    user_id: int = Depends(current_user_id),
    follows: FollowGraph = Depends(get_follows),
):
    if not await follows.unfollow_user(user_id, followed_id):
        raise NotFound("follow")
    counts = await follows.get_follow_counts(followed_id)
    return {
        "message": "User unfollowed successfully",
        "followers_count": counts.followers_count,
    }


@router.get("/following")
async def list_following(
    user_id: int = Depends(current_user_id),
    window: PageWindow = Depends(page_window),
    follows: FollowGraph = Depends(get_follows),
):
    page = await follows.list_following(user_id, window.offset, window.limit)
    return paged(page, window)


@router.get("/followers")
async def list_followers(
    user_id: int = Depends(current_user_id),
    window: PageWindow = Depends(page_window),
    follows: FollowGraph = Depends(get_follows),
):
    page = await follows.list_followers(user_id, window.offset, window.limit)
    return paged(page, window)


@router.get("/stats", response_model=FollowCounts)
async def follow_stats(
    user_id: int = Depends(current_user_id),
    follows: FollowGraph = Depends(get_follows),
):
    return await follows.get_follow_counts(user_id)


@router.get("/profile/{user_id}")
async def get_profile(
    user_id: int,
    requesting_user_id: Optional[int] = Depends(optional_user_id),
    profiles: ProfileAggregator = Depends(get_profiles),
):
    profile = await profiles.get_profile(user_id, requesting_user_id)
    if profile is None:
        raise NotFound("user")
    return {"user": profile.model_dump(exclude_unset=True)}


@router.put("/profile")
async def update_profile(
    body: dict,
    user_id: int = Depends(current_user_id),
    profiles: ProfileAggregator = Depends(get_profiles),
):
    profile = await profiles.update_profile(user_id, ProfileUpdate.from_fields(body))
    return {"message": "Profile updated successfully", "user": profile.model_dump(exclude_unset=True)}
