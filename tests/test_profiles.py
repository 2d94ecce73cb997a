import pytest

from socialgraph.errors import Conflict, NotFound, ValidationError


@pytest.mark.asyncio
async def test_profile_counts_and_follow_flag(profiles, follows, posts, make_user):
    user = await make_user("subject", bio="hi")
    followers = [await make_user() for _ in range(3)]
    followed = [await make_user() for _ in range(2)]
    stranger = await make_user()
    for f in followers:
        await follows.follow_user(f, user)
    for f in followed:
        await follows.follow_user(user, f)
    for i in range(5):
        await posts.create_post(user, f"post {i}")

    as_follower = await profiles.get_profile(user, followers[0])
    as_stranger = await profiles.get_profile(user, stranger)
    anonymous = await profiles.get_profile(user)

    assert as_follower.followers_count == 3
    assert as_follower.following_count == 2
    assert as_follower.posts_count == 5
    assert as_follower.bio == "hi"
    assert as_follower.is_following is True
    assert as_stranger.is_following is False
    assert "is_following" not in anonymous.model_dump(exclude_unset=True)


@pytest.mark.asyncio
async def test_profile_of_missing_user(profiles):
    assert await profiles.get_profile(31337) is None
    assert "profile_missing" in profiles.events.names()


@pytest.mark.asyncio
async def test_update_profile(profiles, make_user):
    user = await make_user("ed", bio="old")

    profile = await profiles.update_profile(
        user, {"display_name": "Ed", "bio": None, "username": "hacker"}
    )

    assert profile.display_name == "Ed"
    assert profile.bio is None
    assert profile.username == "ed"


@pytest.mark.asyncio
async def test_update_profile_rejects_bad_input(profiles, make_user):
    user = await make_user()

    with pytest.raises(ValidationError) as excinfo:
        await profiles.update_profile(user, {"email": "not-an-email"})
    assert excinfo.value.reason == "invalid email"

    with pytest.raises(ValidationError) as excinfo:
        await profiles.update_profile(user, {"followers_count": 1_000_000})
    assert excinfo.value.reason == "no valid fields"


@pytest.mark.asyncio
async def test_update_profile_email_taken(profiles, make_user):
    await make_user("first", email="taken@example.com")
    second = await make_user("second")

    with pytest.raises(Conflict):
        await profiles.update_profile(second, {"email": "taken@example.com"})


@pytest.mark.asyncio
async def test_update_profile_missing_user(profiles):
    with pytest.raises(NotFound):
        await profiles.update_profile(777, {"bio": "ghost"})


@pytest.mark.asyncio
async def test_update_profile_when_reread_finds_nothing(profiles, make_user, monkeypatch):
    user = await make_user()

    async def vanished(user_id, requesting_user_id=None):
        return None

    monkeypatch.setattr(profiles, "get_profile", vanished)

    with pytest.raises(NotFound) as excinfo:
        await profiles.update_profile(user, {"bio": "still here?"})
    assert excinfo.value.reason == "user"
