import pytest
from sqlalchemy import update

from socialgraph.errors import NotFound, NotFoundOrUnauthorized, ValidationError
from socialgraph.models import User
from socialgraph.schemas import PostUpdate


@pytest.mark.asyncio
async def test_create_post_defaults(posts, make_user):
    alice = await make_user("alice", display_name="Alice")

    post = await posts.create_post(alice, "hello world")

    assert post.user_id == alice
    assert post.username == "alice"
    assert post.display_name == "Alice"
    assert post.comments_enabled is True
    assert post.like_count == 0
    assert post.comment_count == 0
    assert posts.events.names() == ["post_created"]


@pytest.mark.asyncio
async def test_create_post_for_unknown_user(posts):
    with pytest.raises(NotFound) as excinfo:
        await posts.create_post(999, "orphan")
    assert excinfo.value.reason == "user"


@pytest.mark.asyncio
async def test_deleted_post_is_invisible(posts, make_user):
    alice = await make_user()
    post = await posts.create_post(alice, "short lived")

    assert await posts.delete_post(post.id, alice) is True

    assert await posts.get_post(post.id) is None
    page = await posts.list_posts_by_user(alice, limit=20, offset=0)
    assert page.posts == []
    assert page.total == 0


@pytest.mark.asyncio
async def test_delete_requires_owner_and_happens_once(posts, make_user):
    alice = await make_user()
    bob = await make_user()
    post = await posts.create_post(alice, "mine")

    assert await posts.delete_post(post.id, bob) is False
    assert await posts.get_post(post.id) is not None
    assert await posts.delete_post(post.id, alice) is True
    assert await posts.delete_post(post.id, alice) is False


@pytest.mark.asyncio
async def test_list_posts_by_user_newest_first(posts, make_user):
    alice = await make_user()
    bob = await make_user()
    ids = [(await posts.create_post(alice, f"post {i}")).id for i in range(5)]
    await posts.create_post(bob, "not alice")

    first = await posts.list_posts_by_user(alice, limit=3, offset=0)
    rest = await posts.list_posts_by_user(alice, limit=3, offset=3)

    assert [p.id for p in first.posts] == ids[::-1][:3]
    assert first.total == 5
    assert first.has_more is True
    assert [p.id for p in rest.posts] == ids[::-1][3:]
    assert rest.has_more is False


@pytest.mark.asyncio
async def test_update_post_applies_allowed_fields(posts, make_user):
    alice = await make_user()
    post = await posts.create_post(alice, "draft", media_url="https://cdn/x.png")

    updated = await posts.update_post(
        post.id, alice, {"content": "final", "media_url": None, "user_id": 42}
    )

    assert updated.content == "final"
    assert updated.media_url is None
    assert updated.user_id == alice
    assert updated.updated_at is not None


@pytest.mark.asyncio
async def test_update_post_without_known_fields(posts, make_user):
    alice = await make_user()
    post = await posts.create_post(alice, "draft")

    with pytest.raises(ValidationError) as excinfo:
        await posts.update_post(post.id, alice, {"irrelevantField": "x"})
    assert excinfo.value.reason == "no valid fields"

    with pytest.raises(ValidationError):
        await posts.update_post(post.id, alice, PostUpdate())


@pytest.mark.asyncio
async def test_update_post_by_non_owner(posts, make_user):
    alice = await make_user()
    bob = await make_user()
    post = await posts.create_post(alice, "draft")

    with pytest.raises(NotFoundOrUnauthorized):
        await posts.update_post(post.id, bob, {"content": "hijacked"})

    assert (await posts.get_post(post.id)).content == "draft"


@pytest.mark.asyncio
async def test_feed_contains_followed_authors_only(posts, follows, make_user):
    alice = await make_user()
    bob = await make_user()
    carol = await make_user()
    await follows.follow_user(alice, bob)
    older = await posts.create_post(bob, "from bob")
    await posts.create_post(carol, "from carol")
    newer = await posts.create_post(bob, "bob again")
    deleted = await posts.create_post(bob, "gone")
    await posts.delete_post(deleted.id, bob)

    feed = await posts.list_feed(alice, offset=0, limit=20)

    assert [p.id for p in feed.posts] == [newer.id, older.id]
    assert feed.total == 2
    assert feed.has_more is False


@pytest.mark.asyncio
async def test_create_post_for_deleted_user(posts, gateway, make_user):
    gone = await make_user()
    await gateway.execute(update(User).where(User.id == gone).values(is_deleted=True))

    with pytest.raises(NotFound) as excinfo:
        await posts.create_post(gone, "from beyond")
    assert excinfo.value.reason == "user"

    page = await posts.list_posts_by_user(gone, limit=20, offset=0)
    assert page.total == 0
