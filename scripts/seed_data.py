#!/usr/bin/env python3
"""
Seed script — creates a realistic dataset for trying out the engine.

Creates:
  • 10 users
  • A follow graph (each user follows 4 others)
  • 5 posts per user (50 total)
  • Some likes, comments and replies across posts

Users are normally provisioned by the account service; here they are
inserted straight into the users table. Everything else goes through the
engine components so the same invariants apply.

  python scripts/seed_data.py --database-url sqlite+aiosqlite:///./social.db

All IDs are printed so you can use them in curl commands.
"""
import argparse
import asyncio
import random

from sqlalchemy import insert

from socialgraph.database import dispose_engine, init_db, init_engine
from socialgraph.engine.comments import CommentThreads
from socialgraph.engine.follows import FollowGraph
from socialgraph.engine.likes import LikeCounter
from socialgraph.engine.posts import PostStore
from socialgraph.errors import Conflict
from socialgraph.models import User
from socialgraph.store import StoreGateway


BASE_USERS = [
    ("alice_ai", "Alice Chen"),
    ("bob_builder", "Bob Martinez"),
    ("carol_codes", "Carol Singh"),
    ("dave_designs", "Dave Kim"),
    ("eve_engineer", "Eve Johnson"),
    ("frank_feeds", "Frank Williams"),
    ("grace_graphs", "Grace Li"),
    ("henry_hpc", "Henry Brown"),
    ("iris_infra", "Iris Davis"),
    ("jack_ml", "Jack Wilson"),
]

SAMPLE_POSTS = [
    "Just shipped a new feature to production 🚀 Zero downtime deploys are beautiful.",
    "Composite primary keys make duplicate likes impossible, not just unlikely.",
    "Soft deletes: the row stays for the audit trail, every read path filters it.",
    "Offset pagination is fine until page 500. We are not at page 500.",
    "Two-level comment threads cover 99% of real conversations.",
    "Check-then-act is a race. Let the unique constraint be the check.",
    "Profile pages are three independent reads. Fire them together.",
    "OpenTelemetry traces finally connected to Jaeger. The waterfall diagram is so satisfying.",
    "Follow graphs are just directed edges until someone follows themselves.",
    "Prometheus metrics: the difference between knowing and guessing in production.",
    "FastAPI async endpoints are a joy. Concurrent reads in a single gather.",
    "Grafana dashboards are the first thing I build for any new service.",
]

SAMPLE_COMMENTS = [
    "Great point!",
    "Couldn't agree more.",
    "Do you have a write-up on this?",
    "We hit the same issue last quarter.",
    "Bookmarking this.",
]


async def create_users(gateway: StoreGateway) -> list[int]:
    user_ids: list[int] = []
    for username, display_name in BASE_USERS:
        uid = await gateway.insert(
            insert(User).values(
                username=username,
                email=f"{username}@example.com",
                display_name=display_name,
            )
        )
        user_ids.append(uid)
        print(f"  ✓ {username} ({uid})")
    return user_ids


async def main(database_url: str) -> None:
    engine = init_engine(database_url)
    await init_db(engine)

    gateway = StoreGateway(engine)
    posts = PostStore(gateway)
    follows = FollowGraph(gateway)
    likes = LikeCounter(gateway, posts)
    comments = CommentThreads(gateway, posts)

    try:
        # ── Create users ─────────────────────────────────────────────────
        print("Creating users...")
        user_ids = await create_users(gateway)

        # ── Create follow graph ───────────────────────────────────────────
        print("\nCreating follow relationships...")
        edges = 0
        for follower_id in user_ids:
            others = [u for u in user_ids if u != follower_id]
            for followed_id in random.sample(others, k=min(4, len(others))):
                await follows.follow_user(follower_id, followed_id)
                edges += 1
        print(f"  ✓ {edges} follow edges created")

        # ── Create posts ──────────────────────────────────────────────────
        print("\nCreating posts...")
        post_ids: list[int] = []
        pool = SAMPLE_POSTS * 5
        random.shuffle(pool)
        for idx, user_id in enumerate(u for u in user_ids for _ in range(5)):
            post = await posts.create_post(user_id, pool[idx % len(pool)])
            post_ids.append(post.id)
        print(f"  ✓ {len(post_ids)} posts created")

        # ── Likes, comments, replies ──────────────────────────────────────
        print("\nAdding likes and comments...")
        like_total = comment_total = 0
        for post_id in post_ids:
            for user_id in random.sample(user_ids, k=random.randint(0, 5)):
                try:
                    await likes.like_post(user_id, post_id)
                    like_total += 1
                except Conflict:
                    pass
            for user_id in random.sample(user_ids, k=random.randint(0, 3)):
                created = await comments.create_comment(
                    post_id, user_id, random.choice(SAMPLE_COMMENTS)
                )
                comment_total += 1
                if random.random() < 0.3:
                    await comments.create_comment(
                        post_id,
                        random.choice(user_ids),
                        random.choice(SAMPLE_COMMENTS),
                        parent_comment_id=created.comment.id,
                    )
                    comment_total += 1
        print(f"  ✓ {like_total} likes, {comment_total} comments added")
    finally:
        await dispose_engine()

    # ── Print summary ─────────────────────────────────────────────────────
    print("\n" + "=" * 60)
    print("Seed complete! Here are some commands to try:\n")
    u = user_ids[0]
    print(f"# Chronological feed for user '{BASE_USERS[0][0]}':")
    print(f"  curl -s -H 'X-User-Id: {u}' 'http://localhost:8000/posts/feed' | python3 -m json.tool\n")
    print(f"# Profile as seen by user {user_ids[1]}:")
    print(f"  curl -s -H 'X-User-Id: {user_ids[1]}' 'http://localhost:8000/users/profile/{u}'\n")
    print("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the social graph store")
    parser.add_argument(
        "--database-url",
        default="sqlite+aiosqlite:///./social.db",
        help="SQLAlchemy async database URL",
    )
    args = parser.parse_args()
    asyncio.run(main(args.database_url))
