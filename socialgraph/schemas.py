"""
Pydantic request / response schemas.
Kept separate from ORM models to avoid coupling transport to storage.
"""
from datetime import datetime
from typing import Any, ClassVar, Mapping, Optional

import pydantic
from pydantic import BaseModel, Field

from socialgraph.errors import ValidationError

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


class _AllowListedUpdate(BaseModel):
    """
    Explicit optional-field struct for partial updates.

    Only fields declared on the subclass can ever reach an UPDATE statement;
    building the struct is the validation step.
    """

    # Fields that may be explicitly cleared with None
    nullable: ClassVar[frozenset] = frozenset()

    model_config = pydantic.ConfigDict(extra="ignore")

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any]):
        allowed = {k: v for k, v in fields.items() if k in cls.model_fields}
        try:
            update = cls(**allowed)
        except pydantic.ValidationError as exc:
            raise ValidationError(cls.invalid_reason(exc)) from exc
        if not update.to_values():
            raise ValidationError("no valid fields")
        return update

    @classmethod
    def invalid_reason(cls, exc: pydantic.ValidationError) -> str:
        return "invalid field"

    def to_values(self) -> dict:
        return {
            k: v
            for k, v in self.model_dump(exclude_unset=True).items()
            if v is not None or k in self.nullable
        }


# ──────────────────────────── Users ───────────────────────────────────────

class UserSummary(BaseModel):
    id: int
    username: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None


class ProfileResponse(BaseModel):
    id: int
    username: str
    email: str
    display_name: Optional[str]
    bio: Optional[str]
    avatar_url: Optional[str]
    created_at: datetime
    following_count: int
    followers_count: int
    posts_count: int
    # Only set when a requesting user is known
    is_following: Optional[bool] = None


class ProfileUpdate(_AllowListedUpdate):
    nullable: ClassVar[frozenset] = frozenset({"bio", "avatar_url", "display_name"})

    display_name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN, max_length=255)
    bio: Optional[str] = None
    avatar_url: Optional[str] = Field(None, max_length=500)

    @classmethod
    def invalid_reason(cls, exc: pydantic.ValidationError) -> str:
        if any(err["loc"] == ("email",) for err in exc.errors()):
            return "invalid email"
        return "invalid field"


class FollowRequest(BaseModel):
    user_id: int


class FollowResponse(BaseModel):
    follower_id: int
    followed_id: int
    created_at: datetime


class FollowCreated(BaseModel):
    follow: FollowResponse
    followers_count: int


class FollowCounts(BaseModel):
    following_count: int
    followers_count: int


class FollowedUser(UserSummary):
    followed_since: datetime


# ──────────────────────────── Posts ───────────────────────────────────────

class PostCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    media_url: Optional[str] = Field(None, max_length=500)
    comments_enabled: bool = True


class PostUpdate(_AllowListedUpdate):
    nullable: ClassVar[frozenset] = frozenset({"media_url"})

    content: Optional[str] = Field(None, min_length=1, max_length=5000)
    media_url: Optional[str] = Field(None, max_length=500)
    comments_enabled: Optional[bool] = None


class PostResponse(BaseModel):
    id: int
    user_id: int
    username: Optional[str] = None
    display_name: Optional[str] = None
    content: str
    media_url: Optional[str] = None
    comments_enabled: bool
    like_count: int = 0
    comment_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ──────────────────────────── Comments ────────────────────────────────────

class CommentCreate(BaseModel):
    post_id: int
    content: str = Field(..., min_length=1, max_length=2000)
    parent_comment_id: Optional[int] = None


class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class CommentResponse(BaseModel):
    id: int
    post_id: int
    user_id: int
    username: Optional[str] = None
    display_name: Optional[str] = None
    content: str
    parent_comment_id: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    # Filled for top-level listings only
    reply_count: Optional[int] = None


class CommentCreated(BaseModel):
    comment: CommentResponse
    comment_count: int


# ──────────────────────────── Likes ───────────────────────────────────────

class LikeRequest(BaseModel):
    post_id: int


class LikeResponse(BaseModel):
    user_id: int
    post_id: int
    created_at: datetime


class LikeCreated(BaseModel):
    like: LikeResponse
    like_count: int


class LikeStatus(BaseModel):
    post_id: int
    user_has_liked: bool
    like_count: int


class Liker(BaseModel):
    user_id: int
    username: str
    display_name: Optional[str] = None
    created_at: datetime


class LikedPost(BaseModel):
    user_id: int
    post_id: int
    created_at: datetime
    content: str
    media_url: Optional[str] = None
    post_created_at: datetime
    author_id: int
    username: str
    display_name: Optional[str] = None


# ──────────────────────────── Pages ───────────────────────────────────────

class _Page(BaseModel):
    total: int
    has_more: bool
    offset: int
    limit: int


class PostPage(_Page):
    posts: list[PostResponse]


class CommentPage(_Page):
    comments: list[CommentResponse]


class ReplyPage(_Page):
    replies: list[CommentResponse]


class LikerPage(_Page):
    likes: list[Liker]


class LikedPostPage(_Page):
    likes: list[LikedPost]


class FollowPage(_Page):
    users: list[FollowedUser]
