from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class APIModel(BaseModel):
    # Python names in code, camelCase names on the wire
    model_config = ConfigDict(populate_by_name=True)


class UserCreate(BaseModel):
    username: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=1)


class UserLogin(BaseModel):
    username: str
    password: str


class UserCreated(APIModel):
    user_id: int = Field(alias="userID")
    username: str
    email: EmailStr
    created_at: datetime = Field(alias="createdAt")


class UserProfile(APIModel):
    id: int
    username: str
    profile_picture: Optional[str] = Field(default=None, alias="profilePicture")
    created_at: datetime = Field(alias="createdAt")


class Token(BaseModel):
    token: str


class Author(APIModel):
    username: str
    profile_picture: Optional[str] = Field(default=None, alias="profilePicture")


class PostCreate(APIModel):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    featured_image: Optional[str] = Field(default=None, alias="featuredImage")


class PostUpdate(APIModel):
    title: Optional[str] = Field(default=None, min_length=1)
    content: Optional[str] = Field(default=None, min_length=1)
    featured_image: Optional[str] = Field(default=None, alias="featuredImage")


class PostCreated(APIModel):
    post_id: int = Field(alias="postID")
    title: str
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


class PostSummary(APIModel):
    id: int
    title: str
    featured_image: Optional[str] = Field(default=None, alias="featuredImage")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    user: Author


class PostDetail(PostSummary):
    content: str
    user_id: int = Field(alias="userId")


class PostUpdated(APIModel):
    updated_at: datetime = Field(alias="updatedAt")


class CommentCreate(BaseModel):
    content: str = Field(min_length=1)


class CommentCreated(APIModel):
    comment_id: int = Field(alias="commentID")
    content: str
    created_at: datetime = Field(alias="createdAt")


class CommentOut(APIModel):
    comment_id: int = Field(alias="commentID")
    content: str
    created_at: datetime = Field(alias="createdAt")
    username: Optional[str] = None


class Message(BaseModel):
    message: str
