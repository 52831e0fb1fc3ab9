from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.types import TypeDecorator

from blogapi.database import Base

# Largest value an SQLite INTEGER primary key can hold
MAX_ROW_ID = 2**63 - 1


def utcnow():
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Stored as naive UTC, always read back as an aware UTC datetime."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    profile_picture = Column("profilePicture", String, nullable=True)
    created_at = Column("createdAt", UTCDateTime, default=utcnow, nullable=False)

    posts = relationship("Post", back_populates="owner")


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, index=True, nullable=False)
    content = Column(Text, nullable=False)
    featured_image = Column("featuredImage", String, nullable=True)
    user_id = Column("userId", Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column("createdAt", UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column("updatedAt", UTCDateTime, default=utcnow, nullable=False)

    owner = relationship("User", back_populates="posts")
    comments = relationship("Comment", back_populates="post", passive_deletes=True)


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(
        "postId", Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column("userId", Integer, ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column("createdAt", UTCDateTime, default=utcnow, nullable=False)

    post = relationship("Post", back_populates="comments")
    user = relationship("User")
