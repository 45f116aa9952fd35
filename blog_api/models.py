from __future__ import annotations

import secrets
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blog_api.config import settings
from blog_api.database import Base


def generate_token() -> str:
    """Return a fresh random, url-safe token value."""
    return secrets.token_urlsafe(settings.TOKEN_BYTES)


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    login: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships: lazy="noload" enforces explicit eager loading in services
    articles: Mapped[List["Article"]] = relationship(
        "Article", back_populates="user", lazy="noload"
    )
    comments: Mapped[List["Comment"]] = relationship(
        "Comment", back_populates="user", lazy="noload"
    )
    access_token: Mapped[Optional["AccessToken"]] = relationship(
        "AccessToken", back_populates="user", uselist=False, lazy="noload"
    )


# ---------------------------------------------------------------------------
# AccessToken
# ---------------------------------------------------------------------------
class AccessToken(Base):
    __tablename__ = "access_tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # One token per user
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    user: Mapped["User"] = relationship("User", back_populates="access_token", lazy="noload")

    def __init__(self, **kwargs) -> None:
        # The value exists as soon as the object does and is never regenerated.
        if "token" not in kwargs:
            kwargs["token"] = generate_token()
        super().__init__(**kwargs)


# ---------------------------------------------------------------------------
# Article
# ---------------------------------------------------------------------------
class Article(Base):
    __tablename__ = "articles"

    __table_args__ = (
        # Newest-first listing
        Index("ix_articles_created_at_id", "created_at", "id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(String(350), unique=True, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    # Foreign key
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Relationships: all lazy="noload" to prevent N+1; use selectinload/joinedload in services
    user: Mapped["User"] = relationship("User", back_populates="articles", lazy="noload")
    comments: Mapped[List["Comment"]] = relationship(
        "Comment",
        back_populates="article",
        lazy="noload",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Comment.id",
    )


# ---------------------------------------------------------------------------
# Comment
# ---------------------------------------------------------------------------
class Comment(Base):
    __tablename__ = "comments"

    __table_args__ = (
        # Per-article listing in creation order
        Index("ix_comments_article_id_created_at", "article_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Foreign keys
    article_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Relationships
    article: Mapped["Article"] = relationship("Article", back_populates="comments", lazy="noload")
    user: Mapped["User"] = relationship("User", back_populates="comments", lazy="noload")
