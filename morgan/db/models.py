from __future__ import annotations

from datetime import datetime
from sqlalchemy import (
    String, Integer, DateTime, Text, ForeignKey, Index
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship



class Base(DeclarativeBase):
    pass


class Option(Base):
    __tablename__ = "options"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(191), nullable=False, unique=True)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class Post(Base):
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    post_type: Mapped[str] = mapped_column(String(20), nullable=False, default="post")
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # publish/draft
    author_id: Mapped[int] = mapped_column(Integer, nullable=False)

    # when the entry was created at the source, not when we stored it
    post_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    meta: Mapped[list["PostMeta"]] = relationship(
        back_populates="post", cascade="all, delete-orphan"
    )


class PostMeta(Base):
    __tablename__ = "postmeta"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(ForeignKey("posts.id"), nullable=False, index=True)

    meta_key: Mapped[str] = mapped_column(String(191), nullable=False)
    meta_value: Mapped[str | None] = mapped_column(Text, nullable=True)

    post: Mapped["Post"] = relationship(back_populates="meta")

    __table_args__ = (Index("ix_postmeta_key_value", "meta_key", "meta_value"),)


class CronEvent(Base):
    __tablename__ = "cron_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    hook: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    recurrence: Mapped[str] = mapped_column(String(20), nullable=False)  # hourly etc
    next_run: Mapped[datetime] = mapped_column(DateTime, nullable=False)
