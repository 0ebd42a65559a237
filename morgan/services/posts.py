from __future__ import annotations

from datetime import datetime
from typing import Any

from bs4 import BeautifulSoup
from sqlalchemy.orm import Session

from morgan.db.models import Post, PostMeta


def strip_all_tags(text: str | None) -> str:
    """Drop script/style blocks with their contents, then every other tag."""
    if not text:
        return ""
    soup = BeautifulSoup(text, "html.parser")
    for element in soup(["script", "style"]):
        element.decompose()
    return soup.get_text().strip()


def insert_post(
    session: Session,
    title: str,
    content: str,
    status: str,
    author_id: int,
    post_date: datetime | None = None,
    post_type: str = "post",
) -> Post:
    post = Post(
        post_type=post_type,
        title=title,
        content=content or "",
        status=status,
        author_id=author_id,
        post_date=post_date,
    )
    session.add(post)
    session.flush()  # need post.id for meta rows
    return post


def add_post_meta(session: Session, post_id: int, key: str, value: Any) -> PostMeta:
    meta = PostMeta(
        post_id=post_id,
        meta_key=key,
        meta_value=None if value is None else str(value),
    )
    session.add(meta)
    return meta


def get_post_meta(session: Session, post_id: int) -> dict[str, str | None]:
    rows = session.query(PostMeta).filter_by(post_id=post_id).order_by(PostMeta.id).all()
    return {r.meta_key: r.meta_value for r in rows}


def name_exists(session: Session, name: str) -> bool:
    """
    True if a post already carries `reddit_name == name`.
    """
    hit = (
        session.query(PostMeta.id)
        .join(Post, Post.id == PostMeta.post_id)
        .filter(Post.post_type == "post")
        .filter(PostMeta.meta_key == "reddit_name")
        .filter(PostMeta.meta_value == name)
        .first()
    )
    return hit is not None


def recent_posts(session: Session, limit: int = 10) -> list[Post]:
    return (
        session.query(Post)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .limit(limit)
        .all()
    )
