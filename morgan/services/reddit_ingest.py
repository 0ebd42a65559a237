from __future__ import annotations

import logging
from datetime import datetime, timezone

from pydantic import ValidationError
from sqlalchemy.orm import Session

from morgan.config.settings import Settings, get_settings
from morgan.core.exceptions import ListingError
from morgan.models.schemas import RedditEntry
from morgan.services.options import BEFORE_OPTION, get_option, update_option
from morgan.services.posts import add_post_meta, insert_post, name_exists, strip_all_tags
from morgan.services.reddit_client import decode_listing, fetch_listing, iter_entries

logger = logging.getLogger(__name__)


def _created_value(created: float) -> int | float:
    return int(created) if float(created).is_integer() else created


def store_entry(session: Session, entry: RedditEntry, author_id: int) -> int:
    post = insert_post(
        session,
        title=strip_all_tags(entry.title),
        content=entry.selftext,
        status="publish",
        author_id=author_id,
        post_date=datetime.fromtimestamp(entry.created_utc, tz=timezone.utc).replace(tzinfo=None),
    )

    add_post_meta(session, post.id, "reddit_name", entry.name)
    add_post_meta(session, post.id, "reddit_url", entry.url)
    add_post_meta(session, post.id, "reddit_created_utc", _created_value(entry.created_utc))
    add_post_meta(session, post.id, "reddit_ups", entry.ups)
    add_post_meta(session, post.id, "reddit_author", entry.author)
    session.flush()
    return post.id


def ingest_reddit(session: Session, settings: Settings | None = None) -> dict:
    """
    One pass over the listing: move the cursor to the first entry, keep
    self-domain entries, skip names already stored, insert the rest.
    """
    s = settings or get_settings()
    stats = {
        "fetched": 0,
        "skipped_domain": 0,
        "skipped_duplicate": 0,
        "inserted": 0,
        "cursor": get_option(session, BEFORE_OPTION, "") or "",
    }

    try:
        raw = fetch_listing(stats["cursor"])
    except ListingError as e:
        logger.error(str(e))
        return stats

    listing = decode_listing(raw)
    if listing is None:
        return stats

    self_domain = s.reddit_self_domain.lower()
    first = True

    for data in iter_entries(listing):
        stats["fetched"] += 1
        if first:
            name = data.get("name")
            if isinstance(name, str) and name:
                stats["cursor"] = update_option(session, BEFORE_OPTION, name)
            else:
                logger.warning("First listing entry has no name; cursor left at %s", stats["cursor"] or "-")
            first = False

        try:
            entry = RedditEntry.model_validate(data)
        except ValidationError as e:
            logger.warning("Skipping malformed listing entry: %s", e.errors()[0].get("msg"))
            continue

        if entry.domain.lower() != self_domain:
            stats["skipped_domain"] += 1
            continue

        if name_exists(session, entry.name):
            stats["skipped_duplicate"] += 1
            continue

        post_id = store_entry(session, entry, s.post_author_id)
        stats["inserted"] += 1
        logger.info("Inserted post %s for %s by %s", post_id, entry.name, entry.author)

    return stats
