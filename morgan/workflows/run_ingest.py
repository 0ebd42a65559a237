from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from morgan.config.settings import get_settings
from morgan.db.database import get_engine
from morgan.services.options import (
    BEFORE_OPTION,
    CRON_TIME_OPTION,
    add_pre_update_filter,
    get_option,
    update_option,
)
from morgan.services.reddit_ingest import ingest_reddit
from morgan.services.schedule import (
    clear_scheduled_hook,
    interval_for,
    next_scheduled,
    run_due_events,
    schedule_event,
)

logger = logging.getLogger(__name__)

SCRAPE_HOOK = "reddit_scrape"


def current_cron_time(session: Session) -> str:
    return get_option(session, CRON_TIME_OPTION, "") or get_settings().default_cron_time


def _reschedule_on_cron_change(session: Session, new_value: str, old_value: str | None) -> str:
    interval_for(new_value)  # reject unknown recurrences before anything is stored
    clear_scheduled_hook(session, SCRAPE_HOOK)
    schedule_event(session, datetime.utcnow(), new_value, SCRAPE_HOOK)
    return new_value


add_pre_update_filter(CRON_TIME_OPTION, _reschedule_on_cron_change)


def _scrape(session: Session) -> dict:
    result = ingest_reddit(session)
    logger.info(
        "Scrape done: fetched=%d inserted=%d skipped_domain=%d skipped_duplicate=%d cursor=%s",
        result["fetched"],
        result["inserted"],
        result["skipped_domain"],
        result["skipped_duplicate"],
        result["cursor"] or "-",
    )
    return result


def run_scrape() -> dict:
    """Run one scrape immediately, outside the schedule."""
    with Session(get_engine()) as session:
        result = _scrape(session)
        session.commit()
    return result


def activate(now: datetime | None = None) -> datetime:
    with Session(get_engine()) as session:
        recurrence = current_cron_time(session)
        event = schedule_event(session, now or datetime.utcnow(), recurrence, SCRAPE_HOOK)
        next_run = event.next_run
        session.commit()
    return next_run


def deactivate() -> int:
    with Session(get_engine()) as session:
        removed = clear_scheduled_hook(session, SCRAPE_HOOK)
        session.commit()
    return removed


def set_cron_time(value: str) -> str:
    with Session(get_engine()) as session:
        stored = update_option(session, CRON_TIME_OPTION, value)
        session.commit()
    return stored


def tick(now: datetime | None = None) -> list[str]:
    """Run whatever is due. Meant to be called often by an external cron."""
    with Session(get_engine()) as session:
        ran = run_due_events(session, {SCRAPE_HOOK: _scrape}, now=now)
        session.commit()
    return ran


def settings_snapshot() -> dict:
    with Session(get_engine()) as session:
        return {
            "cron_time": current_cron_time(session),
            "cursor": get_option(session, BEFORE_OPTION, "") or "",
            "next_run": next_scheduled(session, SCRAPE_HOOK),
        }
