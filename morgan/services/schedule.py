from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Mapping

from sqlalchemy.orm import Session

from morgan.core.exceptions import ScheduleError
from morgan.db.models import CronEvent

logger = logging.getLogger(__name__)

RECURRENCES: dict[str, int] = {
    "hourly": 60 * 60,
    "twicedaily": 12 * 60 * 60,
    "daily": 24 * 60 * 60,
}


def interval_for(recurrence: str) -> timedelta:
    try:
        return timedelta(seconds=RECURRENCES[recurrence])
    except KeyError:
        raise ScheduleError(
            f"Unknown recurrence {recurrence!r} (expected one of {', '.join(RECURRENCES)})"
        ) from None


def schedule_event(session: Session, timestamp: datetime, recurrence: str, hook: str) -> CronEvent:
    """
    Schedule `hook` to run at `timestamp` and then every `recurrence`.
    A hook that is already scheduled keeps its existing event.
    """
    interval_for(recurrence)

    existing = session.query(CronEvent).filter_by(hook=hook).first()
    if existing is not None:
        logger.debug("Hook %s already scheduled for %s", hook, existing.next_run)
        return existing

    event = CronEvent(hook=hook, recurrence=recurrence, next_run=timestamp)
    session.add(event)
    session.flush()
    logger.info("Scheduled %s (%s) starting %s", hook, recurrence, timestamp.isoformat(timespec="seconds"))
    return event


def clear_scheduled_hook(session: Session, hook: str) -> int:
    removed = session.query(CronEvent).filter_by(hook=hook).delete()
    session.flush()
    if removed:
        logger.info("Cleared scheduled hook %s", hook)
    return removed


def next_scheduled(session: Session, hook: str) -> datetime | None:
    event = session.query(CronEvent).filter_by(hook=hook).first()
    return event.next_run if event is not None else None


def _next_slot(scheduled: datetime, interval: timedelta, now: datetime) -> datetime:
    # first slot on the event's grid strictly after now; missed slots are dropped
    if scheduled > now:
        return scheduled
    missed = (now - scheduled) // interval
    return scheduled + interval * (missed + 1)


def run_due_events(
    session: Session,
    handlers: Mapping[str, Callable[[Session], object]],
    now: datetime | None = None,
) -> list[str]:
    """
    Run every event whose next_run has passed. Each event's next slot is
    committed before its handler runs, so a failing handler is logged and
    retried on the next slot rather than on every call. Handlers share the
    session. Returns the hooks that ran to completion.
    """
    now = now or datetime.utcnow()
    due = (
        session.query(CronEvent)
        .filter(CronEvent.next_run <= now)
        .order_by(CronEvent.next_run)
        .all()
    )

    ran: list[str] = []
    for event in due:
        event.next_run = _next_slot(event.next_run, interval_for(event.recurrence), now)
        hook, next_run = event.hook, event.next_run
        session.commit()

        handler = handlers.get(hook)
        if handler is None:
            logger.warning("No handler registered for hook %s", hook)
            continue

        logger.info("Running hook %s (next run %s)", hook, next_run.isoformat(timespec="seconds"))
        try:
            handler(session)
            session.commit()
        except Exception:
            session.rollback()
            logger.exception("Hook %s failed", hook)
            continue
        ran.append(hook)

    return ran
