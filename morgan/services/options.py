from __future__ import annotations

import logging
from typing import Callable

from sqlalchemy.orm import Session

from morgan.db.models import Option

logger = logging.getLogger(__name__)

BEFORE_OPTION = "morgan_before"
CRON_TIME_OPTION = "morgan_cron_time"

# name -> filters applied to the new value before it is stored
PreUpdateFilter = Callable[[Session, str, "str | None"], str]
_pre_update_filters: dict[str, list[PreUpdateFilter]] = {}


def add_pre_update_filter(name: str, fn: PreUpdateFilter) -> None:
    _pre_update_filters.setdefault(name, []).append(fn)


def remove_pre_update_filter(name: str, fn: PreUpdateFilter) -> None:
    filters = _pre_update_filters.get(name, [])
    if fn in filters:
        filters.remove(fn)


def get_option(session: Session, name: str, default: str | None = None) -> str | None:
    row = session.query(Option).filter_by(name=name).first()
    if row is None:
        return default
    return row.value


def update_option(session: Session, name: str, value: str) -> str:
    """
    Store `value` under `name` after running the registered pre-update filters.
    Returns the value actually stored.
    """
    row = session.query(Option).filter_by(name=name).first()
    old = row.value if row is not None else None

    for fn in list(_pre_update_filters.get(name, [])):
        value = fn(session, value, old)

    if row is None:
        session.add(Option(name=name, value=value))
    else:
        row.value = value
    session.flush()

    logger.debug("Option %s updated: %r -> %r", name, old, value)
    return value


def delete_option(session: Session, name: str) -> bool:
    deleted = session.query(Option).filter_by(name=name).delete()
    return deleted > 0
