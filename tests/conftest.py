"""Pytest fixtures for morgan tests."""

import json
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

import morgan.config.settings as settings_module
import morgan.db.database as database_module
from morgan.config.settings import Settings
from morgan.db.models import Base


@pytest.fixture(autouse=True)
def test_settings(tmp_path, monkeypatch) -> Settings:
    """Settings pointing at a throwaway database and log file."""
    s = Settings(
        database_url=f"sqlite:///{tmp_path / 'morgan_test.db'}",
        log_level="DEBUG",
        log_file=str(tmp_path / "logs" / "run.log"),
        reddit_source_url="https://www.reddit.com/r/wordpress.json",
        reddit_self_domain="self.wordpress",
    )
    monkeypatch.setattr(settings_module, "_settings", s)
    return s


@pytest.fixture(autouse=True)
def engine(test_settings, monkeypatch):
    """Fresh schema per test, installed as the process-wide engine."""
    eng = create_engine(test_settings.database_url, future=True)
    Base.metadata.create_all(eng)
    monkeypatch.setattr(database_module, "_engine", eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


def make_entry(
    name: str,
    domain: str = "self.wordpress",
    title: str = "Help with my theme",
    selftext: str = "It broke after the update.",
    created_utc: float = 1700000000.0,
    ups: int = 12,
    author: str = "alice",
    url: str | None = None,
) -> dict:
    """One child of a Reddit listing."""
    return {
        "kind": "t3",
        "data": {
            "name": name,
            "domain": domain,
            "title": title,
            "selftext": selftext,
            "created_utc": created_utc,
            "ups": ups,
            "author": author,
            "url": url or f"https://www.reddit.com/r/Wordpress/comments/{name[3:]}/",
        },
    }


def make_listing(*children: dict) -> bytes:
    return json.dumps(
        {"kind": "Listing", "data": {"children": list(children), "before": None}}
    ).encode("utf-8")


def fake_response(body: bytes) -> MagicMock:
    response = MagicMock()
    response.content = body
    response.raise_for_status = MagicMock()
    return response


@pytest.fixture
def mock_get():
    """Patch requests.get inside the reddit client; returns an empty listing by default."""
    with patch("morgan.services.reddit_client.requests.get") as get:
        get.return_value = fake_response(make_listing())
        yield get
