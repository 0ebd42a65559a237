"""Tests for one ingest pass over the listing."""

import logging
from datetime import datetime

import requests

from conftest import fake_response, make_entry, make_listing
from morgan.db.models import Post
from morgan.services.options import BEFORE_OPTION, get_option, update_option
from morgan.services.posts import get_post_meta
from morgan.services.reddit_client import JSON_ERROR_SYNTAX
from morgan.services.reddit_ingest import ingest_reddit


class TestDomainFilter:
    """Only self posts are stored."""

    def test_other_domains_never_inserted(self, session, mock_get):
        mock_get.return_value = fake_response(
            make_listing(
                make_entry("t3_link", domain="github.com"),
                make_entry("t3_self"),
                make_entry("t3_img", domain="i.redd.it"),
            )
        )

        result = ingest_reddit(session)

        assert result["fetched"] == 3
        assert result["inserted"] == 1
        assert result["skipped_domain"] == 2
        posts = session.query(Post).all()
        assert len(posts) == 1
        assert get_post_meta(session, posts[0].id)["reddit_name"] == "t3_self"

    def test_domain_compare_ignores_case(self, session, mock_get):
        mock_get.return_value = fake_response(
            make_listing(make_entry("t3_mixed", domain="Self.WordPress"))
        )

        result = ingest_reddit(session)

        assert result["inserted"] == 1


class TestDeduplication:
    """An identifier already stored is never inserted again."""

    def test_second_run_skips_existing(self, session, mock_get):
        mock_get.return_value = fake_response(make_listing(make_entry("t3_once")))

        first = ingest_reddit(session)
        second = ingest_reddit(session)

        assert first["inserted"] == 1
        assert second["inserted"] == 0
        assert second["skipped_duplicate"] == 1
        assert session.query(Post).count() == 1

    def test_repeat_within_one_listing(self, session, mock_get):
        mock_get.return_value = fake_response(
            make_listing(make_entry("t3_twice"), make_entry("t3_twice"))
        )

        result = ingest_reddit(session)

        assert result["inserted"] == 1
        assert result["skipped_duplicate"] == 1


class TestCursor:
    """The cursor always follows the first entry of the listing."""

    def test_cursor_set_even_when_first_is_filtered(self, session, mock_get):
        mock_get.return_value = fake_response(
            make_listing(
                make_entry("t3_first", domain="youtube.com"),
                make_entry("t3_second"),
            )
        )

        result = ingest_reddit(session)

        assert result["cursor"] == "t3_first"
        assert get_option(session, BEFORE_OPTION) == "t3_first"

    def test_cursor_set_when_first_is_duplicate(self, session, mock_get):
        mock_get.return_value = fake_response(make_listing(make_entry("t3_dup")))
        ingest_reddit(session)
        update_option(session, BEFORE_OPTION, "t3_older")

        ingest_reddit(session)

        assert get_option(session, BEFORE_OPTION) == "t3_dup"

    def test_cursor_set_when_first_fails_validation(self, session, mock_get):
        """A named first entry moves the cursor even if its other fields are bad."""
        bad_first = make_entry("t3_first")
        bad_first["data"]["ups"] = None
        bad_first["data"]["domain"] = None
        mock_get.return_value = fake_response(make_listing(bad_first, make_entry("t3_second")))

        result = ingest_reddit(session)

        assert get_option(session, BEFORE_OPTION) == "t3_first"
        assert result["inserted"] == 1

    def test_cursor_kept_when_first_has_no_name(self, session, mock_get):
        update_option(session, BEFORE_OPTION, "t3_keep")
        nameless = {"kind": "t3", "data": {"domain": "self.wordpress", "title": "x"}}
        mock_get.return_value = fake_response(make_listing(nameless, make_entry("t3_later")))

        ingest_reddit(session)

        assert get_option(session, BEFORE_OPTION) == "t3_keep"

    def test_stored_cursor_sent_as_before(self, session, mock_get):
        update_option(session, BEFORE_OPTION, "t3_seen")

        ingest_reddit(session)

        url = mock_get.call_args.args[0]
        assert url == "https://www.reddit.com/r/wordpress.json?before=t3_seen"

    def test_no_cursor_on_first_run(self, session, mock_get):
        ingest_reddit(session)

        url = mock_get.call_args.args[0]
        assert url == "https://www.reddit.com/r/wordpress.json"

    def test_empty_listing_keeps_cursor(self, session, mock_get):
        update_option(session, BEFORE_OPTION, "t3_keep")

        result = ingest_reddit(session)

        assert result["fetched"] == 0
        assert get_option(session, BEFORE_OPTION) == "t3_keep"


class TestStoredPost:
    """Fields copied onto the stored post."""

    def test_post_fields_and_meta(self, session, mock_get, test_settings):
        mock_get.return_value = fake_response(
            make_listing(
                make_entry(
                    "t3_abc",
                    title="<b>Plugin</b> conflict<script>alert(1)</script>",
                    selftext="Two plugins fight over the same hook.",
                    created_utc=1700000000.0,
                    ups=42,
                    author="bob",
                    url="https://www.reddit.com/r/Wordpress/comments/abc/",
                )
            )
        )

        ingest_reddit(session)

        post = session.query(Post).one()
        assert post.title == "Plugin conflict"
        assert post.content == "Two plugins fight over the same hook."
        assert post.status == "publish"
        assert post.author_id == test_settings.post_author_id
        assert post.post_date == datetime(2023, 11, 14, 22, 13, 20)

        assert get_post_meta(session, post.id) == {
            "reddit_name": "t3_abc",
            "reddit_url": "https://www.reddit.com/r/Wordpress/comments/abc/",
            "reddit_created_utc": "1700000000",
            "reddit_ups": "42",
            "reddit_author": "bob",
        }

    def test_malformed_entry_is_skipped(self, session, mock_get, caplog):
        broken = {"kind": "t3", "data": {"domain": "self.wordpress", "title": "no name"}}
        mock_get.return_value = fake_response(make_listing(broken, make_entry("t3_ok")))

        result = ingest_reddit(session)

        assert result["inserted"] == 1
        assert result["fetched"] == 2
        assert "Skipping malformed listing entry" in caplog.text


class TestFailures:
    """Errors are logged and the run carries on without writing anything."""

    def test_malformed_json_logs_and_inserts_nothing(self, session, mock_get, caplog):
        update_option(session, BEFORE_OPTION, "t3_keep")
        mock_get.return_value = fake_response(b"<html>Too Many Requests</html>")

        with caplog.at_level(logging.ERROR):
            result = ingest_reddit(session)

        assert result["inserted"] == 0
        assert JSON_ERROR_SYNTAX in caplog.messages
        assert get_option(session, BEFORE_OPTION) == "t3_keep"
        assert session.query(Post).count() == 0

    def test_http_error_logged_not_raised(self, session, mock_get, caplog):
        mock_get.side_effect = requests.ConnectionError("connection refused")

        result = ingest_reddit(session)

        assert result["fetched"] == 0
        assert result["inserted"] == 0
        assert "connection refused" in caplog.text
        assert mock_get.call_count == 1

    def test_bad_status_logged(self, session, mock_get, caplog):
        response = fake_response(b"")
        response.raise_for_status.side_effect = requests.HTTPError("429 Client Error")
        mock_get.return_value = response

        result = ingest_reddit(session)

        assert result["inserted"] == 0
        assert "429 Client Error" in caplog.text
