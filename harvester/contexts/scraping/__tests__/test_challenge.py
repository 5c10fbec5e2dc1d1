"""
Unit tests for challenge/not-found detection and the challenge wait loop.

Run: python3 -m pytest harvester/contexts/scraping/__tests__/test_challenge.py -v
"""

import asyncio

from harvester.contexts.scraping.challenge import (
    BODY_SAMPLE_LENGTH,
    is_challenge,
    is_not_found,
    page_is_challenge,
    resolve_challenge,
)


class TestIsChallenge:
    def test_title_markers(self):
        assert is_challenge("Just a moment...")
        assert is_challenge("Attention Required! | Cloudflare")
        assert is_challenge("SECURITY CHECK")

    def test_body_markers(self):
        assert is_challenge("Naukri", "Our systems have detected unusual traffic from your network")
        assert is_challenge("", "Checking your browser before accessing the site")

    def test_regular_pages(self):
        assert not is_challenge("Sales Jobs In Mumbai - Naukri.com", "Showing 1 - 20 of 4000 jobs")
        assert not is_challenge("", "")

    def test_only_body_start_inspected(self):
        body = "x" * BODY_SAMPLE_LENGTH + " unusual traffic"
        assert not is_challenge("Jobs", body)


class TestIsNotFound:
    def test_markers(self):
        assert is_not_found("404 | Naukri")
        assert is_not_found("Naukri", "Sorry, this job is no longer available")
        assert is_not_found("Page Not Found")

    def test_status_digits_in_body_ignored(self):
        assert not is_not_found("Sales Executive", "Call 404-555-0100 to apply")


class TestResolveChallenge:
    """Tests for the bounded challenge loop."""

    def test_resolves_on_later_attempt(self, make_session, fetch_config):
        """One more challenge check than the first attempt sees means a second attempt clears it."""
        session = make_session(challenge_checks=1)

        resolved = asyncio.run(resolve_challenge(session, fetch_config.challenge))

        assert resolved is True
        assert session.clicks == 2

    def test_gives_up_after_max_attempts(self, make_session, fetch_config):
        session = make_session(challenge_checks=10)

        resolved = asyncio.run(resolve_challenge(session, fetch_config.challenge))

        assert resolved is False
        assert session.clicks == fetch_config.challenge.max_attempts

    def test_waits_are_taken_from_config(self, make_session, fetch_config):
        fetch_config.challenge.backoff = 7
        session = make_session()

        asyncio.run(resolve_challenge(session, fetch_config.challenge))

        assert session.waits[0] == 7

    def test_page_is_challenge(self, make_session):
        assert asyncio.run(page_is_challenge(make_session(challenge_checks=1))) is True
        assert asyncio.run(page_is_challenge(make_session())) is False
