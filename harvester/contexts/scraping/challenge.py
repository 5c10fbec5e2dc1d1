"""
Challenge and not-found page detection, and the bounded challenge wait loop.
"""

from loguru import logger

from harvester.utils.text_processing import contains_any

CHALLENGE_TITLE_MARKERS = ("just a moment", "cloudflare", "security check")
CHALLENGE_BODY_MARKERS = ("unusual traffic", "checking your browser")

NOT_FOUND_MARKERS = (
    "page not found",
    "page could not be found",
    "job not found",
    "this job is no longer available",
)
# Bare status codes are only trusted in titles
NOT_FOUND_TITLE_MARKERS = NOT_FOUND_MARKERS + ("404",)

# Only the beginning of the body is inspected
BODY_SAMPLE_LENGTH = 2000


def is_challenge(title: str, body: str = "") -> bool:
    """True when the title or the start of the body carries a challenge signature."""
    return contains_any(title, CHALLENGE_TITLE_MARKERS) or contains_any(
        (body or "")[:BODY_SAMPLE_LENGTH], CHALLENGE_BODY_MARKERS
    )


def is_not_found(title: str, body: str = "") -> bool:
    return contains_any(title, NOT_FOUND_TITLE_MARKERS) or contains_any(
        (body or "")[:BODY_SAMPLE_LENGTH], NOT_FOUND_MARKERS
    )


async def page_is_challenge(session) -> bool:
    title = await session.title()
    body = await session.body_text(BODY_SAMPLE_LENGTH)
    return is_challenge(title, body)


async def resolve_challenge(session, config) -> bool:
    """
    Wait out a challenge page currently loaded in the session.

    Each attempt waits `backoff`, tries the interactive widget, waits for the
    page to settle and re-checks. Bounded to `max_attempts`.

    Args:
        session: BrowserSession showing the challenge
        config: The `challenge` section of the fetch config

    Returns:
        True once the page no longer looks like a challenge, False when
        attempts are exhausted
    """
    for attempt in range(1, config.max_attempts + 1):
        logger.warning(f"Challenge page detected, attempt {attempt}/{config.max_attempts}")
        await session.wait(config.backoff)

        if await session.click_challenge_checkbox(config.click_timeout):
            await session.wait(config.click_settle)

        await session.wait(config.settle)
        await session.wait_for_load_state("networkidle", config.networkidle_timeout)

        if not await page_is_challenge(session):
            logger.info(f"Challenge cleared after {attempt} attempt(s)")
            return True

    logger.error(f"Challenge not resolved after {config.max_attempts} attempts")
    return False
