"""Candidate scoring, ranking and best-match selection."""

import logging
from collections.abc import Iterable

from .models import IconCandidate

logger = logging.getLogger(__name__)

# Format quality: SVG scales best, then lossless PNG, then the rest
FORMAT_SCORES = {
    "image/svg+xml": 50,
    "image/png": 40,
    "image/webp": 35,
    "image/jpeg": 30,
    "image/jpg": 30,
    "image/x-icon": 20,
    "image/vnd.microsoft.icon": 20,
    "image/gif": 10,
}
DEFAULT_FORMAT_SCORE = 5

# (minimum size, score), checked in order; larger icons suit high-DPI displays
SIZE_SCORES = [
    (512, 30),
    (256, 25),
    (192, 20),
    (128, 15),
    (64, 10),
    (32, 5),
]
SMALL_SIZE_SCORE = 2
UNKNOWN_SIZE_SCORE = 3

# Substring of purpose -> adjustment, applied cumulatively
PURPOSE_ADJUSTMENTS = [
    ("maskable", 10),  # Android adaptive icons
    ("apple-touch-icon", 15),  # Typically 180x180, high quality
    ("any", 5),
    ("og:image", -25),  # Fallback only, keep below real icons
]


def score_candidate(candidate: IconCandidate) -> int:
    """
    Compute the desirability score of a candidate.

    Pure function of content type, dimensions and purpose.

    Args:
        candidate: Icon candidate

    Returns:
        Score (higher is better)
    """
    score = FORMAT_SCORES.get(candidate.content_type, DEFAULT_FORMAT_SCORE)

    size = candidate.size
    if size is None:
        score += UNKNOWN_SIZE_SCORE
    else:
        score += next(
            (points for minimum, points in SIZE_SCORES if size >= minimum),
            SMALL_SIZE_SCORE,
        )

    if candidate.purpose:
        for needle, adjustment in PURPOSE_ADJUSTMENTS:
            if needle in candidate.purpose:
                score += adjustment

    return score


def rank_candidates(candidates: Iterable[IconCandidate]) -> list[IconCandidate]:
    """
    Score candidates and sort them best first.

    Ties are broken by URL and then content type so the order does not
    depend on set iteration order.

    Args:
        candidates: Candidates in any order

    Returns:
        New list sorted by score descending
    """
    ranked = list(candidates)
    for candidate in ranked:
        candidate.score = score_candidate(candidate)

    ranked.sort(key=lambda c: (-c.score, c.url, c.content_type))
    return ranked


def select_best(
    ranked: list[IconCandidate], requested_size: int | None = None
) -> IconCandidate | None:
    """
    Pick the best candidate, optionally for a requested pixel size.

    Without a size the first (highest scored) candidate wins. With a size,
    the candidate with known dimensions whose largest side is closest to it
    wins; at equal distance the larger icon is preferred, then input order
    decides. If no candidate has known dimensions the highest scored one is
    returned.

    Args:
        ranked: Candidates sorted by score descending
        requested_size: Desired icon size in pixels

    Returns:
        Selected candidate, or None if the list is empty
    """
    if not ranked:
        return None

    if requested_size is None:
        return ranked[0]

    sized = [c for c in ranked if c.has_dimensions]
    if not sized:
        logger.debug(f"No candidate with known size for {requested_size}px, using best scored")
        return ranked[0]

    # min() keeps the first of equal keys, which preserves input order
    return min(sized, key=lambda c: (abs(c.size - requested_size), -c.size))
