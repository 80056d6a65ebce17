"""Image candidate parsing and relevance scoring."""

import re
from typing import Iterable, List

from autogeorge.core.image import ImageCandidate
from autogeorge.utils.text_utils import extract_domain

TRUSTED_HOSTS = (
    "images.unsplash.com",
    "cdn.pixabay.com",
    "images.pexels.com",
    "img.freepik.com",
)
SOURCE_BONUS = {"unsplash": 10, "pexels": 8, "pixabay": 6}
GENERIC_TERMS = ("business", "people", "background", "abstract", "concept")
MAX_CANDIDATES = 10

_URL_RE = re.compile(r"https?://[^\s<>\"'()\[\]]+", re.IGNORECASE)
_DESCRIPTION_TRIM = " \t-:|*•>"
_LIST_MARKER_RE = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s*")


def parse_candidates(text: str, limit: int = MAX_CANDIDATES) -> List[ImageCandidate]:
    """Extract image candidates from a model reply.

    Only URLs on trusted stock-photo CDNs are kept. The text on the same line
    as a URL becomes its description.

    Args:
        text: Free-form reply listing image URLs.
        limit: Maximum number of candidates.

    Returns:
        Unscored candidates in reply order, without duplicates.
    """
    candidates: List[ImageCandidate] = []
    seen = set()
    for line in text.splitlines():
        for match in _URL_RE.finditer(line):
            url = match.group(0).rstrip(".,;:!?")
            host = extract_domain(url)
            if url in seen or not any(host.endswith(h) for h in TRUSTED_HOSTS):
                continue
            seen.add(url)
            description = _LIST_MARKER_RE.sub("", _URL_RE.sub(" ", line)).strip(_DESCRIPTION_TRIM)
            candidates.append(
                ImageCandidate(
                    url=url,
                    source=host,
                    description=" ".join(description.split()) or f"Image from {host}",
                )
            )
            if len(candidates) >= limit:
                return candidates
    return candidates


def score_candidate(candidate: ImageCandidate, title: str, keywords: Iterable[str]) -> int:
    """Relevance of a candidate to an article, 0-100."""
    description = candidate.description.lower()
    url = candidate.url.lower()
    score = 0

    for keyword in keywords:
        keyword = keyword.lower()
        if keyword in description:
            score += 15
        if keyword in url:
            score += 10

    for word in title.lower().split():
        if len(word) > 3:
            if word in description:
                score += 20
            if word in url:
                score += 15

    for name, bonus in SOURCE_BONUS.items():
        if name in candidate.source:
            score += bonus

    score -= 5 * sum(1 for term in GENERIC_TERMS if term in description)
    return max(0, min(100, score))


def rank(candidates: Iterable[ImageCandidate], title: str, keywords: List[str]) -> List[ImageCandidate]:
    """Score candidates and sort them best first."""
    scored = [
        c.model_copy(update={"relevance_score": score_candidate(c, title, keywords)})
        for c in candidates
    ]
    return sorted(scored, key=lambda c: c.relevance_score, reverse=True)
