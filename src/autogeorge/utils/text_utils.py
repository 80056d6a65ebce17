"""Text processing utilities."""

import html
import re
from urllib.parse import urlparse

_TAG_RE = re.compile(r"<[^>]+>")


def clean_whitespace(text: str) -> str:
    """Collapse runs of whitespace and strip the ends."""
    return re.sub(r"\s+", " ", text).strip()


def strip_html(text: str) -> str:
    """Remove HTML tags and unescape entities.

    Feed descriptions frequently carry markup; prompts and keyword
    extraction want plain text.

    Args:
        text: HTML fragment

    Returns:
        Plain text with normalized whitespace
    """
    if not text:
        return ""
    return clean_whitespace(html.unescape(_TAG_RE.sub(" ", text)))


def extract_domain(url: str) -> str:
    """Extract lowercase host name from URL, without port or credentials."""
    return urlparse(url).hostname or ""
