"""Featured image prompt building."""

import re
from typing import Optional

from autogeorge.core.config import PromptConfig
from autogeorge.pipeline.images.keywords import STOPWORDS, extract_keywords

# DALL-E 3 accepts far more, but short prompts give steadier compositions
MAX_PROMPT_LENGTH = 400
MAX_CONCEPTS = 4
MIN_CONTENT_LENGTH = 50

_PUNCT_RE = re.compile(r"[^\w\s]")


def main_concepts(title: str) -> str:
    """First few meaningful words of the title."""
    words = [
        w
        for w in _PUNCT_RE.sub("", title.lower()).split()
        if len(w) > 2 and w not in STOPWORDS
    ]
    return " ".join(words[:MAX_CONCEPTS])


def optimize_prompt(prompt: str) -> str:
    """Make sure the prompt asks for quality and fits the length limit."""
    optimized = " ".join(prompt.split())
    if "high quality" not in optimized and "professional" not in optimized:
        optimized += ", high quality, professional"
    if len(optimized) > MAX_PROMPT_LENGTH:
        optimized = optimized[: MAX_PROMPT_LENGTH - 3] + "..."
    return optimized


def build_image_prompt(
    template: PromptConfig,
    title: str,
    content: Optional[str] = None,
    custom_prompt: Optional[str] = None,
) -> str:
    """Build the image generation prompt for an article.

    A non-empty custom prompt replaces the template entirely.

    Args:
        template: Image prompt template.
        title: Article title.
        content: Article body.
        custom_prompt: Site-level override.

    Returns:
        Prompt of at most MAX_PROMPT_LENGTH characters.
    """
    if custom_prompt and custom_prompt.strip():
        return optimize_prompt(custom_prompt)

    themes_clause = ""
    if content and len(content) >= MIN_CONTENT_LENGTH:
        content_keywords = extract_keywords("", content)[:2]
        if content_keywords:
            themes_clause = f", incorporating themes of {' and '.join(content_keywords)}"

    prompt = template.user_prompt_template.format(
        concepts=main_concepts(title) or title,
        themes_clause=themes_clause,
    )
    return optimize_prompt(prompt)
