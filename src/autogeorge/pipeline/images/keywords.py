"""Keyword, theme and sensitivity analysis of article text."""

import re
from collections import Counter
from typing import Iterable, List

STOPWORDS = frozenset(
    {
        # Italian
        "il", "la", "le", "lo", "gli", "un", "una", "del", "della", "dei", "delle",
        "per", "con", "su", "tra", "fra", "di", "da", "in", "a", "ad", "al", "alla",
        "che", "chi", "come", "quando", "dove", "perché", "se", "ma", "però", "quindi",
        "anche", "ancora", "già", "più", "molto", "tutto", "ogni", "altro", "stesso",
        "questo", "quello", "questi", "quelli", "essere", "avere", "fare", "dire",
        "sono", "stato", "stata", "nella", "nelle", "negli", "dalla", "dalle", "degli",
        # English
        "the", "and", "or", "but", "on", "at", "to", "for", "of", "with", "by",
        "is", "are", "was", "were", "be", "been", "have", "has", "had", "do", "does",
        "did", "will", "would", "could", "should", "may", "might", "can", "must",
        "this", "that", "these", "those", "from", "into", "about", "their", "there",
    }
)

THEMES = {
    "tecnologia": ("tech", "software", "digital", "computer", "internet", "ai", "algoritmo"),
    "business": ("business", "azienda", "mercato", "economia", "finanza", "startup"),
    "salute": ("salute", "medicina", "medico", "cura", "benessere", "fitness"),
    "ambiente": ("ambiente", "natura", "sostenibile", "energia", "clima", "verde"),
    "educazione": ("educazione", "scuola", "università", "formazione", "apprendimento"),
    "arte": ("arte", "design", "creativo", "cultura", "museo", "artista"),
}
DEFAULT_THEMES = ["generale", "professionale"]

SENSITIVE_TERMS = frozenset(
    {
        "war", "death", "violence", "crime", "disaster", "terrorism", "disease", "politics",
        "guerra", "morte", "violenza", "crimine", "disastro", "terrorismo", "malattia", "politica",
    }
)

MAX_FREQUENT = 15
MAX_KEYWORDS = 10

_PUNCT_RE = re.compile(r"[^\w\s]")


def _words(text: str) -> List[str]:
    cleaned = _PUNCT_RE.sub(" ", text.lower()).replace("_", " ")
    return [
        w
        for w in cleaned.split()
        if len(w) > 3 and w not in STOPWORDS and not w.isdigit()
    ]


def extract_keywords(title: str, content: str, limit: int = MAX_KEYWORDS) -> List[str]:
    """Pick the words that best describe an article.

    Title words come first; the most frequent words of title and body fill
    the remaining slots.

    Args:
        title: Article title.
        content: Article body (plain text or Markdown).
        limit: Maximum number of keywords.

    Returns:
        Lowercase keywords without duplicates.
    """
    frequent = [w for w, _ in Counter(_words(f"{title} {content}")).most_common(MAX_FREQUENT)]
    keywords: List[str] = []
    for word in _words(title) + frequent:
        if word not in keywords:
            keywords.append(word)
    return keywords[:limit]


def infer_themes(keywords: Iterable[str]) -> List[str]:
    """Map keywords onto broad image themes."""
    lowered = [k.lower() for k in keywords]
    themes = [
        theme
        for theme, related in THEMES.items()
        if any(word in keyword for keyword in lowered for word in related)
    ]
    return themes or list(DEFAULT_THEMES)


def is_sensitive_topic(title: str, content: str) -> bool:
    """True when the article touches a topic where stock photos rarely fit."""
    return bool(SENSITIVE_TERMS.intersection(_PUNCT_RE.sub(" ", f"{title} {content}".lower()).split()))
