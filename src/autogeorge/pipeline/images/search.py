"""Multi-level featured image search with graceful fallback."""

from typing import Dict, List, Optional, Tuple

from autogeorge.core.config import Config, PromptConfig
from autogeorge.core.enums import SearchLevel
from autogeorge.core.image import ImageCandidate, ImageSearchResult, SearchAttempt
from autogeorge.core.site import GenerationSettings
from autogeorge.integrations.provider_factory import ImageClient, LLMClient
from autogeorge.pipeline.images.keywords import extract_keywords, infer_themes, is_sensitive_topic
from autogeorge.pipeline.images.prompt import build_image_prompt
from autogeorge.pipeline.images.scoring import parse_candidates, rank
from autogeorge.services.config_loader import load_prompt_config, load_prompt_templates
from autogeorge.utils.exceptions import ValidationError
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)

LEVEL1_THRESHOLD = 85
LEVEL2_THRESHOLD = 70
FALLBACK_THRESHOLD = 50
SENSITIVE_FALLBACK_THRESHOLD = 30

LEVEL1_TEMPERATURE = 0.1
LEVEL2_TEMPERATURE = 0.3
SEARCH_MAX_TOKENS = 800
EXCERPT_LENGTH = 300

CURATED_IMAGES: Dict[str, str] = {
    "tecnologia": "https://images.unsplash.com/photo-1518770660439-4636190af475?w=800",
    "business": "https://images.unsplash.com/photo-1507003211169-0a1dd7228f2d?w=800",
    "salute": "https://images.unsplash.com/photo-1559757148-5c350d0d3c56?w=800",
}
GENERIC_IMAGE = "https://images.unsplash.com/photo-1557804506-669a67965ba0?w=800"


def curated_image(themes: List[str]) -> Tuple[str, str]:
    """Static image for the first theme that has one, else the generic one.

    Returns:
        (url, theme or "generale")
    """
    for theme in themes:
        if theme in CURATED_IMAGES:
            return CURATED_IMAGES[theme], theme
    return GENERIC_IMAGE, "generale"


class ImageSearchService:
    """Finds a featured image for an article.

    Level 1 asks for photos of the exact story, level 2 for thematic photos.
    If neither clears its threshold the best candidate seen so far is tried
    against a lower bar, and as a last resort an image is generated or a
    curated stock photo is used. A result always carries a URL.
    """

    def __init__(
        self,
        config: Config,
        search_client: Optional[LLMClient],
        image_client: Optional[ImageClient] = None,
        templates: Optional[Dict[str, str]] = None,
        image_prompt: Optional[PromptConfig] = None,
    ):
        """Initialize search service.

        Args:
            config: Application configuration.
            search_client: Web-connected chat client used for search queries.
            image_client: Image generation client for the final fallback.
            templates: Search query templates; loaded from YAML when omitted.
            image_prompt: Image generation prompt template.
        """
        self.config = config
        self.search_client = search_client
        self.image_client = image_client
        self.templates = templates or load_prompt_templates("image_search")
        self.image_prompt = image_prompt or load_prompt_config("image_prompt")

    async def search(
        self,
        article_id: Optional[str],
        title: Optional[str],
        content: Optional[str],
        allow_ai_generation: bool = True,
        generation_settings: Optional[GenerationSettings] = None,
    ) -> ImageSearchResult:
        """Resolve an image for an article.

        Raises:
            ValidationError: If article id, title or content is missing.
        """
        if not article_id or not title or not content:
            raise ValidationError(
                "Missing required fields: articleId, articleTitle, articleContent"
            )

        generation_settings = generation_settings or GenerationSettings()
        keywords = extract_keywords(title, content)
        themes = infer_themes(keywords)
        sensitive = is_sensitive_topic(title, content)
        log: List[SearchAttempt] = []
        pool: List[ImageCandidate] = []

        logger.info(
            "image_search_starting",
            article_id=article_id,
            keywords=keywords[:5],
            themes=themes,
            sensitive=sensitive,
        )

        context = {
            "title": title,
            "keywords": ", ".join(keywords),
            "themes": ", ".join(themes),
            "excerpt": content[:EXCERPT_LENGTH],
        }
        levels = (
            (SearchLevel.LEVEL1_SPECIFIC, "level1_template", LEVEL1_TEMPERATURE, LEVEL1_THRESHOLD),
            (SearchLevel.LEVEL2_THEMATIC, "level2_template", LEVEL2_TEMPERATURE, LEVEL2_THRESHOLD),
        )
        for level, template_key, temperature, threshold in levels:
            query = self.templates[template_key].format(**context)
            ranked, attempt = await self._query_level(level, query, temperature, threshold, title, keywords)
            log.append(attempt)
            pool.extend(ranked)
            if attempt.accepted:
                return self._result(ranked[0], level, keywords, themes, sensitive, log)

        fallback_threshold = SENSITIVE_FALLBACK_THRESHOLD if sensitive else FALLBACK_THRESHOLD
        best = max(pool, key=lambda c: c.relevance_score) if pool else None
        accepted = best is not None and best.relevance_score >= fallback_threshold
        log.append(
            SearchAttempt(
                level=SearchLevel.FALLBACK,
                candidates_found=len(pool),
                best_score=best.relevance_score if best else 0,
                threshold=fallback_threshold,
                accepted=accepted,
            )
        )
        if accepted:
            return self._result(best, SearchLevel.FALLBACK, keywords, themes, sensitive, log)

        if allow_ai_generation and self.image_client is not None:
            prompt = build_image_prompt(
                self.image_prompt, title, content, generation_settings.custom_image_prompt
            )
            try:
                image = await self.image_client.generate_image(
                    prompt=prompt,
                    size=generation_settings.image_size,
                    style=generation_settings.image_style,
                    module="image_search",
                )
                log.append(SearchAttempt(level=SearchLevel.AI_GENERATED, query=prompt, accepted=True))
                return ImageSearchResult(
                    url=image["url"],
                    level=SearchLevel.AI_GENERATED,
                    score=100,
                    source="ai-generated",
                    keywords=keywords,
                    themes=themes,
                    is_sensitive=sensitive,
                    search_log=log,
                )
            except Exception as e:
                logger.warning("image_generation_fallback_failed", article_id=article_id, error=str(e))
                log.append(SearchAttempt(level=SearchLevel.AI_GENERATED, query=prompt, error=str(e)))

        url, theme = curated_image(themes)
        log.append(SearchAttempt(level=SearchLevel.CURATED, query=theme, accepted=True))
        logger.info("image_search_curated", article_id=article_id, theme=theme)
        return ImageSearchResult(
            url=url,
            level=SearchLevel.CURATED,
            score=0,
            source="unsplash.com",
            keywords=keywords,
            themes=themes,
            is_sensitive=sensitive,
            search_log=log,
        )

    async def _query_level(
        self,
        level: SearchLevel,
        query: str,
        temperature: float,
        threshold: int,
        title: str,
        keywords: List[str],
    ) -> Tuple[List[ImageCandidate], SearchAttempt]:
        if self.search_client is None:
            return [], SearchAttempt(
                level=level, query=query, threshold=threshold, error="search client not configured"
            )

        try:
            response = await self.search_client.create_completion(
                messages=[
                    {"role": "system", "content": self.templates["system_prompt"]},
                    {"role": "user", "content": query},
                ],
                module="image_search",
                request_type=level.value,
                model=self.config.perplexity_search_model,
                temperature=temperature,
                max_tokens=SEARCH_MAX_TOKENS,
            )
        except Exception as e:
            logger.warning("image_search_level_failed", level=level.value, error=str(e))
            return [], SearchAttempt(level=level, query=query, threshold=threshold, error=str(e))

        ranked = rank(parse_candidates(response["content"].get("text", "")), title, keywords)
        best_score = ranked[0].relevance_score if ranked else 0
        attempt = SearchAttempt(
            level=level,
            query=query,
            candidates_found=len(ranked),
            best_score=best_score,
            threshold=threshold,
            accepted=bool(ranked) and best_score >= threshold,
        )
        logger.info(
            "image_search_level_complete",
            level=level.value,
            candidates=len(ranked),
            best_score=best_score,
            accepted=attempt.accepted,
        )
        return ranked, attempt

    @staticmethod
    def _result(
        candidate: ImageCandidate,
        level: SearchLevel,
        keywords: List[str],
        themes: List[str],
        sensitive: bool,
        log: List[SearchAttempt],
    ) -> ImageSearchResult:
        return ImageSearchResult(
            url=candidate.url,
            level=level,
            score=candidate.relevance_score,
            source=candidate.source,
            keywords=keywords,
            themes=themes,
            is_sensitive=sensitive,
            search_log=log,
        )
