# tests/integration/test_image_search.py
"""Integration tests for the multi-level image search."""

from unittest.mock import AsyncMock, Mock

import pytest

from autogeorge.core.enums import SearchLevel
from autogeorge.pipeline.images.search import (
    CURATED_IMAGES,
    GENERIC_IMAGE,
    ImageSearchService,
    curated_image,
)
from autogeorge.utils.exceptions import AIServiceError, ValidationError

TITLE = "Energia solare pannelli tetto"
CONTENT = "Energia solare: pannelli sul tetto installati in città per ridurre i consumi."

# Scores 100 for TITLE: every keyword and title word matches
EXACT_MATCH = (
    "https://images.unsplash.com/energia-solare-pannelli-tetto - energia solare pannelli tetto"
)
# Scores 80: two keywords and title words in the description, unsplash bonus
PARTIAL_MATCH = "https://images.unsplash.com/photo-42 - energia solare"
NO_RESULTS = "Nessuna immagine trovata."


def _search_client(*replies):
    """Chat client answering each level in turn with free text."""
    client = Mock()
    client.provider = "perplexity"
    client.create_completion = AsyncMock(
        side_effect=[{"content": {"text": reply}, "usage": {}} for reply in replies]
    )
    return client


@pytest.mark.integration
class TestImageSearchService:
    """Tests for ImageSearchService.search."""

    @pytest.mark.asyncio
    async def test_level1_accepts_specific_match(self, test_config):
        """Should stop at level 1 when the best candidate clears 85."""
        client = _search_client(EXACT_MATCH)
        service = ImageSearchService(test_config, client)

        result = await service.search("a1", TITLE, CONTENT)

        assert result.level == SearchLevel.LEVEL1_SPECIFIC
        assert result.score == 100
        assert result.url == "https://images.unsplash.com/energia-solare-pannelli-tetto"
        assert result.source == "images.unsplash.com"
        assert len(result.search_log) == 1
        assert client.create_completion.call_count == 1
        kwargs = client.create_completion.call_args.kwargs
        assert kwargs["temperature"] == 0.1
        assert kwargs["model"] == test_config.perplexity_search_model
        assert TITLE in kwargs["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_level2_thematic(self, test_config):
        """Should try thematic photos when level 1 finds nothing."""
        client = _search_client(NO_RESULTS, EXACT_MATCH)

        result = await ImageSearchService(test_config, client).search("a1", TITLE, CONTENT)

        assert result.level == SearchLevel.LEVEL2_THEMATIC
        assert [a.level for a in result.search_log] == [
            SearchLevel.LEVEL1_SPECIFIC,
            SearchLevel.LEVEL2_THEMATIC,
        ]
        assert client.create_completion.call_args.kwargs["temperature"] == 0.3
        assert "ambiente" in result.themes

    @pytest.mark.asyncio
    async def test_fallback_to_best_candidate(self, test_config):
        """Should accept the best earlier candidate against the lower bar."""
        client = _search_client(PARTIAL_MATCH, NO_RESULTS)

        result = await ImageSearchService(test_config, client).search("a1", TITLE, CONTENT)

        assert result.level == SearchLevel.FALLBACK
        assert result.score == 80
        assert result.url == "https://images.unsplash.com/photo-42"
        level1, level2, fallback = result.search_log
        assert level1.best_score == 80
        assert not level1.accepted
        assert fallback.threshold == 50
        assert fallback.accepted

    @pytest.mark.asyncio
    async def test_sensitive_topic_lowers_fallback_bar(self, test_config):
        """Should use the lower fallback threshold for sensitive topics."""
        client = _search_client(NO_RESULTS, NO_RESULTS)
        content = "La guerra ha colpito la regione."

        result = await ImageSearchService(test_config, client).search("a1", TITLE, content)

        assert result.is_sensitive
        assert result.search_log[-2].threshold == 30

    @pytest.mark.asyncio
    async def test_ai_generation_fallback(self, test_config, mock_image_client):
        """Should generate an image when no candidate is good enough."""
        client = _search_client(NO_RESULTS, NO_RESULTS)
        service = ImageSearchService(test_config, client, mock_image_client)

        result = await service.search("a1", TITLE, CONTENT)

        assert result.level == SearchLevel.AI_GENERATED
        assert result.score == 100
        assert result.source == "ai-generated"
        assert result.url == "https://images.example.com/generated/featured.png"
        assert mock_image_client.generate_image.call_args.kwargs["module"] == "image_search"

    @pytest.mark.asyncio
    async def test_curated_when_generation_not_allowed(self, test_config, mock_image_client):
        """Should fall back to a curated photo without calling the image API."""
        client = _search_client(NO_RESULTS, NO_RESULTS)
        service = ImageSearchService(test_config, client, mock_image_client)

        result = await service.search(
            "a1", "Nuovo software gestionale", "Un software per le aziende.", allow_ai_generation=False
        )

        assert result.level == SearchLevel.CURATED
        assert result.score == 0
        assert result.source == "unsplash.com"
        assert result.url == CURATED_IMAGES["tecnologia"]
        mock_image_client.generate_image.assert_not_called()

    @pytest.mark.asyncio
    async def test_curated_after_generation_failure(self, test_config, mock_image_client):
        """Should log the failed generation and still return an image."""
        client = _search_client(NO_RESULTS, NO_RESULTS)
        mock_image_client.generate_image.side_effect = AIServiceError("quota")

        result = await ImageSearchService(test_config, client, mock_image_client).search(
            "a1", TITLE, CONTENT
        )

        assert result.level == SearchLevel.CURATED
        assert result.url
        generation = result.search_log[-2]
        assert generation.level == SearchLevel.AI_GENERATED
        assert generation.error == "quota"

    @pytest.mark.asyncio
    async def test_search_errors_are_logged(self, test_config):
        """Should record failed levels and carry on."""
        client = Mock()
        client.create_completion = AsyncMock(side_effect=AIServiceError("timeout"))

        result = await ImageSearchService(test_config, client).search("a1", TITLE, CONTENT)

        assert result.level == SearchLevel.CURATED
        assert result.search_log[0].error == "timeout"
        assert result.search_log[1].error == "timeout"

    @pytest.mark.asyncio
    async def test_without_search_client(self, test_config):
        """Should still resolve an image with no search client."""
        result = await ImageSearchService(test_config, None).search("a1", TITLE, CONTENT)
        assert result.level == SearchLevel.CURATED
        assert result.search_log[0].error == "search client not configured"

    @pytest.mark.asyncio
    async def test_missing_fields(self, test_config):
        """Should reject requests without id, title or content."""
        service = ImageSearchService(test_config, None)
        with pytest.raises(ValidationError):
            await service.search("a1", "", CONTENT)
        with pytest.raises(ValidationError):
            await service.search(None, TITLE, CONTENT)


@pytest.mark.integration
class TestCuratedImage:
    """Tests for curated_image."""

    def test_first_known_theme(self):
        """Should use the first theme with a curated photo."""
        assert curated_image(["ambiente", "salute"]) == (CURATED_IMAGES["salute"], "salute")

    def test_generic(self):
        """Should use the generic photo for unknown themes."""
        assert curated_image(["generale"]) == (GENERIC_IMAGE, "generale")
