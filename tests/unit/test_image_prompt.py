# tests/unit/test_image_prompt.py
"""Unit tests for featured image prompt building."""

import pytest

from autogeorge.core.config import PromptConfig
from autogeorge.pipeline.images.prompt import (
    MAX_PROMPT_LENGTH,
    build_image_prompt,
    main_concepts,
    optimize_prompt,
)
from autogeorge.services.config_loader import load_prompt_config


@pytest.fixture
def template() -> PromptConfig:
    return PromptConfig(system_prompt="", user_prompt_template="Photo of {concepts}{themes_clause}")


@pytest.mark.unit
class TestMainConcepts:
    """Tests for main_concepts."""

    def test_skips_short_words_and_stopwords(self):
        """Should keep meaningful title words only."""
        assert main_concepts("Il nuovo processore AI di Milano") == "nuovo processore milano"

    def test_at_most_four_concepts(self):
        """Should keep the first four concepts."""
        assert main_concepts("uno due tre quattro cinque sei") == "uno due tre quattro"


@pytest.mark.unit
class TestOptimizePrompt:
    """Tests for optimize_prompt."""

    def test_adds_quality_suffix(self):
        """Should ask for quality when the prompt does not."""
        assert optimize_prompt("Un tramonto") == "Un tramonto, high quality, professional"

    def test_keeps_existing_quality_words(self):
        """Should not repeat quality words."""
        assert optimize_prompt("A professional photo") == "A professional photo"

    def test_truncates(self):
        """Should cut long prompts with an ellipsis."""
        optimized = optimize_prompt("word " * 200)
        assert len(optimized) == MAX_PROMPT_LENGTH
        assert optimized.endswith("...")


@pytest.mark.unit
class TestBuildImagePrompt:
    """Tests for build_image_prompt."""

    def test_short_content_has_no_themes(self, template):
        """Should omit the themes clause for short content."""
        prompt = build_image_prompt(template, "Il nuovo processore AI di Milano", "Breve.")
        assert prompt == "Photo of nuovo processore milano, high quality, professional"

    def test_themes_from_content(self, template):
        """Should add the two most frequent content keywords."""
        content = "Il chip consuma poca energia. Il chip è veloce e il chip costa poco. Energia!"
        prompt = build_image_prompt(template, "Nuovo chip", content)
        assert "incorporating themes of chip and energia" in prompt

    def test_custom_prompt_wins(self, template):
        """Should use the site's custom prompt instead of the template."""
        prompt = build_image_prompt(template, "Titolo", None, custom_prompt="  Un tramonto  sul mare ")
        assert prompt == "Un tramonto sul mare, high quality, professional"

    def test_blank_custom_prompt_ignored(self, template):
        """Should ignore a whitespace-only custom prompt."""
        prompt = build_image_prompt(template, "Nuovo chip", None, custom_prompt="   ")
        assert prompt.startswith("Photo of nuovo chip")

    def test_packaged_template(self):
        """Should build a prompt from the packaged YAML template."""
        prompt = build_image_prompt(load_prompt_config("image_prompt"), "Nuovo chip italiano")
        assert prompt.startswith("A professional, high-quality image representing: nuovo chip italiano")
        assert len(prompt) <= MAX_PROMPT_LENGTH
